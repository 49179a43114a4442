from .regression_brush import RegressionRangeBrush
from .view_sync import ViewTransformSync

__all__ = ["RegressionRangeBrush", "ViewTransformSync"]
