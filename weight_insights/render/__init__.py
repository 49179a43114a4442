from .scheduler import RenderOptions, RenderScheduler, SchedulerState

__all__ = ["RenderOptions", "RenderScheduler", "SchedulerState"]
