from .debounce_timers import DebounceTimers
from .debounced_committer import AfterCancelFn, AfterFn, DebouncedCommitter

__all__ = ["AfterCancelFn", "AfterFn", "DebounceTimers", "DebouncedCommitter"]
