"""
Feedback Tracking
=================
Hit/miss bookkeeping and the fallback cursor it drives.
"""

from typing import Optional

from .state import TrackedEntityState


class FeedbackTracker:
    """
    Applies downstream hit/miss outcomes to entity state.

    A miss moves the fallback cursor to the next offset in the table; a hit
    sends it back to the first one.
    """

    def __init__(self, table_length: int):
        if table_length < 1:
            raise ValueError("Fallback table length must be positive")
        self.table_length = table_length

    def record_miss(self, state: TrackedEntityState, tick: Optional[int] = None):
        state.miss_count += 1
        state.fallback_cursor = (state.fallback_cursor + 1) % self.table_length
        state.last_miss_tick = tick

    def record_hit(self, state: TrackedEntityState, tick: Optional[int] = None):
        state.hit_count += 1
        state.fallback_cursor = 0
        state.last_hit_tick = tick

    @staticmethod
    def accuracy(state: TrackedEntityState) -> Optional[float]:
        """hits / (hits + misses), None before the first shot."""
        return state.accuracy
