"""
Tracked State
=============
Per-entity estimator state and process-wide selection state.
"""

from typing import Optional
from dataclasses import dataclass, field
from enum import Enum

from .history import AngleHistory


class OscillationCategory(Enum):
    """Amplitude class of a detected oscillation."""
    NONE = "none"
    MICRO = "micro"
    LARGE = "large"


class MotionPattern(Enum):
    """Coarse behaviour label, reported for observability only."""
    NONE = "none"
    OSCILLATION = "oscillation"
    SWAY = "sway"
    SPIN = "spin"
    BODY_BREAK = "body_break"


@dataclass
class OscillationState:
    """Result of the sign-reversal ("jitter") detector."""
    active: bool = False
    side: int = 1                       # +1 / -1, sign of the net directional bias
    category: OscillationCategory = OscillationCategory.NONE
    average_amplitude: float = 0.0
    flips: int = 0

    def reset(self):
        self.active = False
        self.side = 1
        self.category = OscillationCategory.NONE
        self.average_amplitude = 0.0
        self.flips = 0


@dataclass
class AnomalyState:
    """
    Anomalous-timing ("defensive") detector.

    `latched` is the decaying timing latch; `stationary` marks an entity that
    oscillates while nearly still. Either one makes the anomaly active.
    """
    latched: bool = False
    since_tick: int = 0
    stationary: bool = False

    @property
    def active(self) -> bool:
        return self.latched or self.stationary


@dataclass
class Resolution:
    """Last computed estimate for an entity."""
    angle: float = 0.0
    confidence: float = 0.0
    method: str = "none"


@dataclass
class TrackedEntityState:
    """Everything the estimator remembers about one entity."""
    entity_id: int
    history: AngleHistory = field(default_factory=AngleHistory)

    # Latest raw observations
    last_eye_yaw: Optional[float] = None
    last_body_yaw: Optional[float] = None
    body_yaw_delta: float = 0.0
    last_simulation_time: Optional[float] = None
    last_simulation_tick: Optional[int] = None
    speed: float = 0.0

    # Slow-turn tracking
    lby_last_value: Optional[float] = None
    lby_last_change_time: Optional[float] = None
    lby_recent: bool = False

    # Classifier outputs
    oscillation: OscillationState = field(default_factory=OscillationState)
    anomaly: AnomalyState = field(default_factory=AnomalyState)
    motion_pattern: MotionPattern = MotionPattern.NONE

    resolution: Resolution = field(default_factory=Resolution)

    # Feedback
    hit_count: int = 0
    miss_count: int = 0
    fallback_cursor: int = 0
    last_hit_tick: Optional[int] = None
    last_miss_tick: Optional[int] = None

    @classmethod
    def create(cls, entity_id: int, capacity: int) -> "TrackedEntityState":
        """Fresh state with a history of the given capacity."""
        return cls(entity_id=entity_id, history=AngleHistory(capacity))

    @property
    def shots(self) -> int:
        return self.hit_count + self.miss_count

    @property
    def accuracy(self) -> Optional[float]:
        """Hit ratio, or None before any feedback arrived."""
        if self.shots == 0:
            return None
        return self.hit_count / self.shots


@dataclass
class SelectionState:
    """Process-wide target selection cache."""
    active_target: Optional[int] = None
    last_selection_time: Optional[float] = None

    def reset(self):
        self.active_target = None
        self.last_selection_time = None
