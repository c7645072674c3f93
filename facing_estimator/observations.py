"""
Observations
============
Read-only per-tick samples pushed in by the host integration layer.

Any field that the host could not sample is left as None.
"""

import numpy as np
from typing import Optional, List
from dataclasses import dataclass, field


def _as_vector(value) -> Optional[np.ndarray]:
    if value is None:
        return None
    return np.asarray(value, dtype=np.float64)


@dataclass
class ViewerObservation:
    """The local viewer doing the tracking."""
    position: Optional[np.ndarray] = None
    yaw: Optional[float] = None
    alive: bool = True

    def __post_init__(self):
        self.position = _as_vector(self.position)


@dataclass
class EntityObservation:
    """One candidate entity as sampled this tick."""
    entity_id: int
    alive: bool = True
    visible: bool = True
    position: Optional[np.ndarray] = None
    velocity: Optional[np.ndarray] = None
    eye_yaw: Optional[float] = None
    lower_body_yaw: Optional[float] = None
    simulation_time: Optional[float] = None
    health: Optional[float] = None
    armor: Optional[float] = None

    def __post_init__(self):
        self.position = _as_vector(self.position)
        self.velocity = _as_vector(self.velocity)

    @property
    def observable(self) -> bool:
        """Alive, visible, and carrying a position."""
        return self.alive and self.visible and self.position is not None


@dataclass
class TickFrame:
    """Everything the engine reads during one simulation tick."""
    tick: int
    realtime: float
    tick_interval: float
    viewer: ViewerObservation = field(default_factory=ViewerObservation)
    entities: List[EntityObservation] = field(default_factory=list)

    def find(self, entity_id: int) -> Optional[EntityObservation]:
        for ent in self.entities:
            if ent.entity_id == entity_id:
                return ent
        return None
