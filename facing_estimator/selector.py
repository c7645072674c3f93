"""
Target Selection
================
Picks the single entity worth tracking, with time-based hysteresis.
"""

import logging
from typing import Optional, List, Tuple

from .config import SelectorConfig
from .geometry import angular_delta, bearing_to, distance
from .observations import EntityObservation, ViewerObservation
from .state import SelectionState

logger = logging.getLogger(__name__)


class TargetSelector:
    """
    Throttled best-target scoring.

    Scores blend field-of-view alignment, proximity and, when the weights
    allow it, health/armor priority. Within `update_interval` of the last
    scoring pass a still-valid previous target is returned untouched.
    """

    def __init__(self, config: SelectorConfig):
        self.config = config
        self.state = SelectionState()

    def reset(self):
        self.state.reset()

    def is_valid(self, entity: Optional[EntityObservation]) -> bool:
        """Alive, observable candidate."""
        return entity is not None and entity.observable

    def score(
        self,
        viewer: ViewerObservation,
        entity: EntityObservation,
    ) -> Optional[float]:
        """
        Score one candidate; None when it fails the distance filter.

        Returns:
            Weighted score in [0, 1], higher is better
        """
        cfg = self.config
        dist = distance(viewer.position, entity.position)
        if dist > cfg.max_distance:
            return None

        fov = angular_delta(viewer.yaw, bearing_to(viewer.position, entity.position))
        fov_score = max(0.0, 180.0 - fov) / 180.0
        distance_score = max(0.0, cfg.max_distance - dist) / cfg.max_distance

        health_score = 1.0
        armor_score = 1.0
        if entity.health is not None:
            health_score = entity.health / 100.0
        if entity.armor is not None:
            armor_score = 1.0 - (entity.armor / 100.0) * 0.3

        return (
            fov_score * cfg.fov_weight
            + distance_score * cfg.distance_weight
            + health_score * cfg.health_weight
            + armor_score * cfg.armor_weight
        )

    def rank(
        self,
        viewer: ViewerObservation,
        candidates: List[EntityObservation],
    ) -> List[Tuple[int, float]]:
        """All passing candidates with their scores, in iteration order."""
        scored = []
        for entity in candidates:
            if not self.is_valid(entity):
                continue
            s = self.score(viewer, entity)
            if s is not None:
                scored.append((entity.entity_id, s))
        return scored

    def select(
        self,
        viewer: ViewerObservation,
        candidates: List[EntityObservation],
        now: float,
    ) -> Optional[int]:
        """
        Choose the entity to track this tick.

        Args:
            viewer: Local viewer position and facing
            candidates: Entities sampled this tick
            now: Wall-clock time in seconds

        Returns:
            Entity id, or None if nothing qualifies
        """
        state = self.state

        # Hysteresis: keep a still-valid target until the interval elapses
        if state.active_target is not None and state.last_selection_time is not None:
            previous = next(
                (c for c in candidates if c.entity_id == state.active_target), None
            )
            if self.is_valid(previous) and now - state.last_selection_time < self.config.update_interval:
                return state.active_target

        state.last_selection_time = now

        if viewer.position is None or viewer.yaw is None:
            state.active_target = None
            return None

        best = None
        best_score = -1.0
        for entity_id, s in self.rank(viewer, candidates):
            # Strict comparison keeps the first of equal scores
            if s > best_score:
                best_score = s
                best = entity_id

        if best != state.active_target:
            logger.debug("Target changed %s -> %s (score %.3f)", state.active_target, best, best_score)
        state.active_target = best
        return best
