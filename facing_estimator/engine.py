"""
Resolver Engine
===============
Owns all per-entity state and drives selection, classification and fusion.

The host integration layer calls `on_tick` once per simulation tick and
forwards hit/miss/round-reset events through `on_hit`, `on_miss` and
`on_round_reset`. Results go out through the optional override sink and
through `snapshot()`.
"""

import logging
import threading
from typing import Optional, Dict, Callable

from .config import Config
from .classifier import PatternClassifier
from .feedback import FeedbackTracker
from .fusion import ResolutionFuser
from .geometry import bearing_to, normalize_angle, planar_speed
from .observations import TickFrame
from .report import EngineSnapshot, EntityReport
from .state import TrackedEntityState, Resolution
from .selector import TargetSelector

logger = logging.getLogger(__name__)

# sink(entity_id, angle_degrees, force)
OverrideSink = Callable[[int, float, bool], None]


class ResolverEngine:
    """
    Facing-angle estimator for the currently selected entity.

    All entry points take one engine-wide lock, so event callbacks delivered
    from another thread never interleave with a tick.
    """

    def __init__(self, config: Optional[Config] = None, sink: Optional[OverrideSink] = None):
        self.config = config or Config()
        self.sink = sink

        self.selector = TargetSelector(self.config.selector)
        self.classifier = PatternClassifier(self.config.classifier)
        self.fuser = ResolutionFuser(self.config.fusion)
        self.feedback = FeedbackTracker(len(self.config.fusion.fallback_offsets))

        self.targets: Dict[int, TrackedEntityState] = {}
        self._last_resolve_tick: Optional[int] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def _ensure_state(self, entity_id: int) -> TrackedEntityState:
        state = self.targets.get(entity_id)
        if state is None:
            state = TrackedEntityState.create(entity_id, self.config.history.capacity)
            self.targets[entity_id] = state
        return state

    def state_for(self, entity_id: int) -> TrackedEntityState:
        """State for an entity, created fresh if it is not tracked yet."""
        with self._lock:
            return self._ensure_state(entity_id)

    def get_state(self, entity_id: int) -> Optional[TrackedEntityState]:
        with self._lock:
            return self.targets.get(entity_id)

    @property
    def active_target(self) -> Optional[int]:
        return self.selector.state.active_target

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def on_tick(self, frame: TickFrame) -> Optional[Resolution]:
        """
        Run one estimation pass.

        Returns:
            The published resolution, or None when the pass was throttled
            or had nothing to estimate
        """
        with self._lock:
            every = self.config.engine.resolve_every_n_ticks
            if self._last_resolve_tick is not None and frame.tick - self._last_resolve_tick < every:
                return None
            self._last_resolve_tick = frame.tick

            viewer = frame.viewer
            if not viewer.alive or viewer.position is None:
                return None

            target_id = self.selector.select(viewer, frame.entities, frame.realtime)
            if target_id is None:
                return None

            entity = frame.find(target_id)
            if entity is None or entity.position is None or entity.eye_yaw is None:
                logger.debug("Tick %d: incomplete observation for entity %s, skipped", frame.tick, target_id)
                return None

            state = self._ensure_state(target_id)
            ideal = bearing_to(viewer.position, entity.position)

            state.last_eye_yaw = entity.eye_yaw
            state.history.push(entity.eye_yaw)
            if entity.lower_body_yaw is not None:
                state.last_body_yaw = entity.lower_body_yaw
                state.body_yaw_delta = normalize_angle(entity.lower_body_yaw - ideal)
            state.speed = planar_speed(entity.velocity) if entity.velocity is not None else 0.0

            self.classifier.classify(
                state,
                tick=frame.tick,
                tick_interval=frame.tick_interval,
                now=frame.realtime,
                lower_body_yaw=entity.lower_body_yaw,
                simulation_time=entity.simulation_time,
            )
            resolution = self.fuser.resolve(state, ideal)

            logger.debug(
                "Tick %d: entity %s -> %.1f deg (conf %.2f, %s)",
                frame.tick, target_id, resolution.angle, resolution.confidence, resolution.method,
            )
            if self.sink is not None:
                self.sink(target_id, resolution.angle, self.config.engine.force_override)
            return resolution

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_hit(self, entity_id: int, tick: Optional[int] = None):
        with self._lock:
            self.feedback.record_hit(self._ensure_state(entity_id), tick)

    def on_miss(self, entity_id: int, tick: Optional[int] = None):
        with self._lock:
            self.feedback.record_miss(self._ensure_state(entity_id), tick)

    def on_round_reset(self):
        """Drop every tracked entity and the selection cache."""
        with self._lock:
            dropped = len(self.targets)
            self.targets = {}
            self.selector.reset()
            self._last_resolve_tick = None
        logger.info("Round reset: cleared %d tracked entities", dropped)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def snapshot(self) -> EngineSnapshot:
        """Read-only copy of everything a reporting collaborator may show."""
        with self._lock:
            threshold = self.config.engine.confidence_threshold
            entities = tuple(
                EntityReport.from_state(state, threshold)
                for state in self.targets.values()
            )
            return EngineSnapshot(active_target=self.active_target, entities=entities)
