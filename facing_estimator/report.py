"""
Reporting
=========
Immutable snapshots of engine state for display collaborators.
"""

from typing import Optional, Tuple, List
from dataclasses import dataclass

from .state import TrackedEntityState


@dataclass(frozen=True)
class EntityReport:
    """Display-ready view of one tracked entity."""
    entity_id: int
    angle: float
    confidence: float
    method: str
    is_confident: bool
    eye_yaw: Optional[float]
    body_yaw: Optional[float]
    body_yaw_delta: float
    speed: float
    oscillating: bool
    oscillation_side: int
    oscillation_category: str
    anomaly: bool
    lby_recent: bool
    motion_pattern: str
    history_size: int
    hit_count: int
    miss_count: int
    fallback_cursor: int
    accuracy: Optional[float]

    @classmethod
    def from_state(cls, state: TrackedEntityState, confidence_threshold: float = 0.6) -> "EntityReport":
        res = state.resolution
        return cls(
            entity_id=state.entity_id,
            angle=res.angle,
            confidence=res.confidence,
            method=res.method,
            is_confident=res.confidence > confidence_threshold,
            eye_yaw=state.last_eye_yaw,
            body_yaw=state.last_body_yaw,
            body_yaw_delta=state.body_yaw_delta,
            speed=state.speed,
            oscillating=state.oscillation.active,
            oscillation_side=state.oscillation.side,
            oscillation_category=state.oscillation.category.value,
            anomaly=state.anomaly.active,
            lby_recent=state.lby_recent,
            motion_pattern=state.motion_pattern.value,
            history_size=state.history.count,
            hit_count=state.hit_count,
            miss_count=state.miss_count,
            fallback_cursor=state.fallback_cursor,
            accuracy=state.accuracy,
        )


@dataclass(frozen=True)
class EngineSnapshot:
    active_target: Optional[int]
    entities: Tuple[EntityReport, ...] = ()

    def get(self, entity_id: int) -> Optional[EntityReport]:
        for report in self.entities:
            if report.entity_id == entity_id:
                return report
        return None

    @property
    def active(self) -> Optional[EntityReport]:
        if self.active_target is None:
            return None
        return self.get(self.active_target)


def format_entity(report: EntityReport) -> List[str]:
    """Text lines describing one entity."""
    lines = [
        f"Entity {report.entity_id}",
        f"  Resolved: {report.angle:7.1f} deg  conf {report.confidence * 100:3.0f}%"
        f"{'' if report.is_confident else ' (low)'}  [{report.method}]",
    ]
    if report.eye_yaw is not None:
        lines.append(f"  Eye: {report.eye_yaw:.0f}  Body: "
                     f"{'-' if report.body_yaw is None else format(report.body_yaw, '.0f')}"
                     f"  Delta: {report.body_yaw_delta:.0f}")

    flags = []
    if report.oscillating:
        side = "R" if report.oscillation_side > 0 else "L"
        flags.append(f"OSC-{report.oscillation_category.upper()} {side}")
    if report.anomaly:
        flags.append("ANOMALY")
    if report.lby_recent:
        flags.append("LBY UPDATE")
    if report.motion_pattern != "none":
        flags.append(f"pattern={report.motion_pattern}")
    lines.append(f"  Speed: {report.speed:.0f}  " + (" | ".join(flags) if flags else "no flags"))

    if report.accuracy is not None:
        lines.append(f"  Accuracy: {report.accuracy * 100:.0f}% "
                     f"({report.hit_count}/{report.hit_count + report.miss_count})"
                     f"  fallback #{report.fallback_cursor}")
    return lines


def format_summary(snapshot: EngineSnapshot) -> List[str]:
    """Text lines for the whole engine, active target first."""
    if not snapshot.entities:
        return ["No tracked entities"]
    lines = [f"Active target: {snapshot.active_target if snapshot.active_target is not None else 'none'}"]
    ordered = sorted(
        snapshot.entities,
        key=lambda r: (r.entity_id != snapshot.active_target, r.entity_id),
    )
    for report in ordered:
        lines.extend(format_entity(report))
    return lines
