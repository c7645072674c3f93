"""
Resolution Fuser
================
Turns classifier verdicts into weighted angle hypotheses and merges them.

Layers (highest priority first):
    body        - lower-body yaw far from the ideal bearing
    oscillation - active sign-reversal pattern
    anomaly     - anomalous timing, replays a recent sample
    historical  - recency-weighted mean of the recent history
    fallback    - round-robin offset table, always present
"""

from typing import List
from dataclasses import dataclass

from .config import FusionConfig
from .geometry import normalize_angle, weighted_circular_mean, weighted_linear_mean
from .state import TrackedEntityState, Resolution, OscillationCategory


LAYER_PRIORITY = ("body", "oscillation", "anomaly", "historical", "fallback")


@dataclass
class Hypothesis:
    """One candidate angle from one information source."""
    angle: float
    weight: float
    source: str     # Layer key, one of LAYER_PRIORITY
    label: str      # Method label reported when this layer leads


class ResolutionFuser:
    """Builds and merges hypotheses for a single entity."""

    def __init__(self, config: FusionConfig):
        self.config = config

    def fallback_offset(self, cursor: int) -> float:
        offsets = self.config.fallback_offsets
        return offsets[cursor % len(offsets)]

    def build_hypotheses(self, state: TrackedEntityState, ideal: float) -> List[Hypothesis]:
        """
        Collect every layer whose inclusion condition holds.

        Args:
            state: Entity state with classifier fields already updated
            ideal: Bearing from the viewer to the entity (degrees)
        """
        cfg = self.config
        hypotheses = []

        if abs(state.body_yaw_delta) > cfg.body_threshold:
            offset = cfg.body_offset if state.body_yaw_delta > 0 else -cfg.body_offset
            if state.lby_recent:
                weight, label = cfg.body_recent_lby_weight, "lby-update"
            else:
                weight, label = cfg.body_weight, "body"
            hypotheses.append(Hypothesis(normalize_angle(ideal + offset), weight, "body", label))

        osc = state.oscillation
        if osc.active:
            if osc.category == OscillationCategory.MICRO:
                magnitude, weight, label = cfg.oscillation_micro_offset, cfg.oscillation_micro_weight, "oscillation-micro"
            else:
                magnitude, weight, label = cfg.oscillation_large_offset, cfg.oscillation_large_weight, "oscillation"
            hypotheses.append(Hypothesis(
                normalize_angle(ideal + magnitude * osc.side), weight, "oscillation", label
            ))

        if state.anomaly.active and state.history.count > 0:
            # Oldest available when the history is shorter than the lookback
            sample = state.history.recent(cfg.anomaly_lookback + 1)[-1]
            hypotheses.append(Hypothesis(normalize_angle(sample), cfg.anomaly_weight, "anomaly", "anomaly"))

        if cfg.historical_enabled and state.history.count >= cfg.historical_samples:
            samples = state.history.chronological(cfg.historical_samples)
            recency = [(i + 1) / cfg.historical_samples for i in range(len(samples))]
            hypotheses.append(Hypothesis(
                self.average(samples, recency), cfg.historical_weight, "historical", "historical"
            ))

        hypotheses.append(Hypothesis(
            normalize_angle(ideal + self.fallback_offset(state.fallback_cursor)),
            cfg.fallback_weight, "fallback", "fallback",
        ))
        return hypotheses

    def average(self, angles: List[float], weights: List[float]) -> float:
        if self.config.averaging == "linear":
            return weighted_linear_mean(angles, weights)
        return weighted_circular_mean(angles, weights)

    def fuse(self, hypotheses: List[Hypothesis], state: TrackedEntityState, ideal: float) -> Resolution:
        """Weighted merge of the hypotheses into one angle and confidence."""
        cfg = self.config
        total = sum(h.weight for h in hypotheses)
        if not hypotheses or total <= 0:
            return Resolution(angle=normalize_angle(ideal), confidence=0.1, method="ideal")

        angle = self.average([h.angle for h in hypotheses], [h.weight for h in hypotheses])

        confidence = min(total, 1.0)
        sources = {h.source for h in hypotheses}
        if "oscillation" in sources and state.oscillation.category == OscillationCategory.MICRO:
            confidence *= cfg.micro_confidence_scale
        if "anomaly" in sources:
            confidence = min(1.0, confidence + cfg.anomaly_confidence_bonus)

        leader = min(hypotheses, key=lambda h: LAYER_PRIORITY.index(h.source))
        return Resolution(angle=angle, confidence=confidence, method=leader.label)

    def resolve(self, state: TrackedEntityState, ideal: float) -> Resolution:
        """Build, fuse, and store the resolution on the entity state."""
        resolution = self.fuse(self.build_hypotheses(state, ideal), state, ideal)
        state.resolution = resolution
        return resolution
