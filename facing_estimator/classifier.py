"""
Pattern Classifier
==================
Oscillation, anomalous-timing and slow-turn detectors over a tracked entity.

Every detector writes its verdict back onto the TrackedEntityState; the
fuser reads those fields later in the same pass.
"""

from typing import Optional

from .config import ClassifierConfig
from .geometry import normalize_angle
from .state import (
    TrackedEntityState,
    OscillationCategory,
    MotionPattern,
)


class PatternClassifier:
    """Runs the behaviour detectors for one entity per tick."""

    def __init__(self, config: ClassifierConfig):
        self.config = config

    def classify(
        self,
        state: TrackedEntityState,
        tick: int,
        tick_interval: float,
        now: float,
        lower_body_yaw: Optional[float] = None,
        simulation_time: Optional[float] = None,
    ):
        """
        Update every classifier field on `state`.

        The angle history must already contain this tick's sample.
        """
        self.update_lby(state, lower_body_yaw, now)
        self.detect_oscillation(state)
        self.detect_anomaly(state, simulation_time, tick, tick_interval)
        self.detect_motion_pattern(state)

    # ------------------------------------------------------------------
    # Oscillation
    # ------------------------------------------------------------------

    def detect_oscillation(self, state: TrackedEntityState) -> bool:
        """
        Count sign reversals between adjacent samples in the recent window.

        A reversal only counts when its magnitude clears the jitter threshold;
        deltas inside the noise floor are skipped entirely.
        """
        cfg = self.config
        osc = state.oscillation
        history = state.history

        if history.count < cfg.min_samples:
            osc.reset()
            return False

        pairs = min(cfg.oscillation_window, history.count - 1)
        window = history.recent(pairs + 1)  # newest first

        flips = 0
        bias = 0
        amplitude_sum = 0.0
        samples = 0
        last_sign = 0
        for i in range(pairs):
            d = normalize_angle(window[i] - window[i + 1])
            ad = abs(d)
            if ad <= cfg.noise_floor:
                continue
            sign = 1 if d > 0 else -1
            if last_sign != 0 and sign != last_sign and ad > cfg.jitter_threshold:
                flips += 1
            last_sign = sign
            bias += sign
            amplitude_sum += ad
            samples += 1

        osc.average_amplitude = amplitude_sum / samples if samples > 0 else 0.0
        osc.flips = flips
        osc.active = flips >= cfg.min_flips
        osc.side = 1 if bias >= 0 else -1
        if not osc.active:
            osc.category = OscillationCategory.NONE
        elif osc.average_amplitude <= cfg.micro_amplitude_max:
            osc.category = OscillationCategory.MICRO
        else:
            osc.category = OscillationCategory.LARGE
        return osc.active

    # ------------------------------------------------------------------
    # Anomalous timing
    # ------------------------------------------------------------------

    def detect_anomaly(
        self,
        state: TrackedEntityState,
        simulation_time: Optional[float],
        tick: int,
        tick_interval: float,
    ) -> bool:
        """
        Latch on irregular simulation-time cadence.

        The expected gap scales with the ticks elapsed since the previous
        sample, so a throttled caller does not trip the detector by itself.
        """
        cfg = self.config
        anomaly = state.anomaly

        if simulation_time is not None:
            prev_time = state.last_simulation_time
            prev_tick = state.last_simulation_tick
            state.last_simulation_time = simulation_time
            state.last_simulation_tick = tick

            if prev_time is not None:
                elapsed_ticks = max(1, tick - prev_tick) if prev_tick is not None else 1
                gap = simulation_time - prev_time
                if (gap > tick_interval * elapsed_ticks * cfg.simtime_multiplier
                        or gap < -tick_interval * cfg.simtime_negative_tolerance):
                    anomaly.latched = True
                    anomaly.since_tick = tick

        # Decays on every pass, with or without a timestamp
        if anomaly.latched and tick - anomaly.since_tick > cfg.anomaly_hold_ticks:
            anomaly.latched = False

        anomaly.stationary = (
            cfg.stationary_anomaly
            and state.oscillation.active
            and state.speed <= cfg.stationary_speed_max
        )
        return anomaly.active

    # ------------------------------------------------------------------
    # Slow turn (lower-body yaw updates)
    # ------------------------------------------------------------------

    def update_lby(
        self,
        state: TrackedEntityState,
        lower_body_yaw: Optional[float],
        now: float,
    ) -> bool:
        """Stamp large lower-body-yaw changes and refresh the recency flag."""
        cfg = self.config
        if lower_body_yaw is not None:
            if state.lby_last_value is not None:
                change = normalize_angle(lower_body_yaw - state.lby_last_value)
                if abs(change) >= cfg.lby_change_min:
                    state.lby_last_change_time = now
            state.lby_last_value = lower_body_yaw

        state.lby_recent = (
            state.lby_last_change_time is not None
            and now - state.lby_last_change_time <= cfg.lby_recent_time
        )
        return state.lby_recent

    # ------------------------------------------------------------------
    # Coarse motion pattern
    # ------------------------------------------------------------------

    def detect_motion_pattern(self, state: TrackedEntityState) -> MotionPattern:
        cfg = self.config
        history = state.history

        if abs(state.body_yaw_delta) > cfg.body_break_delta:
            pattern = MotionPattern.BODY_BREAK
        elif state.oscillation.active:
            pattern = MotionPattern.OSCILLATION
        elif history.count < cfg.pattern_min_samples:
            pattern = MotionPattern.NONE
        else:
            samples = history.chronological(history.count)
            changes = 0
            last_direction = 0
            for older, newer in zip(samples, samples[1:]):
                d = normalize_angle(newer - older)
                if abs(d) <= cfg.noise_floor:
                    continue
                direction = 1 if d > 0 else -1
                if last_direction != 0 and direction != last_direction:
                    changes += 1
                last_direction = direction

            # Window is capped at the stored history
            spin = samples[-min(cfg.spin_window, len(samples)):]
            total_change = sum(
                abs(normalize_angle(b - a)) for a, b in zip(spin, spin[1:])
            )

            if changes >= cfg.sway_direction_changes:
                pattern = MotionPattern.SWAY
            elif total_change > cfg.spin_total_change:
                pattern = MotionPattern.SPIN
            else:
                pattern = MotionPattern.NONE

        state.motion_pattern = pattern
        return pattern
