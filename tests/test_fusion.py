"""Tests for hypothesis construction and fusion.

pytest tests/test_fusion.py -v
"""

import pytest

from facing_estimator.config import FusionConfig, get_config, EXTENDED_FALLBACK_OFFSETS
from facing_estimator.fusion import ResolutionFuser, Hypothesis
from facing_estimator.geometry import normalize_angle
from facing_estimator.state import TrackedEntityState, OscillationCategory


def make_state(samples=(), capacity=8):
    state = TrackedEntityState.create(1, capacity)
    for a in samples:
        state.history.push(a)
    return state


def sources(hypotheses):
    return [h.source for h in hypotheses]


# ============================================================
# HYPOTHESES
# ============================================================

class TestBuildHypotheses:

    def test_fallback_always_present(self):
        fuser = ResolutionFuser(FusionConfig())
        hyps = fuser.build_hypotheses(make_state(), ideal=90.0)
        assert sources(hyps) == ["fallback"]
        assert hyps[0].angle == pytest.approx(150.0)
        assert hyps[0].weight == pytest.approx(0.10)

    @pytest.mark.parametrize("delta, expected", [(45.0, 150.0), (-45.0, 30.0)])
    def test_body_layer_follows_delta_sign(self, delta, expected):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.body_yaw_delta = delta
        body = fuser.build_hypotheses(state, ideal=90.0)[0]
        assert body.source == "body"
        assert body.angle == pytest.approx(expected)
        assert body.weight == pytest.approx(0.40)
        assert body.label == "body"

    def test_body_below_threshold_excluded(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.body_yaw_delta = 30.0
        assert "body" not in sources(fuser.build_hypotheses(state, ideal=0.0))

    def test_recent_lby_boosts_body(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.body_yaw_delta = 50.0
        state.lby_recent = True
        body = fuser.build_hypotheses(state, ideal=0.0)[0]
        assert body.weight == pytest.approx(0.60)
        assert body.label == "lby-update"

    def test_large_oscillation(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.oscillation.active = True
        state.oscillation.side = -1
        state.oscillation.category = OscillationCategory.LARGE
        osc = fuser.build_hypotheses(state, ideal=10.0)[0]
        assert osc.source == "oscillation"
        assert osc.angle == pytest.approx(-48.0)
        assert osc.weight == pytest.approx(0.40)

    def test_micro_oscillation(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.oscillation.active = True
        state.oscillation.side = 1
        state.oscillation.category = OscillationCategory.MICRO
        osc = fuser.build_hypotheses(state, ideal=10.0)[0]
        assert osc.angle == pytest.approx(40.0)
        assert osc.weight == pytest.approx(0.30)
        assert osc.label == "oscillation-micro"

    def test_anomaly_replays_sample_two_back(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state([10.0, 20.0, 30.0, 40.0])
        state.anomaly.latched = True
        anomaly = [h for h in fuser.build_hypotheses(state, ideal=0.0) if h.source == "anomaly"][0]
        assert anomaly.angle == pytest.approx(20.0)
        assert anomaly.weight == pytest.approx(0.20)

    def test_anomaly_with_short_history_uses_oldest(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state([15.0])
        state.anomaly.latched = True
        anomaly = [h for h in fuser.build_hypotheses(state, ideal=0.0) if h.source == "anomaly"][0]
        assert anomaly.angle == pytest.approx(15.0)

    def test_historical_needs_full_window(self):
        fuser = ResolutionFuser(FusionConfig())
        assert "historical" not in sources(fuser.build_hypotheses(make_state([5.0] * 7), ideal=0.0))

        hyps = fuser.build_hypotheses(make_state([5.0] * 8), ideal=0.0)
        historical = [h for h in hyps if h.source == "historical"][0]
        assert historical.angle == pytest.approx(5.0)
        assert historical.weight == pytest.approx(0.15)

    def test_historical_favours_recent_samples(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state([0.0, 0.0, 0.0, 0.0, 40.0, 40.0, 40.0, 40.0])
        historical = [h for h in fuser.build_hypotheses(state, ideal=0.0) if h.source == "historical"][0]
        assert 20.0 < historical.angle < 40.0

    def test_historical_disabled_in_minimal(self):
        fuser = ResolutionFuser(get_config("minimal").fusion)
        assert "historical" not in sources(fuser.build_hypotheses(make_state([5.0] * 8), ideal=0.0))

    def test_fallback_cursor_indexes_table(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.fallback_cursor = 3
        fallback = fuser.build_hypotheses(state, ideal=0.0)[-1]
        assert fallback.angle == pytest.approx(-90.0)
        assert fuser.fallback_offset(len(EXTENDED_FALLBACK_OFFSETS) + 1) == EXTENDED_FALLBACK_OFFSETS[1]

    def test_hypothesis_angles_normalized(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.body_yaw_delta = 80.0
        for h in fuser.build_hypotheses(state, ideal=170.0):
            assert -180.0 < h.angle <= 180.0


# ============================================================
# FUSION
# ============================================================

class TestFuse:

    def test_fallback_only(self):
        """Nothing else active: ideal + first offset, confidence = fallback weight."""
        for preset in ("default", "minimal"):
            cfg = get_config(preset).fusion
            fuser = ResolutionFuser(cfg)
            res = fuser.resolve(make_state(), ideal=90.0)
            assert res.angle == pytest.approx(normalize_angle(90.0 + cfg.fallback_offsets[0]))
            assert res.confidence == pytest.approx(cfg.fallback_weight)
            assert res.method == "fallback"

    def test_body_and_fallback(self):
        """Negative body delta at bearing 90: result lies between 30 and 90."""
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.body_yaw_delta = -45.0
        res = fuser.resolve(state, ideal=90.0)
        assert 30.0 < res.angle < 90.0
        assert 0.45 <= res.confidence <= 0.50
        assert res.method == "body"
        assert state.resolution is res

    def test_linear_averaging_matches_source_arithmetic(self):
        fuser = ResolutionFuser(FusionConfig(averaging="linear"))
        state = make_state()
        state.body_yaw_delta = -45.0
        res = fuser.resolve(state, ideal=90.0)
        assert res.angle == pytest.approx((30.0 * 0.4 + 150.0 * 0.1) / 0.5)

    def test_circular_mean_across_wrap(self):
        hyps = [Hypothesis(170.0, 0.5, "body", "body"), Hypothesis(-170.0, 0.5, "fallback", "fallback")]
        state = make_state()
        circular = ResolutionFuser(FusionConfig()).fuse(hyps, state, ideal=180.0)
        linear = ResolutionFuser(FusionConfig(averaging="linear")).fuse(hyps, state, ideal=180.0)
        assert abs(circular.angle) == pytest.approx(180.0)
        assert linear.angle == pytest.approx(0.0)

    def test_micro_oscillation_scales_confidence(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state()
        state.oscillation.active = True
        state.oscillation.category = OscillationCategory.MICRO
        res = fuser.resolve(state, ideal=0.0)
        assert res.confidence == pytest.approx((0.30 + 0.10) * 0.95)
        assert res.method == "oscillation-micro"

    def test_anomaly_bonus(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state([0.0, 0.0, 0.0])
        state.anomaly.latched = True
        res = fuser.resolve(state, ideal=0.0)
        assert res.confidence == pytest.approx(0.20 + 0.10 + 0.05)
        assert res.method == "anomaly"

    def test_confidence_clamped(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state([0.0] * 8)
        state.body_yaw_delta = 90.0
        state.lby_recent = True
        state.oscillation.active = True
        state.oscillation.category = OscillationCategory.LARGE
        state.anomaly.latched = True
        res = fuser.resolve(state, ideal=0.0)
        assert res.confidence == pytest.approx(1.0)
        assert -180.0 < res.angle <= 180.0

    def test_method_priority(self):
        fuser = ResolutionFuser(FusionConfig())
        state = make_state([0.0] * 8)
        state.oscillation.active = True
        state.oscillation.category = OscillationCategory.LARGE
        state.anomaly.latched = True
        assert fuser.resolve(state, ideal=0.0).method == "oscillation"

        state.body_yaw_delta = 45.0
        assert fuser.resolve(state, ideal=0.0).method == "body"

        state.body_yaw_delta = 0.0
        state.oscillation.active = False
        assert fuser.resolve(state, ideal=0.0).method == "anomaly"

        state.anomaly.latched = False
        assert fuser.resolve(state, ideal=0.0).method == "historical"

    def test_empty_hypotheses_fall_back_to_ideal(self):
        res = ResolutionFuser(FusionConfig()).fuse([], make_state(), ideal=-190.0)
        assert res.angle == pytest.approx(170.0)
        assert res.method == "ideal"
