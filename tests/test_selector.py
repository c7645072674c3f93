"""Tests for target selection and its hysteresis.

pytest tests/test_selector.py -v
"""

import numpy as np
import pytest

from facing_estimator.config import SelectorConfig
from facing_estimator.observations import EntityObservation, ViewerObservation
from facing_estimator.selector import TargetSelector


def viewer(yaw=0.0):
    return ViewerObservation(position=np.zeros(2), yaw=yaw)


def entity(entity_id, x, y, **kwargs):
    return EntityObservation(entity_id=entity_id, position=np.array([x, y]), eye_yaw=0.0, **kwargs)


# ============================================================
# SCORING
# ============================================================

class TestScoring:

    def test_on_facing_candidate_wins(self):
        """Equal distance, one exactly on the facing line."""
        sel = TargetSelector(SelectorConfig())
        off_axis = entity(1, 0.0, 1000.0)
        on_axis = entity(2, 1000.0, 0.0)
        v = viewer(yaw=0.0)
        assert sel.score(v, on_axis) >= sel.score(v, off_axis)
        assert sel.select(v, [off_axis, on_axis], now=0.0) == 2

    def test_closer_candidate_wins_at_equal_fov(self):
        sel = TargetSelector(SelectorConfig())
        far = entity(1, 2500.0, 0.0)
        near = entity(2, 300.0, 0.0)
        assert sel.select(viewer(), [far, near], now=0.0) == 2

    def test_tie_keeps_first_candidate(self):
        sel = TargetSelector(SelectorConfig())
        a = entity(7, 1000.0, 100.0)
        b = entity(3, 1000.0, -100.0)
        assert sel.score(viewer(), a) == pytest.approx(sel.score(viewer(), b))
        assert sel.select(viewer(), [a, b], now=0.0) == 7

    def test_armor_lowers_priority(self):
        sel = TargetSelector(SelectorConfig())
        armored = entity(1, 1000.0, 0.0, health=100.0, armor=100.0)
        bare = entity(2, 1000.0, 0.0, health=100.0, armor=0.0)
        assert sel.score(viewer(), bare) > sel.score(viewer(), armored)
        assert sel.select(viewer(), [armored, bare], now=0.0) == 2

    def test_minimal_weights_ignore_health(self):
        sel = TargetSelector(SelectorConfig(
            fov_weight=0.7, distance_weight=0.3, health_weight=0.0, armor_weight=0.0,
        ))
        hurt = entity(1, 1000.0, 0.0, health=5.0, armor=100.0)
        healthy = entity(2, 1000.0, 0.0, health=100.0, armor=0.0)
        assert sel.score(viewer(), hurt) == pytest.approx(sel.score(viewer(), healthy))

    def test_score_is_bounded(self):
        sel = TargetSelector(SelectorConfig())
        s = sel.score(viewer(), entity(1, 10.0, 0.0, health=100.0, armor=0.0))
        assert 0.0 <= s <= 1.0


# ============================================================
# FILTERING
# ============================================================

class TestFiltering:

    def test_filters_dead_hidden_far_and_unplaced(self):
        sel = TargetSelector(SelectorConfig())
        candidates = [
            entity(1, 100.0, 0.0, alive=False),
            entity(2, 100.0, 0.0, visible=False),
            entity(3, 5000.0, 0.0),
            EntityObservation(entity_id=4, position=None, eye_yaw=0.0),
        ]
        assert sel.select(viewer(), candidates, now=0.0) is None
        assert sel.state.active_target is None

    def test_no_candidates(self):
        sel = TargetSelector(SelectorConfig())
        assert sel.select(viewer(), [], now=0.0) is None

    def test_viewer_without_facing(self):
        sel = TargetSelector(SelectorConfig())
        v = ViewerObservation(position=np.zeros(2), yaw=None)
        assert sel.select(v, [entity(1, 100.0, 0.0)], now=0.0) is None


# ============================================================
# HYSTERESIS
# ============================================================

class TestHysteresis:

    def test_keeps_target_within_interval(self):
        """Scores change, but the previous target sticks until the interval passes."""
        sel = TargetSelector(SelectorConfig(update_interval=0.15))
        first = [entity(1, 500.0, 0.0), entity(2, 0.0, 2500.0)]
        assert sel.select(viewer(), first, now=0.0) == 1

        # Entity 2 is now the obvious choice
        changed = [entity(1, 0.0, -2900.0), entity(2, 200.0, 0.0)]
        assert sel.select(viewer(), changed, now=0.10) == 1
        assert sel.select(viewer(), changed, now=0.20) == 2

    def test_invalid_previous_target_forces_rescore(self):
        sel = TargetSelector(SelectorConfig(update_interval=0.15))
        assert sel.select(viewer(), [entity(1, 500.0, 0.0), entity(2, 900.0, 0.0)], now=0.0) == 1
        dead = [entity(1, 500.0, 0.0, alive=False), entity(2, 900.0, 0.0)]
        assert sel.select(viewer(), dead, now=0.05) == 2

    def test_missing_previous_target_forces_rescore(self):
        sel = TargetSelector(SelectorConfig(update_interval=0.15))
        assert sel.select(viewer(), [entity(1, 500.0, 0.0)], now=0.0) == 1
        assert sel.select(viewer(), [entity(2, 900.0, 0.0)], now=0.05) == 2

    def test_reset_clears_cache(self):
        sel = TargetSelector(SelectorConfig())
        sel.select(viewer(), [entity(1, 500.0, 0.0)], now=0.0)
        sel.reset()
        assert sel.state.active_target is None
        assert sel.state.last_selection_time is None
