"""
Facing Estimator
================
Per-entity facing-angle estimation from noisy samples, behaviour
classifiers, and hit/miss feedback.
"""
from .geometry import normalize_angle, angular_delta, bearing_to
from .config import Config, get_config
from .history import AngleHistory
from .state import (
    TrackedEntityState,
    SelectionState,
    OscillationState,
    OscillationCategory,
    AnomalyState,
    MotionPattern,
    Resolution,
)
from .observations import ViewerObservation, EntityObservation, TickFrame
from .selector import TargetSelector
from .classifier import PatternClassifier
from .fusion import ResolutionFuser, Hypothesis
from .feedback import FeedbackTracker
from .engine import ResolverEngine
from .report import EngineSnapshot, EntityReport, format_summary

__all__ = [
    # Angle math
    "normalize_angle",
    "angular_delta",
    "bearing_to",
    # Configuration
    "Config",
    "get_config",
    # State
    "AngleHistory",
    "TrackedEntityState",
    "SelectionState",
    "OscillationState",
    "OscillationCategory",
    "AnomalyState",
    "MotionPattern",
    "Resolution",
    # Observations
    "ViewerObservation",
    "EntityObservation",
    "TickFrame",
    # Components
    "TargetSelector",
    "PatternClassifier",
    "ResolutionFuser",
    "Hypothesis",
    "FeedbackTracker",
    "ResolverEngine",
    # Reporting
    "EngineSnapshot",
    "EntityReport",
    "format_summary",
]
