"""
Configuration Management
========================
Centralized configuration for target selection, classification, and fusion.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Tuple
import json
import yaml
from pathlib import Path


# Hand-picked fallback offsets (degrees), tried in order on consecutive misses
EXTENDED_FALLBACK_OFFSETS = (
    60.0, -60.0, 90.0, -90.0, 45.0, -45.0, 30.0, -30.0,
    120.0, -120.0, 15.0, -15.0, 75.0, -75.0, 105.0, -105.0,
)
MINIMAL_FALLBACK_OFFSETS = (60.0, -60.0, 90.0, -90.0, 45.0, -45.0, 30.0, -30.0)


@dataclass
class SelectorConfig:
    """Target selection parameters."""
    update_interval: float = 0.15       # Seconds between rescoring passes
    max_distance: float = 3000.0        # Farther candidates are ignored

    # Score weights (higher total score wins)
    fov_weight: float = 0.4
    distance_weight: float = 0.3
    health_weight: float = 0.2
    armor_weight: float = 0.1

    def __post_init__(self):
        """Validate configuration."""
        assert self.update_interval >= 0, "Update interval must be non-negative"
        assert self.max_distance > 0, "Max distance must be positive"
        weights = (self.fov_weight, self.distance_weight, self.health_weight, self.armor_weight)
        assert all(w >= 0 for w in weights), "Score weights must be non-negative"
        assert abs(sum(weights) - 1.0) < 1e-6, "Score weights must sum to 1"


@dataclass
class HistoryConfig:
    """Per-entity angle history."""
    capacity: int = 8

    def __post_init__(self):
        assert 8 <= self.capacity <= 32, "History capacity must be within [8, 32]"


@dataclass
class ClassifierConfig:
    """Pattern classifier thresholds."""
    # Oscillation ("jitter")
    min_samples: int = 4                # Below this, oscillation state resets
    oscillation_window: int = 6         # Adjacent pairs examined per tick
    min_flips: int = 2                  # Sign reversals needed to declare oscillation
    jitter_threshold: float = 28.0      # Min |delta| (deg) for a reversal to count
    noise_floor: float = 0.1            # Deltas at or below this are ignored
    micro_amplitude_max: float = 18.0   # Avg amplitude at or below -> MICRO

    # Anomalous timing ("defensive")
    simtime_multiplier: float = 1.7     # Forward gap limit, in tick intervals
    simtime_negative_tolerance: float = 0.5  # Backward gap limit, in tick intervals
    anomaly_hold_ticks: int = 16        # Latch lifetime without re-trigger
    stationary_anomaly: bool = True     # Oscillating while near-still counts as anomaly
    stationary_speed_max: float = 8.0   # Units/s

    # Slow-turn ("LBY")
    lby_change_min: float = 25.0        # Degrees
    lby_recent_time: float = 0.45       # Seconds

    # Motion pattern reporting
    pattern_min_samples: int = 8
    sway_direction_changes: int = 4
    spin_window: int = 12
    spin_total_change: float = 300.0
    body_break_delta: float = 60.0

    def __post_init__(self):
        """Validate configuration."""
        assert self.min_samples >= 4, "Oscillation needs at least 4 samples"
        assert self.oscillation_window >= 2, "Oscillation window must cover 2+ pairs"
        assert self.min_flips >= 1
        assert self.jitter_threshold > self.noise_floor >= 0
        assert self.simtime_multiplier > 1.0
        assert self.anomaly_hold_ticks > 0
        assert self.lby_recent_time >= 0


@dataclass
class FusionConfig:
    """Resolution fuser layer offsets and base weights."""
    body_threshold: float = 30.0
    body_offset: float = 60.0
    body_weight: float = 0.40
    body_recent_lby_weight: float = 0.60

    oscillation_large_offset: float = 58.0
    oscillation_micro_offset: float = 30.0
    oscillation_large_weight: float = 0.40
    oscillation_micro_weight: float = 0.30

    anomaly_lookback: int = 2           # Samples back from the newest
    anomaly_weight: float = 0.20

    historical_enabled: bool = True
    historical_samples: int = 8
    historical_weight: float = 0.15

    fallback_offsets: Tuple[float, ...] = EXTENDED_FALLBACK_OFFSETS
    fallback_weight: float = 0.10

    # "circular" (vector mean) or "linear" (raw weighted average)
    averaging: str = "circular"
    micro_confidence_scale: float = 0.95
    anomaly_confidence_bonus: float = 0.05

    def __post_init__(self):
        """Validate configuration."""
        self.fallback_offsets = tuple(float(o) for o in self.fallback_offsets)
        assert len(self.fallback_offsets) > 0, "Fallback table must not be empty"
        assert self.averaging in ("circular", "linear"), f"Unknown averaging: {self.averaging}"
        weights = (
            self.body_weight, self.body_recent_lby_weight,
            self.oscillation_large_weight, self.oscillation_micro_weight,
            self.anomaly_weight, self.historical_weight, self.fallback_weight,
        )
        assert all(w > 0 for w in weights), "Layer weights must be positive"
        assert self.anomaly_lookback >= 0
        assert self.historical_samples >= 2


@dataclass
class EngineConfig:
    """Tick loop settings."""
    resolve_every_n_ticks: int = 2      # Estimation runs at most once per N ticks
    confidence_threshold: float = 0.6   # Reporting cutoff for "confident"
    force_override: bool = True

    def __post_init__(self):
        assert self.resolve_every_n_ticks >= 1
        assert 0.0 <= self.confidence_threshold <= 1.0


@dataclass
class Config:
    """Master configuration combining all settings."""
    selector: SelectorConfig = field(default_factory=SelectorConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    fusion: FusionConfig = field(default_factory=FusionConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)

    name: str = "default"

    def __post_init__(self):
        """Cross-section checks."""
        assert self.history.capacity > self.classifier.oscillation_window, \
            "History must hold more samples than the oscillation window"
        assert self.history.capacity > self.fusion.anomaly_lookback
        if self.fusion.historical_enabled:
            assert self.history.capacity >= self.fusion.historical_samples, \
                "History too small for the historical layer"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["fusion"]["fallback_offsets"] = list(self.fusion.fallback_offsets)
        return data

    def save(self, path: str):
        """Save configuration to file."""
        path = Path(path)
        data = self.to_dict()

        if path.suffix == ".json":
            with open(path, "w") as f:
                json.dump(data, f, indent=2)
        elif path.suffix in (".yaml", ".yml"):
            with open(path, "w") as f:
                yaml.dump(data, f, default_flow_style=False)
        else:
            raise ValueError(f"Unsupported format: {path.suffix}")

    @classmethod
    def load(cls, path: str) -> "Config":
        """Load configuration from file."""
        path = Path(path)

        if path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
        elif path.suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported format: {path.suffix}")

        data = data or {}
        return cls(
            selector=SelectorConfig(**data.get("selector", {})),
            history=HistoryConfig(**data.get("history", {})),
            classifier=ClassifierConfig(**data.get("classifier", {})),
            fusion=FusionConfig(**data.get("fusion", {})),
            engine=EngineConfig(**data.get("engine", {})),
            name=data.get("name", "default"),
        )


# ============== PRESET CONFIGURATIONS ==============

def get_default_config() -> Config:
    """Extended layers with the short oscillation window."""
    return Config()


def get_minimal_config() -> Config:
    """Lightweight variant: no historical layer, no health/armor scoring."""
    return Config(
        selector=SelectorConfig(
            fov_weight=0.7, distance_weight=0.3,
            health_weight=0.0, armor_weight=0.0,
        ),
        fusion=FusionConfig(
            historical_enabled=False,
            fallback_offsets=MINIMAL_FALLBACK_OFFSETS,
            fallback_weight=0.05,
        ),
        name="minimal",
    )


def get_strict_config() -> Config:
    """Long history; oscillation needs six reversals over sixteen pairs."""
    return Config(
        history=HistoryConfig(capacity=32),
        classifier=ClassifierConfig(oscillation_window=16, min_flips=6),
        fusion=FusionConfig(
            oscillation_large_weight=0.35,
            fallback_weight=0.10,
        ),
        name="strict",
    )


PRESETS = {
    "default": get_default_config,
    "minimal": get_minimal_config,
    "strict": get_strict_config,
}


def get_config(preset: str = "default") -> Config:
    """Get configuration by preset name."""
    if preset not in PRESETS:
        raise ValueError(f"Unknown preset: {preset}. Available: {list(PRESETS.keys())}")
    return PRESETS[preset]()
