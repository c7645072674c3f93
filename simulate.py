#!/usr/bin/env python3
"""
Synthetic Scene Simulation
==========================
Drive the resolver engine against scripted entities with a hidden true
facing, feed hit/miss outcomes back, and report how the estimate behaves.

Usage:
    python simulate.py                          # Default preset, 600 ticks
    python simulate.py --preset minimal         # Lightweight variant
    python simulate.py --ticks 2000 --seed 7    # Longer, reproducible run
    python simulate.py --plot                   # Resolved vs true angle
    python simulate.py --config my_config.yaml  # Custom configuration
"""

import argparse
import logging
from typing import Optional, Dict, Any, List, Tuple

import numpy as np
import matplotlib.pyplot as plt

from facing_estimator.config import Config, get_config
from facing_estimator.engine import ResolverEngine
from facing_estimator.geometry import angular_delta, bearing_to, normalize_angle
from facing_estimator.observations import EntityObservation, TickFrame, ViewerObservation
from facing_estimator.report import format_summary

logger = logging.getLogger("simulate")

BEHAVIORS = ("static", "oscillation", "micro", "body_break", "lagging")


class SyntheticEntity:
    """Scripted entity whose true facing is offset from the viewer bearing."""

    def __init__(
        self,
        entity_id: int,
        position: np.ndarray,
        behavior: str,
        true_offset: float,
        rng: np.random.Generator,
        noise_std: float = 2.0,
    ):
        if behavior not in BEHAVIORS:
            raise ValueError(f"Unknown behavior: {behavior}. Available: {list(BEHAVIORS)}")
        self.entity_id = entity_id
        self.position = np.asarray(position, dtype=np.float64)
        self.behavior = behavior
        self.true_offset = true_offset
        self.rng = rng
        self.noise_std = noise_std
        self.simulation_time = 0.0

    def true_facing(self, viewer_pos: np.ndarray) -> float:
        return normalize_angle(bearing_to(viewer_pos, self.position) + self.true_offset)

    def sample(self, tick: int, tick_interval: float, viewer_pos: np.ndarray) -> EntityObservation:
        """Observation as the host would report it this tick."""
        truth = self.true_facing(viewer_pos)
        noise = float(self.rng.normal(0.0, self.noise_std))
        phase = 1 if (tick // 2) % 2 == 0 else -1
        velocity = np.zeros(2)
        lby = truth

        if self.behavior == "oscillation":
            eye = truth + 58.0 * phase + noise
        elif self.behavior == "micro":
            eye = truth + 14.0 * phase + noise
        elif self.behavior == "body_break":
            eye = truth + noise
            lby = truth + (80.0 if (tick // 40) % 2 == 0 else -80.0)
            velocity = np.array([120.0, 0.0])
        else:
            eye = truth + noise
            velocity = np.array([60.0, 40.0])

        self.simulation_time += tick_interval
        if self.behavior == "lagging" and self.rng.random() < 0.05:
            self.simulation_time += tick_interval * 4

        return EntityObservation(
            entity_id=self.entity_id,
            position=self.position,
            velocity=velocity,
            eye_yaw=normalize_angle(eye),
            lower_body_yaw=normalize_angle(lby),
            simulation_time=self.simulation_time,
            health=100.0,
            armor=float(self.rng.integers(0, 101)),
        )


class Simulator:
    """Run a scripted scene through the engine."""

    def __init__(
        self,
        config: Optional[Config] = None,
        seed: Optional[int] = None,
        tick_interval: float = 1.0 / 64.0,
        hit_tolerance: float = 20.0,
        sweep_rate: float = 0.5,
    ):
        """
        Initialize simulator.

        Args:
            config: Engine config (uses default if None)
            seed: RNG seed for reproducible scenes
            tick_interval: Simulation step duration (seconds)
            hit_tolerance: Max error (deg) counted as a hit
            sweep_rate: Viewer yaw change per tick (deg)
        """
        self.config = config or Config()
        self.rng = np.random.default_rng(seed)
        self.tick_interval = tick_interval
        self.hit_tolerance = hit_tolerance
        self.sweep_rate = sweep_rate

        self.published: List[Tuple[int, float, bool]] = []
        self.engine = ResolverEngine(self.config, sink=self._record_override)
        self.viewer_pos = np.zeros(2)
        self.entities = self._build_scene()

    def _record_override(self, entity_id: int, angle: float, force: bool):
        self.published.append((entity_id, angle, force))

    def _build_scene(self) -> List[SyntheticEntity]:
        entities = []
        offsets = {"static": 0.0, "oscillation": 58.0, "micro": 30.0, "body_break": 60.0, "lagging": -45.0}
        for i, behavior in enumerate(BEHAVIORS):
            bearing = np.radians(i * 360.0 / len(BEHAVIORS))
            dist = float(self.rng.uniform(400.0, 1500.0))
            pos = np.array([np.cos(bearing), np.sin(bearing)]) * dist
            entities.append(SyntheticEntity(i + 1, pos, behavior, offsets[behavior], self.rng))
        return entities

    def run(self, ticks: int = 600) -> Dict[str, Any]:
        """
        Run the scene and collect a per-tick trace.

        Returns:
            Trace of resolved vs true angles plus the final snapshot
        """
        trace = {"tick": [], "entity": [], "resolved": [], "truth": [], "confidence": []}
        by_id = {e.entity_id: e for e in self.entities}

        for tick in range(ticks):
            frame = TickFrame(
                tick=tick,
                realtime=tick * self.tick_interval,
                tick_interval=self.tick_interval,
                viewer=ViewerObservation(
                    position=self.viewer_pos,
                    yaw=normalize_angle(tick * self.sweep_rate),
                ),
                entities=[e.sample(tick, self.tick_interval, self.viewer_pos) for e in self.entities],
            )
            resolution = self.engine.on_tick(frame)
            if resolution is None:
                continue

            target = by_id[self.engine.active_target]
            truth = target.true_facing(self.viewer_pos)
            trace["tick"].append(tick)
            trace["entity"].append(target.entity_id)
            trace["resolved"].append(resolution.angle)
            trace["truth"].append(truth)
            trace["confidence"].append(resolution.confidence)

            # Every fourth pass counts as a shot
            if len(trace["tick"]) % 4 == 0:
                if angular_delta(resolution.angle, truth) <= self.hit_tolerance:
                    self.engine.on_hit(target.entity_id, tick)
                else:
                    self.engine.on_miss(target.entity_id, tick)

        trace["snapshot"] = self.engine.snapshot()
        return trace

    def plot(self, trace: Dict[str, Any], save_path: Optional[str] = None):
        """Resolved vs true facing for every estimation pass."""
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(11, 7), sharex=True)
        ticks = np.asarray(trace["tick"])
        ax1.plot(ticks, trace["truth"], "k.", markersize=3, label="true facing")
        ax1.plot(ticks, trace["resolved"], "r.", markersize=3, label="resolved")
        ax1.set_ylabel("angle (deg)")
        ax1.set_ylim(-185, 185)
        ax1.legend(loc="upper right")
        ax1.grid(True, alpha=0.3)

        errors = [angular_delta(r, t) for r, t in zip(trace["resolved"], trace["truth"])]
        ax2.plot(ticks, errors, "b-", linewidth=0.8, label="error")
        ax2.plot(ticks, np.asarray(trace["confidence"]) * 180.0, "g-", linewidth=0.8, label="confidence x180")
        ax2.axhline(self.hit_tolerance, color="gray", linestyle="--", linewidth=0.8)
        ax2.set_xlabel("tick")
        ax2.set_ylabel("deg")
        ax2.legend(loc="upper right")
        ax2.grid(True, alpha=0.3)

        fig.tight_layout()
        if save_path:
            fig.savefig(save_path, dpi=120)
            print(f"Saved plot: {save_path}")
        else:
            plt.show()


def main():
    parser = argparse.ArgumentParser(description="Run the resolver on a synthetic scene")
    parser.add_argument("--preset", type=str, default="default",
                        help="Configuration preset (default, minimal, strict)")
    parser.add_argument("--config", type=str, default=None,
                        help="Configuration file (.yaml/.yml/.json), overrides --preset")
    parser.add_argument("--ticks", type=int, default=600,
                        help="Number of simulation ticks")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed")
    parser.add_argument("--tolerance", type=float, default=20.0,
                        help="Hit tolerance in degrees")
    parser.add_argument("--plot", action="store_true",
                        help="Plot resolved vs true angles")
    parser.add_argument("--save-plot", type=str, default=None,
                        help="Save the plot instead of showing it")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        help="Logging level (DEBUG, INFO, WARNING)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = Config.load(args.config) if args.config else get_config(args.preset)
    logger.info("Using configuration %s", config.name)

    sim = Simulator(config=config, seed=args.seed, hit_tolerance=args.tolerance)
    trace = sim.run(args.ticks)

    print(f"\n{'=' * 50}")
    print(f"Estimation passes: {len(trace['tick'])}  Overrides published: {len(sim.published)}")
    if trace["tick"]:
        errors = [angular_delta(r, t) for r, t in zip(trace["resolved"], trace["truth"])]
        print(f"Mean error: {np.mean(errors):.1f} deg  Median: {np.median(errors):.1f} deg")
        print(f"Mean confidence: {np.mean(trace['confidence']) * 100:.0f}%")
    print(f"{'=' * 50}")
    for line in format_summary(trace["snapshot"]):
        print(line)

    if args.plot or args.save_plot:
        sim.plot(trace, save_path=args.save_plot)


if __name__ == "__main__":
    main()
