"""Simulate command: run the line and report what was broadcast."""

import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from floor_twin.service import ProductionService
from floor_twin.telemetry import TelemetryRecorder


def simulate(
    config_path: Optional[str] = None,
    duration_sec: float = 30.0,
    seed: Optional[int] = None,
    virtual: bool = False,
    factor: float = 1.0,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """Run the simulation for a fixed duration.

    Args:
        config_path: Topology config file (default topology when omitted or invalid)
        duration_sec: Simulated seconds to run
        seed: Random seed for reproducible runs
        virtual: If True, run in virtual time as fast as possible
        factor: Simulated seconds per wall-clock second (realtime mode)

    Returns:
        Tuple of (telemetry_df, summary)
    """
    service = ProductionService.from_config(
        Path(config_path) if config_path else None, seed=seed
    )
    recorder = TelemetryRecorder(service.subscribe(maxsize=10_000))

    source = service.config.source or "built-in default"
    print(f"Running simulation: {source}")
    print(f"  Duration: {duration_sec:.1f}s ({'virtual' if virtual else f'realtime x{factor}'})")

    with service:
        if virtual:
            service.activate(realtime=False)
            elapsed = 0.0
            while elapsed < duration_sec:
                step = min(1.0, duration_sec - elapsed)
                service.advance(step)
                elapsed += step
                recorder.collect()
        else:
            service.activate(realtime=True, factor=factor)
            deadline = time.monotonic() + duration_sec / factor
            while time.monotonic() < deadline:
                time.sleep(0.25)
                recorder.collect()

    recorder.collect()
    summary = recorder.summary()
    _print_summary(summary, service)
    return recorder.to_frame(), summary


def _print_summary(summary: Dict[str, Any], service: ProductionService) -> None:
    state = service.get_current_state()

    print("\n--- SIMULATION COMPLETE ---")
    print(f"Broadcasts:        {summary['broadcasts']:,}")
    if summary["broadcasts"] == 0:
        return
    print(f"Simulated Time:    {summary['sim_time']:.1f}s")
    print(f"Components Spawned:   {summary['spawned']:,}")
    print(f"Components Delivered: {summary['delivered']:,}")
    print(f"Spawns Dropped:       {summary['dropped']:,}")
    print(f"Peak In Transit:      {summary['max_in_transit']:,}")
    print(f"Still In Transit:     {len(state.components_in_transit):,}")

    print("\n--- MACHINE STATUS (share of broadcasts) ---")
    for status, pct in summary["machine_status_pct"].items():
        print(f"{status:<12} {pct:5.1f}%")
    print(f"\nFinal machine status: {state.machine.status.value}")
    print(f"Faults: {service.clock.faults_injected}  Recoveries: {service.clock.recoveries}")
    if service.clock.tick_errors:
        print(f"Tick errors: {len(service.clock.tick_errors)}")
