"""Topology command: resolve a config file and print the station layout."""

from pathlib import Path
from typing import Optional

from floor_twin.loader import ConfigLoader, ResolvedConfig


def topology(config_path: Optional[str] = None) -> ResolvedConfig:
    """Resolve the topology that a run with this config would use."""
    resolved = ConfigLoader(Path(config_path) if config_path else None).load_or_default()
    topo = resolved.topology

    origin = "built-in default" if resolved.is_default_topology else str(resolved.source)
    print(f"Topology: {origin}")
    print(f"  Machine: {topo.machine.id} ({topo.machine.name})")
    for switch in topo.switches:
        consumers = [c.id for c in topo.consumers if c.switch_id == switch.id]
        print(f"  Switch {switch.id}: {', '.join(consumers)}")

    timing = resolved.timing
    print("\nTiming:")
    print(f"  Status tick:     every {timing.status_period_sec}s, "
          f"fault p={timing.fault_probability}, recovery {timing.recovery_delay_sec}s")
    print(f"  Spawn tick:      every {timing.spawn_period_sec}s "
          f"(first after {timing.spawn_initial_delay_sec}s)")
    print(f"  Journey:         {timing.to_switch_delay_sec}s -> switch, "
          f"{timing.to_consumer_delay_sec}s -> consumer, "
          f"{timing.delivery_delay_sec}s -> delivered")
    print(f"  Max in transit:  {timing.max_in_transit}")
    return resolved
