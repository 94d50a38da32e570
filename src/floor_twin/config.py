"""Configuration schemas - re-exports from loader for convenience."""

# Re-export config types from loader
from floor_twin.loader import (
    ConfigLoader,
    ConfigParseError,
    ConsumerSpec,
    MachineSpec,
    ResolvedConfig,
    SwitchSpec,
    TimingConfig,
    TopologyConfig,
    default_topology,
)

__all__ = [
    "ConfigLoader",
    "ConfigParseError",
    "ConsumerSpec",
    "MachineSpec",
    "ResolvedConfig",
    "SwitchSpec",
    "TimingConfig",
    "TopologyConfig",
    "default_topology",
]
