"""Concurrent factory-floor line simulation: machine -> switch -> consumer."""

from floor_twin.bus import NotificationBus, Subscription
from floor_twin.cli import simulate, topology
from floor_twin.clock import SimulationClock, TransientTickError
from floor_twin.config import (
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
from floor_twin.errors import (
    CapacityError,
    NotFoundError,
    RouteError,
    TopologyError,
    TransitError,
)
from floor_twin.models import (
    ComponentInTransit,
    ComponentType,
    ProductionSystem,
    Station,
    StationKind,
    StationStatus,
    TransportRoute,
)
from floor_twin.realtime import RealtimeDriver
from floor_twin.registry import StationRegistry
from floor_twin.routing import RouteController
from floor_twin.service import ProductionService
from floor_twin.telemetry import TelemetryRecorder
from floor_twin.tracker import TransitTracker

__all__ = [
    # Models
    "StationStatus",
    "StationKind",
    "ComponentType",
    "Station",
    "ComponentInTransit",
    "TransportRoute",
    "ProductionSystem",
    # Config
    "ConfigLoader",
    "ConfigParseError",
    "ResolvedConfig",
    "TopologyConfig",
    "TimingConfig",
    "MachineSpec",
    "SwitchSpec",
    "ConsumerSpec",
    "default_topology",
    # Errors
    "NotFoundError",
    "TopologyError",
    "TransitError",
    "CapacityError",
    "RouteError",
    "TransientTickError",
    # Core
    "StationRegistry",
    "TransitTracker",
    "RouteController",
    "NotificationBus",
    "Subscription",
    "SimulationClock",
    "RealtimeDriver",
    "ProductionService",
    "TelemetryRecorder",
    # CLI
    "simulate",
    "topology",
]
