"""Pydantic schemas for the factory-floor model."""

import uuid
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class StationStatus(str, Enum):
    """Operational status of a station.

    Any status may follow any other; there is no transition table.
    """

    RUNNING = "Running"
    STOPPED = "Stopped"
    ERROR = "Error"
    MAINTENANCE = "Maintenance"


class StationKind(str, Enum):
    """Role of a station in the line."""

    MACHINE = "Machine"
    SWITCH = "Switch"
    CONSUMER = "Consumer"


class ComponentType(str, Enum):
    """Component variants emitted by the machine."""

    TYPE_A = "TypeA"
    TYPE_B = "TypeB"
    TYPE_C = "TypeC"


# Progression order of a component through the line
STAGE_ORDER = {
    StationKind.MACHINE: 0,
    StationKind.SWITCH: 1,
    StationKind.CONSUMER: 2,
}


class Station(BaseModel):
    """A fixed location in the line with an operational status."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: StationKind
    status: StationStatus = StationStatus.RUNNING
    switch_id: Optional[str] = None  # Consumers only

    def with_status(self, status: StationStatus) -> "Station":
        """Return a copy of this station with a new status."""
        return self.model_copy(update={"status": status})


class ComponentInTransit(BaseModel):
    """A unit of work flowing machine -> switch -> consumer."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    type: ComponentType
    current_station_id: str
    consumer_id: str  # Destination picked at spawn
    created_at: float = 0.0

    def moved_to(self, station_id: str) -> "ComponentInTransit":
        """Return a copy of this component located at another station."""
        return self.model_copy(update={"current_station_id": station_id})


class TransportRoute(BaseModel):
    """Operator-highlighted switch -> consumer path."""

    model_config = ConfigDict(frozen=True)

    target_switch_id: str = ""
    target_consumer_id: str = ""
    is_active: bool = False

    @classmethod
    def inactive(cls) -> "TransportRoute":
        """The cleared route."""
        return cls()


class ProductionSystem(BaseModel):
    """Complete, self-consistent snapshot of the line at one instant."""

    model_config = ConfigDict(frozen=True)

    machine: Station
    switches: Tuple[Station, ...]
    consumers: Tuple[Station, ...]
    components_in_transit: Tuple[ComponentInTransit, ...] = ()
    transport_route: TransportRoute = Field(default_factory=TransportRoute)

    # Counters
    sim_time: float = 0.0
    spawned_total: int = 0
    delivered_total: int = 0
    dropped_spawns: int = 0

    @property
    def stations(self) -> Tuple[Station, ...]:
        """All stations, machine first."""
        return (self.machine, *self.switches, *self.consumers)

    def station(self, station_id: str) -> Optional[Station]:
        """Look up a station by id."""
        for station in self.stations:
            if station.id == station_id:
                return station
        return None

    def consumers_of(self, switch_id: str) -> Tuple[Station, ...]:
        """Consumers bound to a switch, in configured order."""
        return tuple(c for c in self.consumers if c.switch_id == switch_id)

    def components_at(self, station_id: str) -> Tuple[ComponentInTransit, ...]:
        """Components currently located at a station."""
        return tuple(
            c for c in self.components_in_transit if c.current_station_id == station_id
        )
