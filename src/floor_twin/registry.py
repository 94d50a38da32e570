"""Station registry: the fixed set of stations and their current status."""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from floor_twin.errors import NotFoundError, TopologyError
from floor_twin.loader import TopologyConfig
from floor_twin.models import Station, StationKind, StationStatus

logger = logging.getLogger(__name__)


class StationRegistry:
    """Owns one machine, N switches and M consumers.

    Stations are frozen records; a status change swaps the record under the
    shared lock and then fires the ``on_change`` callback exactly once.
    Reads and writes are serialized with every other holder of the lock.
    """

    def __init__(
        self,
        stations: List[Station],
        lock: Optional[threading.RLock] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        """Initialize registry.

        Args:
            stations: Machine, switches and consumers (any order; kept stable per kind)
            lock: Shared lock; a private one is created when omitted
            on_change: Called once after every successful mutation

        Raises:
            TopologyError: If the station set breaks a topology invariant
        """
        self._lock = lock or threading.RLock()
        self.on_change = on_change

        self._stations: Dict[str, Station] = {}
        self._order: Dict[StationKind, List[str]] = {kind: [] for kind in StationKind}
        for station in stations:
            if station.id in self._stations:
                raise TopologyError(f"Duplicate station id: {station.id}")
            self._stations[station.id] = station
            self._order[station.kind].append(station.id)

        self._validate()

    @classmethod
    def from_topology(
        cls,
        topology: TopologyConfig,
        lock: Optional[threading.RLock] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> "StationRegistry":
        """Build a registry with every station Running."""
        stations = [
            Station(
                id=topology.machine.id,
                name=topology.machine.name,
                kind=StationKind.MACHINE,
            )
        ]
        stations += [
            Station(id=s.id, name=s.name or s.id, kind=StationKind.SWITCH)
            for s in topology.switches
        ]
        stations += [
            Station(
                id=c.id,
                name=c.name or c.id,
                kind=StationKind.CONSUMER,
                switch_id=c.switch_id,
            )
            for c in topology.consumers
        ]
        return cls(stations, lock=lock, on_change=on_change)

    def _validate(self) -> None:
        if len(self._order[StationKind.MACHINE]) != 1:
            raise TopologyError(
                f"Exactly one machine is required, got {len(self._order[StationKind.MACHINE])}"
            )
        if not self._order[StationKind.SWITCH]:
            raise TopologyError("At least one switch is required")
        if not self._order[StationKind.CONSUMER]:
            raise TopologyError("At least one consumer is required")
        for consumer_id in self._order[StationKind.CONSUMER]:
            switch_id = self._stations[consumer_id].switch_id
            if self._kind_of_locked(switch_id) != StationKind.SWITCH:
                raise TopologyError(
                    f"Consumer {consumer_id} references unknown switch: {switch_id}"
                )

    # --- Reads ---

    @property
    def machine(self) -> Station:
        with self._lock:
            return self._stations[self._order[StationKind.MACHINE][0]]

    @property
    def machine_id(self) -> str:
        return self._order[StationKind.MACHINE][0]

    @property
    def switches(self) -> Tuple[Station, ...]:
        with self._lock:
            return tuple(self._stations[i] for i in self._order[StationKind.SWITCH])

    @property
    def consumers(self) -> Tuple[Station, ...]:
        with self._lock:
            return tuple(self._stations[i] for i in self._order[StationKind.CONSUMER])

    def get(self, station_id: str) -> Station:
        """Return a station by id.

        Raises:
            NotFoundError: If the id is not registered
        """
        with self._lock:
            station = self._stations.get(station_id)
        if station is None:
            raise NotFoundError("Station", station_id)
        return station

    def kind_of(self, station_id: str) -> Optional[StationKind]:
        """Kind of a station, or None for unknown ids."""
        with self._lock:
            return self._kind_of_locked(station_id)

    def _kind_of_locked(self, station_id: Optional[str]) -> Optional[StationKind]:
        station = self._stations.get(station_id) if station_id else None
        return station.kind if station else None

    def consumers_of(self, switch_id: str) -> Tuple[Station, ...]:
        """Consumers bound to a switch."""
        return tuple(c for c in self.consumers if c.switch_id == switch_id)

    # --- Commands ---

    def set_station_status(self, station_id: str, status: StationStatus) -> Station:
        """Set the status of any station.

        Raises:
            NotFoundError: If the id is not registered
        """
        with self._lock:
            station = self._apply(station_id, status)
            self._notify()
            return station

    def set_machine_status(self, status: StationStatus) -> Station:
        """Set the machine status."""
        return self.set_station_status(self.machine_id, status)

    def set_switch_status(self, switch_id: str, status: StationStatus) -> Station:
        """Set a switch status.

        Raises:
            NotFoundError: If the id is not a registered switch
        """
        return self._set_kind_status(StationKind.SWITCH, switch_id, status)

    def set_consumer_status(self, consumer_id: str, status: StationStatus) -> Station:
        """Set a consumer status.

        Targets exactly the given consumer; unknown ids are an error.

        Raises:
            NotFoundError: If the id is not a registered consumer
        """
        return self._set_kind_status(StationKind.CONSUMER, consumer_id, status)

    def start_production(self) -> None:
        """Set the machine and every switch and consumer to Running."""
        with self._lock:
            for station_id in self._stations:
                self._apply(station_id, StationStatus.RUNNING)
            logger.info("Production started")
            self._notify()

    def stop_production(self) -> None:
        """Set only the machine to Stopped; switches and consumers keep their status."""
        with self._lock:
            self._apply(self.machine_id, StationStatus.STOPPED)
            logger.info("Production stopped")
            self._notify()

    # --- Internals (called while holding the lock) ---

    def _set_kind_status(
        self, kind: StationKind, station_id: str, status: StationStatus
    ) -> Station:
        with self._lock:
            if self._kind_of_locked(station_id) != kind:
                raise NotFoundError(kind.value, station_id)
            station = self._apply(station_id, status)
            self._notify()
            return station

    def _apply(self, station_id: str, status: StationStatus) -> Station:
        current = self._stations.get(station_id)
        if current is None:
            raise NotFoundError("Station", station_id)
        status = StationStatus(status)
        updated = current.with_status(status)
        self._stations[station_id] = updated
        if current.status != status:
            logger.info(
                "%s %s: %s -> %s",
                current.kind.value,
                station_id,
                current.status.value,
                status.value,
            )
        return updated

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()
