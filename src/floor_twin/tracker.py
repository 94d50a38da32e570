"""Transit tracker: components currently flowing through the line."""

import logging
import random
import threading
from typing import Dict, Optional, Tuple

from floor_twin.errors import CapacityError, NotFoundError, TransitError
from floor_twin.models import STAGE_ORDER, ComponentInTransit, ComponentType, StationKind
from floor_twin.registry import StationRegistry

logger = logging.getLogger(__name__)


class TransitTracker:
    """Owns the set of components in transit and their locations.

    Every operation runs under the shared lock, so spawn/advance/deliver are
    linearizable against snapshot reads. Records are frozen; a move replaces
    the component's record in place, keeping insertion order.
    """

    def __init__(
        self,
        registry: StationRegistry,
        lock: Optional[threading.RLock] = None,
        rng: Optional[random.Random] = None,
        max_in_transit: int = 100,
    ):
        self.registry = registry
        self._lock = lock or threading.RLock()
        self.rng = rng or random.Random()
        self.max_in_transit = max_in_transit

        self._components: Dict[str, ComponentInTransit] = {}

        self.spawned_total = 0
        self.delivered_total = 0
        self.dropped_spawns = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._components)

    def __contains__(self, uid: str) -> bool:
        with self._lock:
            return uid in self._components

    def components(self) -> Tuple[ComponentInTransit, ...]:
        """All components in transit, oldest first."""
        with self._lock:
            return tuple(self._components.values())

    def get(self, uid: str) -> ComponentInTransit:
        """Return a tracked component.

        Raises:
            NotFoundError: If the component is not (or no longer) tracked
        """
        with self._lock:
            component = self._components.get(uid)
        if component is None:
            raise NotFoundError("Component", uid)
        return component

    def spawn(
        self, consumer_id: Optional[str] = None, created_at: float = 0.0
    ) -> ComponentInTransit:
        """Create a component at the machine with a uniformly random type.

        The uid is drawn from ``rng``, so seeded runs repeat their uids.

        Args:
            consumer_id: Destination consumer (uniformly random when omitted)
            created_at: Simulation time of creation

        Raises:
            CapacityError: If max_in_transit components are already tracked
            NotFoundError: If consumer_id is not a registered consumer
        """
        with self._lock:
            if len(self._components) >= self.max_in_transit:
                self.dropped_spawns += 1
                raise CapacityError(
                    f"{len(self._components)} components in transit (max {self.max_in_transit})"
                )

            if consumer_id is None:
                consumer_id = self.rng.choice(self.registry.consumers).id
            elif self.registry.kind_of(consumer_id) != StationKind.CONSUMER:
                raise NotFoundError(StationKind.CONSUMER.value, consumer_id)

            component = ComponentInTransit(
                uid=self._new_uid(),
                type=self.rng.choice(list(ComponentType)),
                current_station_id=self.registry.machine_id,
                consumer_id=consumer_id,
                created_at=created_at,
            )
            self._components[component.uid] = component
            self.spawned_total += 1
            logger.debug(
                "Spawned %s (%s) at %s",
                component.uid,
                component.type.value,
                component.current_station_id,
            )
            return component

    def advance(self, uid: str, next_station_id: str) -> ComponentInTransit:
        """Relocate a component to the next station.

        Raises:
            NotFoundError: If the component or station is unknown
            TransitError: If the move does not progress machine -> switch -> consumer
        """
        with self._lock:
            current = self._components.get(uid)
            if current is None:
                raise NotFoundError("Component", uid)
            next_kind = self.registry.kind_of(next_station_id)
            if next_kind is None:
                raise NotFoundError("Station", next_station_id)

            current_kind = self.registry.kind_of(current.current_station_id)
            if STAGE_ORDER[next_kind] <= STAGE_ORDER[current_kind]:
                raise TransitError(
                    f"Component {uid} cannot move from {current_kind.value} "
                    f"{current.current_station_id} to {next_kind.value} {next_station_id}"
                )

            moved = current.moved_to(next_station_id)
            self._components[uid] = moved
            logger.debug("Component %s -> %s", uid, next_station_id)
            return moved

    def deliver(self, uid: str) -> ComponentInTransit:
        """Remove a component permanently.

        Raises:
            NotFoundError: If the component is unknown or already delivered
        """
        with self._lock:
            component = self._components.pop(uid, None)
            if component is None:
                raise NotFoundError("Component", uid)
            self.delivered_total += 1
            logger.debug("Delivered %s at %s", uid, component.current_station_id)
            return component

    def _new_uid(self) -> str:
        # Drawn from the seeded rng; redrawn while it clashes with a tracked uid
        while True:
            uid = f"{self.rng.getrandbits(32):08x}"
            if uid not in self._components:
                return uid
