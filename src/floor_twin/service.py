"""Production service: the control API, snapshots and simulation lifecycle."""

import logging
import random
import threading
from pathlib import Path
from typing import Optional

import simpy

from floor_twin.bus import NotificationBus, Subscription
from floor_twin.clock import SimulationClock
from floor_twin.loader import ConfigLoader, ResolvedConfig, TimingConfig, default_topology
from floor_twin.models import ProductionSystem, Station, StationStatus, TransportRoute
from floor_twin.realtime import RealtimeDriver
from floor_twin.registry import StationRegistry
from floor_twin.routing import RouteController
from floor_twin.tracker import TransitTracker

logger = logging.getLogger(__name__)


class ProductionService:
    """Owns the production line state and everything that mutates it.

    One re-entrant lock guards the registry, tracker, route controller and
    every SimPy step. Commands and ticks therefore never interleave, and
    ``get_current_state`` always returns a complete snapshot built from
    frozen records.

    Commands broadcast exactly one snapshot when they succeed and none when
    they raise.
    """

    def __init__(
        self,
        config: Optional[ResolvedConfig] = None,
        env: Optional[simpy.Environment] = None,
        seed: Optional[int] = None,
    ):
        """Initialize service.

        Args:
            config: Resolved topology and timing (default topology when omitted)
            env: SimPy environment (a fresh one when omitted)
            seed: Seed for the random sources (faults, types, destinations)
        """
        self.config = config or ResolvedConfig(
            topology=default_topology(), is_default_topology=True
        )
        self.timing: TimingConfig = self.config.timing
        self.env = env or simpy.Environment()
        self._lock = threading.RLock()

        rng = random.Random(seed)
        self.snapshots: NotificationBus[ProductionSystem] = NotificationBus("snapshots")
        self.routes: NotificationBus[TransportRoute] = NotificationBus("routes")

        self.registry = StationRegistry.from_topology(
            self.config.topology, lock=self._lock, on_change=self._broadcast
        )
        self.tracker = TransitTracker(
            self.registry,
            lock=self._lock,
            rng=random.Random(rng.random()),
            max_in_transit=self.timing.max_in_transit,
        )
        self.route_controller = RouteController(self.registry, self.routes, lock=self._lock)
        self.clock = SimulationClock(
            self.env,
            self.registry,
            self.tracker,
            self.timing,
            publish=self._broadcast,
            rng=random.Random(rng.random()),
        )
        self._driver: Optional[RealtimeDriver] = None

    @classmethod
    def from_config(
        cls, path: Optional[Path | str] = None, seed: Optional[int] = None
    ) -> "ProductionService":
        """Build a service from a config file, falling back to the default topology."""
        return cls(ConfigLoader(path).load_or_default(), seed=seed)

    # --- Queries ---

    def get_current_state(self) -> ProductionSystem:
        """Return a consistent snapshot of the whole line."""
        with self._lock:
            return ProductionSystem(
                machine=self.registry.machine,
                switches=self.registry.switches,
                consumers=self.registry.consumers,
                components_in_transit=self.tracker.components(),
                transport_route=self.route_controller.route,
                sim_time=self.env.now,
                spawned_total=self.tracker.spawned_total,
                delivered_total=self.tracker.delivered_total,
                dropped_spawns=self.tracker.dropped_spawns,
            )

    @property
    def is_active(self) -> bool:
        return self.clock.running

    # --- Commands ---

    def start_production(self) -> None:
        """Set the machine and every switch and consumer to Running."""
        with self._lock:
            self.clock.cancel_recovery()
            self.registry.start_production()

    def stop_production(self) -> None:
        """Stop the machine. Components already in transit finish their journey."""
        with self._lock:
            self.clock.cancel_recovery()
            self.registry.stop_production()

    def set_machine_status(self, status: StationStatus | str) -> Station:
        with self._lock:
            status = StationStatus(status)
            self.clock.cancel_recovery()
            return self.registry.set_machine_status(status)

    def set_station_status(self, station_id: str, status: StationStatus | str) -> Station:
        """Set any station's status.

        Raises:
            NotFoundError: If the station id is unknown
        """
        with self._lock:
            status = StationStatus(status)
            station = self.registry.get(station_id)
            if station.id == self.registry.machine_id:
                self.clock.cancel_recovery()
            return self.registry.set_station_status(station_id, status)

    def set_consumer_status(self, consumer_id: str, status: StationStatus | str) -> Station:
        """Set exactly the given consumer's status.

        Raises:
            NotFoundError: If the id is not a consumer
        """
        with self._lock:
            return self.registry.set_consumer_status(consumer_id, StationStatus(status))

    def set_transport_route(self, switch_id: str, consumer_id: str) -> TransportRoute:
        with self._lock:
            return self.route_controller.set_route(switch_id, consumer_id)

    def clear_transport_route(self) -> TransportRoute:
        with self._lock:
            return self.route_controller.clear_route()

    def inject_fault(self, status: Optional[StationStatus | str] = None) -> None:
        """Fault the machine now, with the same auto-recovery as a random fault."""
        with self._lock:
            self.clock.inject_fault(StationStatus(status) if status else None)

    # --- Subscriptions ---

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription[ProductionSystem]:
        return self.snapshots.subscribe(maxsize)

    def unsubscribe(self, subscription: Subscription[ProductionSystem]) -> bool:
        return self.snapshots.unsubscribe(subscription)

    def subscribe_routes(self, maxsize: Optional[int] = None) -> Subscription[TransportRoute]:
        return self.routes.subscribe(maxsize)

    def unsubscribe_routes(self, subscription: Subscription[TransportRoute]) -> bool:
        return self.routes.unsubscribe(subscription)

    # --- Lifecycle ---

    def activate(self, realtime: bool = True, factor: float = 1.0) -> None:
        """Start the generators, and the wall-clock driver if ``realtime``."""
        with self._lock:
            self.clock.start()
        if realtime and self._driver is None:
            self._driver = RealtimeDriver(self.env, self._lock, factor=factor)
            self._driver.start()
        logger.info("Simulation activated (realtime=%s)", realtime)

    def deactivate(self) -> None:
        """Stop everything; no tick or deferred action fires after this returns."""
        if self._driver is not None:
            self._driver.stop()
            self._driver = None
        with self._lock:
            self.clock.stop()
        logger.info("Simulation deactivated")

    def advance(self, seconds: float) -> None:
        """Run simulation time forward synchronously (no wall-clock pacing)."""
        if seconds <= 0:
            raise ValueError(f"seconds must be > 0, got {seconds}")
        if self._driver is not None:
            raise RuntimeError("Cannot advance manually while the realtime driver runs")
        with self._lock:
            self.env.run(until=self.env.now + seconds)

    def __enter__(self) -> "ProductionService":
        return self

    def __exit__(self, *exc) -> None:
        self.deactivate()

    # --- Internals ---

    def _broadcast(self) -> None:
        self.snapshots.publish(self.get_current_state())
