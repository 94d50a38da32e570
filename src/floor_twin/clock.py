"""Simulation clock: the periodic generators and per-component journeys.

Every time-driven behavior is a SimPy process registered in a process table,
so stopping the clock can interrupt all of them, including deferred
recoveries and journeys that are mid-flight:

- status-drift: every ``status_period_sec``, maybe fault the machine, then
  broadcast a heartbeat snapshot
- spawn: every ``spawn_period_sec`` (first after ``spawn_initial_delay_sec``),
  spawn a component at the machine and start its journey
- journey:<uid>: machine -> switch -> consumer -> delivered
- recovery: one-shot return to Running after a fault (cancel-and-replace)
"""

import logging
import random
from collections import deque
from typing import Callable, Deque, Dict, Generator, Optional

import simpy

from floor_twin.errors import CapacityError, NotFoundError
from floor_twin.loader import TimingConfig
from floor_twin.models import StationKind, StationStatus
from floor_twin.registry import StationRegistry
from floor_twin.tracker import TransitTracker

logger = logging.getLogger(__name__)

FAULT_STATUSES = (StationStatus.ERROR, StationStatus.MAINTENANCE)

RECOVERY = "recovery"
STATUS_DRIFT = "status-drift"
SPAWN = "spawn"


class TransientTickError(RuntimeError):
    """An exception raised inside one tick of a generator.

    Recorded and logged; the generator keeps running.
    """

    def __init__(self, generator: str, sim_time: float, cause: BaseException):
        super().__init__(f"{generator} tick failed at t={sim_time:.2f}s: {cause!r}")
        self.generator = generator
        self.sim_time = sim_time
        self.cause = cause


class SimulationClock:
    """Drives the registry and tracker from SimPy processes.

    The clock never takes the state lock itself: whoever steps the
    environment (``ProductionService.advance`` or the realtime driver) holds
    it, which serializes every tick with external commands.
    """

    def __init__(
        self,
        env: simpy.Environment,
        registry: StationRegistry,
        tracker: TransitTracker,
        timing: TimingConfig,
        publish: Callable[[], None],
        rng: Optional[random.Random] = None,
    ):
        """Initialize clock.

        Args:
            env: SimPy environment (virtual time; paced by the caller)
            registry: Station registry to fault and recover
            tracker: Transit tracker for spawned components
            timing: Periods, delays and probabilities
            publish: Broadcasts the current snapshot
            rng: Random source for faults (seed it for reproducible runs)
        """
        self.env = env
        self.registry = registry
        self.tracker = tracker
        self.timing = timing
        self.publish = publish
        self.rng = rng or random.Random()

        self.processes: Dict[str, simpy.Process] = {}
        self.tick_errors: Deque[TransientTickError] = deque(maxlen=100)
        self.ticks: Dict[str, int] = {STATUS_DRIFT: 0, SPAWN: 0}
        self.faults_injected = 0
        self.recoveries = 0
        self.running = False

        self._recovery_due: Optional[float] = None
        # Delay left on a recovery interrupted by stop(), re-armed by start()
        self._recovery_remaining: Optional[float] = None

    # --- Lifecycle ---

    def start(self) -> None:
        """Launch the periodic generators and resume stranded journeys.

        A recovery suspended by ``stop()`` is re-armed with the delay it had
        left, provided the machine is still faulted.
        """
        if self.running:
            return
        self.running = True
        self._register(STATUS_DRIFT, self._status_drift())
        self._register(SPAWN, self._spawner())
        for component in self.tracker.components():
            self._start_journey(component.uid)

        remaining, self._recovery_remaining = self._recovery_remaining, None
        if remaining is not None and self.registry.machine.status in FAULT_STATUSES:
            self._arm_recovery(remaining)
        logger.info("Simulation clock started at t=%.2fs", self.env.now)

    def stop(self) -> None:
        """Interrupt every registered process.

        Interrupts are drained at the current instant, so once this returns
        no tick, recovery or journey step of this run can fire again.
        """
        if not self.running:
            return
        self.running = False
        if self.recovery_pending:
            self._recovery_remaining = max(0.0, self._recovery_due - self.env.now)
        for process in list(self.processes.values()):
            if process.is_alive:
                process.interrupt("clock stopped")
        while self.env.peek() <= self.env.now:
            self.env.step()
        self.processes.clear()
        logger.info("Simulation clock stopped at t=%.2fs", self.env.now)

    @property
    def pending_journeys(self) -> int:
        return sum(1 for name in self.processes if name.startswith("journey:"))

    @property
    def recovery_pending(self) -> bool:
        process = self.processes.get(RECOVERY)
        return process is not None and process.is_alive

    def _register(self, name: str, generator: Generator) -> simpy.Process:
        process = self.env.process(generator)
        self.processes[name] = process
        return process

    def _unregister(self, name: str) -> None:
        process = self.processes.get(name)
        if process is not None and process is self.env.active_process:
            del self.processes[name]

    def _guarded(self, name: str, body: Callable[[], None]) -> bool:
        """Run one tick body; failures are logged and recorded, never raised."""
        try:
            body()
            return True
        except Exception as e:
            error = TransientTickError(name, self.env.now, e)
            self.tick_errors.append(error)
            logger.exception(str(error))
            return False

    # --- Status drift and recovery ---

    def _status_drift(self) -> Generator:
        try:
            while True:
                yield self.env.timeout(self.timing.status_period_sec)
                self.ticks[STATUS_DRIFT] += 1
                self._guarded(STATUS_DRIFT, self._status_tick)
        except simpy.Interrupt:
            return

    def _status_tick(self) -> None:
        if (
            self.registry.machine.status == StationStatus.RUNNING
            and self.rng.random() < self.timing.fault_probability
        ):
            self.inject_fault()
        # Heartbeat, fault or not
        self.publish()

    def inject_fault(self, status: Optional[StationStatus] = None) -> None:
        """Fault the machine and schedule its auto-recovery.

        Args:
            status: Error or Maintenance (uniformly random when omitted)
        """
        status = StationStatus(status) if status else self.rng.choice(FAULT_STATUSES)
        if status not in FAULT_STATUSES:
            raise ValueError(f"Not a fault status: {status.value}")
        self.faults_injected += 1
        logger.warning("Machine fault at t=%.2fs: %s", self.env.now, status.value)
        self.registry.set_machine_status(status)
        self.cancel_recovery()
        if self.running:
            self._arm_recovery(self.timing.recovery_delay_sec)

    def cancel_recovery(self) -> bool:
        """Cancel a pending auto-recovery. Returns True if one was pending.

        A recovery suspended by ``stop()`` counts as pending and is dropped
        too, so it is not re-armed by the next ``start()``.
        """
        suspended = self._recovery_remaining is not None
        self._recovery_remaining = None
        process = self.processes.pop(RECOVERY, None)
        if process is None or not process.is_alive:
            return suspended
        process.interrupt("recovery cancelled")
        logger.debug("Pending recovery cancelled at t=%.2fs", self.env.now)
        return True

    def _arm_recovery(self, delay: float) -> None:
        self._recovery_due = self.env.now + delay
        self._register(RECOVERY, self._recovery(delay))

    def _recovery(self, delay: float) -> Generator:
        try:
            yield self.env.timeout(delay)
        except simpy.Interrupt:
            return
        self._unregister(RECOVERY)
        self.recoveries += 1
        logger.info("Machine auto-recovery at t=%.2fs", self.env.now)
        self._guarded(
            RECOVERY, lambda: self.registry.set_machine_status(StationStatus.RUNNING)
        )

    # --- Spawning and journeys ---

    def _spawner(self) -> Generator:
        try:
            yield self.env.timeout(self.timing.spawn_initial_delay_sec)
            while True:
                self.ticks[SPAWN] += 1
                self._guarded(SPAWN, self._spawn_tick)
                yield self.env.timeout(self.timing.spawn_period_sec)
        except simpy.Interrupt:
            return

    def _spawn_tick(self) -> None:
        if self.registry.machine.status != StationStatus.RUNNING:
            return
        try:
            component = self.tracker.spawn(created_at=self.env.now)
        except CapacityError as e:
            logger.warning("Spawn dropped: %s", e)
            return
        self.publish()
        self._start_journey(component.uid)

    def _start_journey(self, uid: str) -> None:
        self._register(f"journey:{uid}", self._journey(uid))

    def _journey(self, uid: str) -> Generator:
        """Move one component to its switch, then its consumer, then deliver it.

        Resumes from the component's current stage, so a journey cut short by
        ``stop()`` continues on the next ``start()``.
        """
        name = f"journey:{uid}"
        try:
            try:
                component = self.tracker.get(uid)
                consumer_id = component.consumer_id
                switch_id = self.registry.get(consumer_id).switch_id
            except NotFoundError as e:
                logger.warning("Journey %s abandoned: %s", uid, e)
                return
            stage = self.registry.kind_of(component.current_station_id)

            if stage == StationKind.MACHINE:
                yield self.env.timeout(self.timing.to_switch_delay_sec)
                if not self._guarded(name, lambda: self._move(uid, switch_id)):
                    return
                stage = StationKind.SWITCH

            if stage == StationKind.SWITCH:
                yield self.env.timeout(self.timing.to_consumer_delay_sec)
                if not self._guarded(name, lambda: self._move(uid, consumer_id)):
                    return

            yield self.env.timeout(self.timing.delivery_delay_sec)
            self._guarded(name, lambda: self._deliver(uid))
        except simpy.Interrupt:
            return
        finally:
            self._unregister(name)

    def _move(self, uid: str, station_id: str) -> None:
        self.tracker.advance(uid, station_id)
        self.publish()

    def _deliver(self, uid: str) -> None:
        self.tracker.deliver(uid)
        self.publish()
