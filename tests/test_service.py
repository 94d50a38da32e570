"""Tests for the production service control API and snapshot contract."""

import threading
import time

import pytest

from floor_twin import (
    NotFoundError,
    ProductionService,
    ProductionSystem,
    StationStatus,
)


class TestCommands:
    """Operator commands and their broadcasts."""

    def test_each_command_broadcasts_once(self, service: ProductionService):
        """Error then Running yields exactly two snapshots, in order."""
        sub = service.subscribe()

        service.set_machine_status(StationStatus.ERROR)
        service.set_machine_status(StationStatus.RUNNING)

        statuses = [s.machine.status for s in sub.drain()]
        assert statuses == [StationStatus.ERROR, StationStatus.RUNNING]

    def test_failed_command_broadcasts_nothing(self, service: ProductionService):
        sub = service.subscribe()
        with pytest.raises(NotFoundError):
            service.set_station_status("NOPE", StationStatus.ERROR)
        with pytest.raises(NotFoundError):
            service.set_consumer_status("SWITCH_01", StationStatus.ERROR)
        with pytest.raises(ValueError):
            service.set_machine_status("Broken")
        assert sub.drain() == []

    def test_string_status_accepted(self, service: ProductionService):
        station = service.set_station_status("CONSUMER_05", "Maintenance")
        assert station.status == StationStatus.MAINTENANCE
        assert (
            service.get_current_state().station("CONSUMER_05").status
            == StationStatus.MAINTENANCE
        )

    def test_start_production_after_stop(self, service: ProductionService):
        service.stop_production()
        service.set_consumer_status("CONSUMER_01", StationStatus.ERROR)
        service.start_production()

        state = service.get_current_state()
        assert all(s.status == StationStatus.RUNNING for s in state.stations)

    def test_broadcast_matches_state(self, service: ProductionService):
        """The snapshot a command broadcasts is the state right after it."""
        sub = service.subscribe()
        service.set_station_status("SWITCH_02", StationStatus.STOPPED)

        (snapshot,) = sub.drain()
        assert snapshot == service.get_current_state()

    def test_unsubscribe(self, service: ProductionService):
        sub = service.subscribe()
        assert service.unsubscribe(sub) is True
        service.stop_production()
        assert sub.drain() == []


class TestConcurrency:
    """Commands from many threads and snapshot consistency."""

    def test_last_write_wins(self, service: ProductionService):
        """Concurrent writers serialize; the state is exactly the last write broadcast."""
        sub = service.subscribe(maxsize=10_000)
        barrier = threading.Barrier(8)
        written = [StationStatus.ERROR, StationStatus.MAINTENANCE] * 4

        def writer(status):
            barrier.wait()
            for _ in range(50):
                service.set_machine_status(status)

        threads = [threading.Thread(target=writer, args=(s,)) for s in written]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        statuses = [s.machine.status for s in sub.drain()]
        assert len(statuses) == 400
        assert statuses.count(StationStatus.ERROR) == 200
        assert statuses.count(StationStatus.MAINTENANCE) == 200
        assert statuses[-1] == service.get_current_state().machine.status
        assert sub.dropped == 0

    def test_snapshots_are_consistent(self, active_service: ProductionService):
        """Every component in every snapshot sits at a registered station."""
        sub = active_service.subscribe(maxsize=10_000)
        active_service.advance(60.0)

        snapshots = sub.drain()
        assert snapshots
        for snapshot in snapshots:
            ids = {s.id for s in snapshot.stations}
            for component in snapshot.components_in_transit:
                assert component.current_station_id in ids
                assert component.consumer_id in ids

    def test_snapshot_is_immutable(self, service: ProductionService):
        state = service.get_current_state()
        service.set_machine_status(StationStatus.ERROR)
        assert state.machine.status == StationStatus.RUNNING


class TestLifecycle:
    """advance() and the realtime driver."""

    def test_advance_rejects_non_positive(self, service: ProductionService):
        with pytest.raises(ValueError):
            service.advance(0)

    def test_advance_before_activate_does_nothing(self, service: ProductionService):
        service.advance(30.0)
        state = service.get_current_state()
        assert state.sim_time == 30.0
        assert state.spawned_total == 0

    def test_realtime_driver(self):
        """The background driver moves time forward and stops cleanly."""
        service = ProductionService(seed=3)
        service.activate(realtime=True, factor=20.0)
        try:
            with pytest.raises(RuntimeError):
                service.advance(1.0)
            time.sleep(0.6)
        finally:
            service.deactivate()

        frozen = service.get_current_state()
        assert frozen.sim_time > 1.0
        assert frozen.spawned_total >= 1
        assert service.is_active is False

        time.sleep(0.2)
        assert service.get_current_state() == frozen

    def test_context_manager_deactivates(self, resolved):
        with ProductionService(resolved) as service:
            service.activate(realtime=False)
            assert service.is_active is True
        assert service.is_active is False

    def test_from_config(self, config_dir):
        service = ProductionService.from_config(config_dir / "line.yaml", seed=1)
        state = service.get_current_state()
        assert isinstance(state, ProductionSystem)
        assert state.machine.id == "MACHINE_01"
