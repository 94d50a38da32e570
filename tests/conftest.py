"""Shared test fixtures for floor-twin tests."""

from pathlib import Path

import pytest

from floor_twin import (
    ConfigLoader,
    ProductionService,
    ResolvedConfig,
    StationRegistry,
    TimingConfig,
    default_topology,
)


@pytest.fixture
def config_dir() -> Path:
    """Path to the example config directory."""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def quiet_timing() -> TimingConfig:
    """Default periods and delays with random faults disabled."""
    return TimingConfig(fault_probability=0.0)


@pytest.fixture
def resolved(quiet_timing: TimingConfig) -> ResolvedConfig:
    """Default topology with deterministic (fault-free) timing."""
    return ResolvedConfig(
        topology=default_topology(), timing=quiet_timing, is_default_topology=True
    )


@pytest.fixture
def service(resolved: ResolvedConfig) -> ProductionService:
    """Service on the default topology, not yet activated."""
    service = ProductionService(resolved, seed=7)
    yield service
    service.deactivate()


@pytest.fixture
def active_service(service: ProductionService) -> ProductionService:
    """Activated service driven manually in virtual time via advance()."""
    service.activate(realtime=False)
    return service


@pytest.fixture
def registry() -> StationRegistry:
    """Standalone registry on the default topology."""
    return StationRegistry.from_topology(default_topology())


@pytest.fixture
def loader() -> ConfigLoader:
    """Loader with no file: resolves to the default topology."""
    return ConfigLoader()
