"""YAML/JSON topology loader with built-in default fallback."""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from floor_twin.errors import TopologyError

logger = logging.getLogger(__name__)


DEFAULT_MACHINE_ID = "MACHINE_01"


class ConfigParseError(ValueError):
    """Raised when a configuration source cannot be turned into a topology."""

    pass


@dataclass
class MachineSpec:
    """The single production machine."""

    id: str = DEFAULT_MACHINE_ID
    name: str = "Production Machine"


@dataclass
class SwitchSpec:
    """A routing switch."""

    id: str
    name: str = ""


@dataclass
class ConsumerSpec:
    """A consumer bound to exactly one switch."""

    id: str
    switch_id: str
    name: str = ""


@dataclass
class TopologyConfig:
    """Station layout: one machine, N switches, M consumers."""

    machine: MachineSpec = field(default_factory=MachineSpec)
    switches: List[SwitchSpec] = field(default_factory=list)
    consumers: List[ConsumerSpec] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no switches or no consumers are configured."""
        return not self.switches or not self.consumers

    def validate(self) -> None:
        """Check id uniqueness and consumer -> switch references.

        Raises:
            TopologyError: If the layout is structurally invalid
        """
        if not self.switches:
            raise TopologyError("At least one switch is required")
        if not self.consumers:
            raise TopologyError("At least one consumer is required")

        seen = {self.machine.id}
        for spec in [*self.switches, *self.consumers]:
            if not spec.id:
                raise TopologyError("Station id cannot be empty")
            if spec.id in seen:
                raise TopologyError(f"Duplicate station id: {spec.id}")
            seen.add(spec.id)

        switch_ids = {s.id for s in self.switches}
        for consumer in self.consumers:
            if consumer.switch_id not in switch_ids:
                raise TopologyError(
                    f"Consumer {consumer.id} references unknown switch: {consumer.switch_id}"
                )


@dataclass
class TimingConfig:
    """Periods, delays and probabilities driving the simulation clock."""

    status_period_sec: float = 2.0
    fault_probability: float = 0.02
    recovery_delay_sec: float = 10.0
    spawn_initial_delay_sec: float = 1.0
    spawn_period_sec: float = 3.0
    to_switch_delay_sec: float = 1.5
    to_consumer_delay_sec: float = 1.5
    delivery_delay_sec: float = 1.0
    max_in_transit: int = 100

    def __post_init__(self) -> None:
        """Validate timing values."""
        for name in (
            "status_period_sec",
            "spawn_period_sec",
            "recovery_delay_sec",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        for name in (
            "spawn_initial_delay_sec",
            "to_switch_delay_sec",
            "to_consumer_delay_sec",
            "delivery_delay_sec",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not 0.0 <= self.fault_probability <= 1.0:
            raise ValueError(
                f"fault_probability must be in [0, 1], got {self.fault_probability}"
            )
        if self.max_in_transit < 1:
            raise ValueError(f"max_in_transit must be >= 1, got {self.max_in_transit}")


@dataclass
class ResolvedConfig:
    """Fully resolved configuration ready to build a service from."""

    topology: TopologyConfig
    timing: TimingConfig = field(default_factory=TimingConfig)
    source: Optional[Path] = None  # None = built-in default
    is_default_topology: bool = False


def default_topology() -> TopologyConfig:
    """Built-in layout: 1 machine, 2 switches, 10 consumers split 5/5."""
    switches = [SwitchSpec(id=f"SWITCH_0{i}", name=f"Switch {i}") for i in (1, 2)]
    consumers = [
        ConsumerSpec(
            id=f"CONSUMER_{i:02d}",
            name=f"Consumer {i}",
            switch_id="SWITCH_01" if i <= 5 else "SWITCH_02",
        )
        for i in range(1, 11)
    ]
    return TopologyConfig(machine=MachineSpec(), switches=switches, consumers=consumers)


class ConfigLoader:
    """Loads a topology configuration file.

    JSON is parsed through the YAML loader, so both formats are accepted.
    """

    def __init__(self, path: Optional[Path | str] = None):
        self.path = Path(path) if path else None

    def load(self) -> ResolvedConfig:
        """Load and validate the configuration file.

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigParseError: If the file is malformed
        """
        if self.path is None:
            return ResolvedConfig(topology=default_topology(), is_default_topology=True)

        data = self._load_yaml(self.path)
        return self.parse(data, source=self.path)

    def load_or_default(self) -> ResolvedConfig:
        """Load the configuration, falling back to the built-in default.

        A missing or malformed file never fails startup.
        """
        try:
            return self.load()
        except FileNotFoundError:
            logger.info("Config file not found (%s), using default topology", self.path)
        except ConfigParseError as e:
            logger.warning("Invalid config %s: %s. Using default topology", self.path, e)
        return ResolvedConfig(topology=default_topology(), is_default_topology=True)

    def parse(self, data: Any, source: Optional[Path] = None) -> ResolvedConfig:
        """Build a ResolvedConfig from an already-decoded mapping."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigParseError(f"Top level must be a mapping, got {type(data).__name__}")

        timing = self._parse_timing(data.get("simulation") or {})

        try:
            topology = TopologyConfig(
                machine=self._parse_machine(data.get("machine")),
                switches=[self._parse_switch(s) for s in self._as_list(data, "switches")],
                consumers=[
                    self._parse_consumer(c) for c in self._as_list(data, "consumers")
                ],
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise ConfigParseError(f"Malformed station entry: {e}") from e

        if topology.is_empty:
            logger.warning(
                "Config %s defines %d switches and %d consumers, using default topology",
                source,
                len(topology.switches),
                len(topology.consumers),
            )
            return ResolvedConfig(
                topology=default_topology(),
                timing=timing,
                source=source,
                is_default_topology=True,
            )

        try:
            topology.validate()
        except TopologyError as e:
            raise ConfigParseError(str(e)) from e

        return ResolvedConfig(topology=topology, timing=timing, source=source)

    # --- Helpers ---

    @staticmethod
    def _as_list(data: Dict[str, Any], key: str) -> List[Any]:
        value = data.get(key) or []
        if not isinstance(value, list):
            raise ConfigParseError(f"'{key}' must be a list")
        return value

    @staticmethod
    def _parse_machine(data: Any) -> MachineSpec:
        if data is None:
            return MachineSpec()
        if not isinstance(data, dict):
            raise ConfigParseError("'machine' must be a mapping")
        return MachineSpec(
            id=str(data.get("id") or DEFAULT_MACHINE_ID),
            name=str(data.get("name") or "Production Machine"),
        )

    @staticmethod
    def _parse_switch(data: Dict[str, Any]) -> SwitchSpec:
        if data.get("id") is None:
            raise ConfigParseError(f"Switch entry has no id: {data}")
        switch_id = str(data["id"])
        return SwitchSpec(id=switch_id, name=str(data.get("name") or switch_id))

    @staticmethod
    def _parse_consumer(data: Dict[str, Any]) -> ConsumerSpec:
        if data.get("id") is None:
            raise ConfigParseError(f"Consumer entry has no id: {data}")
        consumer_id = str(data["id"])
        switch_id = data.get("switch_id", data.get("switchId"))
        if switch_id is None:
            raise ConfigParseError(f"Consumer {consumer_id} has no switch_id")
        return ConsumerSpec(
            id=consumer_id,
            switch_id=str(switch_id),
            name=str(data.get("name") or consumer_id),
        )

    @staticmethod
    def _parse_timing(data: Any) -> TimingConfig:
        if not isinstance(data, dict):
            raise ConfigParseError("'simulation' must be a mapping")
        known = {f.name for f in fields(TimingConfig)}
        unknown = set(data) - known
        if unknown:
            raise ConfigParseError(f"Unknown simulation settings: {sorted(unknown)}")
        try:
            values = {
                name: int(value) if name == "max_in_transit" else float(value)
                for name, value in data.items()
            }
            return TimingConfig(**values)
        except (TypeError, ValueError) as e:
            raise ConfigParseError(f"Invalid simulation settings: {e}") from e

    def _load_yaml(self, path: Path) -> Any:
        """Load a YAML (or JSON) file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigParseError(f"Cannot parse {path}: {e}") from e
