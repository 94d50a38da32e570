"""Tests for topology configuration loading and default fallback."""

import json
from pathlib import Path

import pytest

from floor_twin import ConfigLoader, ConfigParseError, ProductionService


class TestDefaultTopology:
    """Built-in layout and the fallbacks that lead to it."""

    def test_no_path_gives_default(self, loader: ConfigLoader):
        """Loader without a path resolves to 1 machine, 2 switches, 10 consumers."""
        resolved = loader.load()

        assert resolved.is_default_topology is True
        assert resolved.topology.machine.id == "MACHINE_01"
        assert [s.id for s in resolved.topology.switches] == ["SWITCH_01", "SWITCH_02"]
        assert len(resolved.topology.consumers) == 10

    def test_empty_topology_falls_back_to_default(self, tmp_path: Path):
        """Zero switches/consumers configured -> default layout, 5 consumers per switch."""
        path = tmp_path / "line.yaml"
        path.write_text("machine: {id: M1}\nswitches: []\nconsumers: []\n")

        service = ProductionService.from_config(path)
        state = service.get_current_state()

        assert len(state.consumers) == 10
        assert sum(1 for c in state.consumers if c.switch_id == "SWITCH_01") == 5
        assert sum(1 for c in state.consumers if c.switch_id == "SWITCH_02") == 5

    def test_missing_file_falls_back(self, tmp_path: Path):
        """A missing file is not fatal."""
        resolved = ConfigLoader(tmp_path / "absent.yaml").load_or_default()
        assert resolved.is_default_topology is True

    def test_missing_file_raises_on_strict_load(self, tmp_path: Path):
        """load() reports a missing file."""
        with pytest.raises(FileNotFoundError):
            ConfigLoader(tmp_path / "absent.yaml").load()

    def test_malformed_yaml_falls_back(self, tmp_path: Path):
        """Unparseable YAML -> ConfigParseError on load(), default on load_or_default()."""
        path = tmp_path / "broken.yaml"
        path.write_text("switches: [unclosed\n")

        with pytest.raises(ConfigParseError):
            ConfigLoader(path).load()
        assert ConfigLoader(path).load_or_default().is_default_topology is True

    def test_unknown_switch_reference_falls_back(self, tmp_path: Path):
        """A consumer bound to a missing switch is a parse error."""
        path = tmp_path / "line.yaml"
        path.write_text(
            "switches: [{id: S1}]\nconsumers: [{id: C1, switch_id: S9}]\n"
        )

        with pytest.raises(ConfigParseError, match="unknown switch"):
            ConfigLoader(path).load()
        assert ConfigLoader(path).load_or_default().is_default_topology is True

    def test_duplicate_ids_rejected(self, tmp_path: Path):
        """Station ids must be unique across kinds."""
        path = tmp_path / "line.yaml"
        path.write_text(
            "switches: [{id: S1}]\nconsumers: [{id: S1, switch_id: S1}]\n"
        )
        with pytest.raises(ConfigParseError, match="Duplicate"):
            ConfigLoader(path).load()


class TestCustomTopology:
    """Explicit layouts in YAML and JSON."""

    def test_example_config(self, config_dir: Path):
        """The shipped example config matches the default layout."""
        resolved = ConfigLoader(config_dir / "line.yaml").load()

        assert resolved.is_default_topology is False
        assert len(resolved.topology.consumers) == 10
        assert resolved.timing.recovery_delay_sec == 10.0

    def test_json_with_camelcase_switch_id(self, tmp_path: Path):
        """JSON files load through the YAML parser; switchId is accepted."""
        path = tmp_path / "line.json"
        path.write_text(
            json.dumps(
                {
                    "machine": {"id": "PRESS", "name": "Press"},
                    "switches": [{"id": "S1"}],
                    "consumers": [
                        {"id": "C1", "switchId": "S1"},
                        {"id": "C2", "switch_id": "S1", "name": "Bin 2"},
                    ],
                }
            )
        )

        resolved = ConfigLoader(path).load()
        topo = resolved.topology

        assert topo.machine.id == "PRESS"
        assert [c.switch_id for c in topo.consumers] == ["S1", "S1"]
        assert topo.consumers[1].name == "Bin 2"
        assert topo.switches[0].name == "S1"

    def test_timing_overrides(self, tmp_path: Path):
        """The simulation section overrides individual timing values."""
        path = tmp_path / "line.yaml"
        path.write_text(
            "switches: [{id: S1}]\n"
            "consumers: [{id: C1, switch_id: S1}]\n"
            "simulation: {fault_probability: 0.5, max_in_transit: 7}\n"
        )

        timing = ConfigLoader(path).load().timing

        assert timing.fault_probability == 0.5
        assert timing.max_in_transit == 7
        assert timing.status_period_sec == 2.0

    @pytest.mark.parametrize(
        "simulation",
        [
            "{fault_probability: 2.0}",
            "{spawn_period_sec: 0}",
            "{spawn_period_sec: fast}",
            "{tick_rate: 5}",
        ],
    )
    def test_invalid_timing_rejected(self, tmp_path: Path, simulation: str):
        """Out-of-range, non-numeric or unknown timing settings are parse errors."""
        path = tmp_path / "line.yaml"
        path.write_text(
            "switches: [{id: S1}]\n"
            "consumers: [{id: C1, switch_id: S1}]\n"
            f"simulation: {simulation}\n"
        )
        with pytest.raises(ConfigParseError):
            ConfigLoader(path).load()

    def test_null_names_fall_back_to_defaults(self, tmp_path: Path):
        """A null id or name means "not given", never the string "None"."""
        path = tmp_path / "line.yaml"
        path.write_text(
            "machine: {id: null, name: null}\n"
            "switches: [{id: S1, name: null}]\n"
            "consumers: [{id: C1, switch_id: S1, name: null}]\n"
        )

        topo = ConfigLoader(path).load().topology

        assert topo.machine.id == "MACHINE_01"
        assert topo.machine.name == "Production Machine"
        assert topo.switches[0].name == "S1"
        assert topo.consumers[0].name == "C1"

    @pytest.mark.parametrize(
        "body",
        [
            "switches: [{id: null}]\nconsumers: [{id: C1, switch_id: S1}]\n",
            "switches: [{id: S1}]\nconsumers: [{id: null, switch_id: S1}]\n",
            "switches: [S1]\nconsumers: [{id: C1, switch_id: S1}]\n",
        ],
    )
    def test_station_entry_without_id_rejected(self, tmp_path: Path, body: str):
        path = tmp_path / "line.yaml"
        path.write_text(body)
        with pytest.raises(ConfigParseError):
            ConfigLoader(path).load()

    def test_consumer_without_switch_rejected(self, tmp_path: Path):
        """Every consumer must name its switch."""
        path = tmp_path / "line.yaml"
        path.write_text("switches: [{id: S1}]\nconsumers: [{id: C1}]\n")
        with pytest.raises(ConfigParseError, match="no switch_id"):
            ConfigLoader(path).load()
