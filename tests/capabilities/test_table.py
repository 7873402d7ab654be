"""
Tests for the CapabilityTable, CapabilityVector and ModelProfile.
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from modeltriage.capabilities import (
    DIMENSIONS,
    TASK_CATEGORIES,
    CapabilityTable,
    CapabilityVector,
    ModelProfile,
    TaskWeightProfile,
)
from modeltriage.exceptions import ConfigurationError, UnknownModelIdentifierError

PROJECT_CAPABILITIES = Path(__file__).resolve().parents[2] / "config" / "capabilities.yaml"


def _caps(value: float = 0.5) -> dict:
    return {d: value for d in DIMENSIONS}


@pytest.fixture
def table() -> CapabilityTable:
    return CapabilityTable(PROJECT_CAPABILITIES)


# ---------------------------------------------------------------------------
# CapabilityVector / TaskWeightProfile
# ---------------------------------------------------------------------------


class TestCapabilityVector:
    """Tests for CapabilityVector bounds and lookup."""

    def test_get_by_dimension_name(self) -> None:
        vec = CapabilityVector(**_caps(0.7))
        assert vec.get("debugging") == 0.7

    def test_unknown_dimension_raises(self) -> None:
        vec = CapabilityVector(**_caps())
        with pytest.raises(KeyError):
            vec.get("charisma")

    def test_score_above_one_rejected(self) -> None:
        data = _caps()
        data["speed"] = 1.2
        with pytest.raises(ValidationError):
            CapabilityVector(**data)

    def test_missing_dimension_rejected(self) -> None:
        data = _caps()
        del data["reasoning"]
        with pytest.raises(ValidationError):
            CapabilityVector(**data)

    def test_extra_dimension_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CapabilityVector(**_caps(), charisma=0.5)

    def test_vector_is_immutable(self) -> None:
        vec = CapabilityVector(**_caps())
        with pytest.raises(ValidationError):
            vec.speed = 0.1


class TestTaskWeightProfile:
    """Tests for TaskWeightProfile."""

    def test_weights_need_not_sum_to_one(self) -> None:
        profile = TaskWeightProfile(**_caps(2.0))
        assert profile.total == pytest.approx(16.0)

    def test_negative_weight_rejected(self) -> None:
        data = _caps()
        data["cost_efficiency"] = -0.1
        with pytest.raises(ValidationError):
            TaskWeightProfile(**data)


class TestModelProfile:
    """Tests for ModelProfile validation."""

    def test_blank_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ModelProfile(id="  ", display_name="X", capabilities=CapabilityVector(**_caps()))

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ModelProfile(
                id="m", display_name="M", provider="acme",
                capabilities=CapabilityVector(**_caps()),
            )

    def test_id_is_stripped(self) -> None:
        profile = ModelProfile(id=" m1 ", display_name="M", capabilities=CapabilityVector(**_caps()))
        assert profile.id == "m1"


# ---------------------------------------------------------------------------
# CapabilityTable
# ---------------------------------------------------------------------------


class TestCapabilityTableDefaults:
    """Tests for the built-in roster and weights."""

    def test_seven_models_registered(self, table: CapabilityTable) -> None:
        assert len(table) == 7
        assert table.list_models()[0] == "gpt-5-mini"

    def test_yaml_matches_builtin_defaults(self, table: CapabilityTable, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        builtin = CapabilityTable()
        assert builtin.to_dict() == table.to_dict()
        for category in TASK_CATEGORIES:
            assert builtin.get_task_weights(category) == table.get_task_weights(category)

    def test_every_category_has_weights(self, table: CapabilityTable) -> None:
        for category in TASK_CATEGORIES:
            assert table.get_task_weights(category).total > 0

    def test_get_capabilities(self, table: CapabilityTable) -> None:
        caps = table.get_capabilities("gpt-5.2")
        assert caps.reasoning == 0.96
        assert caps.debugging == 0.92

    def test_unknown_model_raises(self, table: CapabilityTable) -> None:
        with pytest.raises(UnknownModelIdentifierError):
            table.get_capabilities("gpt-2")

    def test_unknown_model_error_is_key_error(self, table: CapabilityTable) -> None:
        with pytest.raises(KeyError):
            table.get_profile("gpt-2")

    def test_unknown_category_raises(self, table: CapabilityTable) -> None:
        with pytest.raises(ConfigurationError):
            table.get_task_weights("poetry")

    def test_vision_flags(self, table: CapabilityTable) -> None:
        non_vision = [p.id for p in table.profiles() if not p.supports_vision]
        assert sorted(non_vision) == ["claude-haiku-4-5-20251001", "gpt-5-mini"]

    def test_budget_tier_is_fastest(self, table: CapabilityTable) -> None:
        budget = [p for p in table.profiles() if p.tier == "budget"]
        others = [p for p in table.profiles() if p.tier != "budget"]
        assert min(p.capabilities.speed for p in budget) > max(p.capabilities.speed for p in others)

    def test_contains(self, table: CapabilityTable) -> None:
        assert "claude-opus-4-6" in table
        assert "claude-opus-3" not in table


class TestRosterValidation:
    """Tests for validate_roster()."""

    def test_valid_roster_passes(self, table: CapabilityTable) -> None:
        table.validate_roster(["gpt-5-mini", "gpt-5.2"])

    def test_unknown_roster_entry_fails_fast(self, table: CapabilityTable) -> None:
        with pytest.raises(UnknownModelIdentifierError, match="gemini-2.5-pro"):
            table.validate_roster(["gpt-5-mini", "gemini-2.5-pro"])


class TestCapabilityTableYaml:
    """Tests for loading the table from YAML."""

    def _write(self, tmp_path, data) -> Path:
        path = tmp_path / "capabilities.yaml"
        path.write_text(yaml.dump(data))
        return path

    def _weights(self) -> dict:
        return {c: _caps(0.1) for c in TASK_CATEGORIES}

    def test_loads_custom_table(self, tmp_path) -> None:
        path = self._write(tmp_path, {
            "models": {"m1": {"display_name": "M1", "capabilities": _caps(0.8)}},
            "task_weights": self._weights(),
        })
        t = CapabilityTable(path)
        assert t.list_models() == ["m1"]
        assert t.get_profile("m1").display_name == "M1"

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            CapabilityTable(tmp_path / "missing.yaml")

    def test_missing_sections_raise(self, tmp_path) -> None:
        path = self._write(tmp_path, {"models": {}})
        with pytest.raises(ConfigurationError):
            CapabilityTable(path)

    def test_zero_models_rejected(self, tmp_path) -> None:
        path = self._write(tmp_path, {"models": {}, "task_weights": self._weights()})
        with pytest.raises(ConfigurationError, match="zero models"):
            CapabilityTable(path)

    def test_missing_category_weights_rejected(self, tmp_path) -> None:
        weights = self._weights()
        del weights["math"]
        path = self._write(tmp_path, {
            "models": {"m1": {"display_name": "M1", "capabilities": _caps()}},
            "task_weights": weights,
        })
        with pytest.raises(ConfigurationError, match="math"):
            CapabilityTable(path)

    def test_invalid_capability_rejected(self, tmp_path) -> None:
        caps = _caps()
        caps["speed"] = 3
        path = self._write(tmp_path, {
            "models": {"m1": {"display_name": "M1", "capabilities": caps}},
            "task_weights": self._weights(),
        })
        with pytest.raises(ConfigurationError, match="m1"):
            CapabilityTable(path)

    def test_invalid_yaml_raises(self, tmp_path) -> None:
        path = tmp_path / "capabilities.yaml"
        path.write_text("models: [unclosed\n")
        with pytest.raises(ConfigurationError):
            CapabilityTable(path)
