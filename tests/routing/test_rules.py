"""Tests for signal adjustment rules."""

import pytest
from pydantic import ValidationError

from modeltriage.capabilities import DIMENSIONS, CapabilityVector
from modeltriage.exceptions import ConfigurationError
from modeltriage.routing.classification import Classification, InputSignals
from modeltriage.routing.rules import (
    DEFAULT_ADJUSTMENT_RULES,
    AdjustmentRule,
    apply_adjustments,
    load_rules,
)


def _caps(**overrides) -> CapabilityVector:
    data = {d: 0.65 for d in DIMENSIONS}
    data.update(overrides)
    return CapabilityVector(**data)


def _rule(name: str) -> AdjustmentRule:
    return next(r for r in DEFAULT_ADJUSTMENT_RULES if r.name == name)


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------


class TestDefaultRules:
    """Each default rule fires exactly on its condition and threshold."""

    @pytest.mark.parametrize(
        "name,signal,dimension,hit,miss,delta",
        [
            ("code_signal_bonus", "has_code", "code_generation", 0.75, 0.74, 5),
            ("stack_trace_bonus", "has_stack_trace", "debugging", 0.70, 0.69, 6),
            ("strict_format_bonus", "strict_format", "structured_output", 0.75, 0.74, 5),
            ("concise_slow_penalty", "concise", "speed", 0.49, 0.50, -5),
            ("concise_fast_bonus", "concise", "speed", 0.85, 0.84, 4),
            ("long_form_reasoning_bonus", "long_form", "reasoning", 0.75, 0.74, 6),
            ("long_form_instruction_bonus", "long_form", "instruction_following", 0.85, 0.84, 3),
            ("long_form_weak_reasoning", "long_form", "reasoning", 0.54, 0.55, -6),
        ],
    )
    def test_signal_rules(self, name, signal, dimension, hit, miss, delta) -> None:
        rule = _rule(name)
        c = Classification(signals=InputSignals(**{signal: True}))
        assert rule.delta == delta
        assert rule.applies(c, _caps(**{dimension: hit})) is True
        assert rule.applies(c, _caps(**{dimension: miss})) is False
        assert rule.applies(Classification(), _caps(**{dimension: hit})) is False

    def test_recency_rules(self) -> None:
        c = Classification(recency_required=True)
        assert _rule("recency_bonus").applies(c, _caps(recency_strength=0.80))
        assert _rule("recency_stale_penalty").applies(c, _caps(recency_strength=0.69))
        assert not _rule("recency_stale_penalty").applies(c, _caps(recency_strength=0.70))

    def test_stakes_rules(self) -> None:
        weak = _caps(reasoning=0.55)
        high = Classification(stakes="high")
        medium = Classification(stakes="medium")
        assert _rule("high_stakes_weak_reasoning").applies(high, weak)
        assert not _rule("high_stakes_weak_reasoning").applies(medium, weak)
        assert _rule("medium_stakes_weak_reasoning").applies(medium, weak)
        assert not _rule("medium_stakes_weak_reasoning").applies(medium, _caps(reasoning=0.60))

    @pytest.mark.parametrize("category,fires", [("code_gen", True), ("debug", True), ("explain", False)])
    def test_code_task_rule(self, category, fires) -> None:
        c = Classification(task_category=category)
        assert _rule("code_task_weak_codegen").applies(c, _caps(code_generation=0.5)) is fires

    def test_rule_count_and_order(self) -> None:
        names = [r.name for r in DEFAULT_ADJUSTMENT_RULES]
        assert len(names) == 13
        assert names[0] == "code_signal_bonus"
        assert names[-1] == "long_form_weak_reasoning"


# ---------------------------------------------------------------------------
# apply_adjustments
# ---------------------------------------------------------------------------


class TestApplyAdjustments:
    """Tests for accumulation, clamping and rounding."""

    def test_rules_accumulate(self) -> None:
        c = Classification(
            signals=InputSignals(has_code=True, has_stack_trace=True, strict_format=True),
        )
        caps = _caps(code_generation=0.9, debugging=0.9, structured_output=0.9)
        score, fired = apply_adjustments(50.0, c, caps)
        assert score == 66
        assert fired == ["code_signal_bonus", "stack_trace_bonus", "strict_format_bonus"]

    def test_clamped_to_100(self) -> None:
        c = Classification(signals=InputSignals(has_code=True))
        score, _ = apply_adjustments(98.0, c, _caps(code_generation=0.9))
        assert score == 100

    def test_clamped_to_zero(self) -> None:
        c = Classification(stakes="high", recency_required=True)
        score, fired = apply_adjustments(5.0, c, _caps(reasoning=0.3, recency_strength=0.3))
        assert score == 0
        assert "high_stakes_weak_reasoning" in fired

    def test_rounds_half_up(self) -> None:
        score, _ = apply_adjustments(72.5, Classification(), _caps())
        assert score == 73

    def test_no_rules_fire(self) -> None:
        score, fired = apply_adjustments(61.4, Classification(), _caps())
        assert score == 61
        assert fired == []

    def test_high_stakes_penalty_never_skipped(self) -> None:
        c = Classification(stakes="high", signals=InputSignals(concise=True))
        caps = _caps(reasoning=0.69, speed=0.3)
        score, fired = apply_adjustments(80.0, c, caps)
        assert "high_stakes_weak_reasoning" in fired
        assert score <= 80 - 12


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestLoadRules:
    """Tests for building rules from configuration."""

    def test_none_returns_defaults(self) -> None:
        assert load_rules(None) is DEFAULT_ADJUSTMENT_RULES

    def test_custom_rules(self) -> None:
        rules = load_rules([
            {"name": "big_speed_bonus", "when": "concise", "dimension": "speed",
             "op": ">=", "threshold": 0.9, "delta": 20},
        ])
        assert len(rules) == 1
        c = Classification(signals=InputSignals(concise=True))
        score, _ = apply_adjustments(50.0, c, _caps(speed=0.95), rules)
        assert score == 70

    def test_empty_list_disables_adjustments(self) -> None:
        assert load_rules([]) == ()

    @pytest.mark.parametrize(
        "entry",
        [
            {"name": "x", "when": "mood", "dimension": "speed", "op": ">=", "threshold": 0.5, "delta": 1},
            {"name": "x", "when": "concise", "dimension": "charisma", "op": ">=", "threshold": 0.5, "delta": 1},
            {"name": "x", "when": "concise", "dimension": "speed", "op": "==", "threshold": 0.5, "delta": 1},
            {"name": "x", "when": "concise", "dimension": "speed", "op": ">=", "threshold": 1.5, "delta": 1},
        ],
    )
    def test_malformed_rule_rejected(self, entry) -> None:
        with pytest.raises(ConfigurationError):
            load_rules([entry])

    def test_rule_model_validation(self) -> None:
        with pytest.raises(ValidationError):
            AdjustmentRule(name="x", when="concise", dimension="speed", op="<", threshold=-1, delta=1)
