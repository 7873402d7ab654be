"""
Tests for the command-line interface in main.py.
"""

import json
import sys

import pytest

import main
from modeltriage.config import reset_settings


@pytest.fixture(autouse=True)
def _reset():
    reset_settings()
    yield
    reset_settings()


def _run(monkeypatch, capsys, *argv):
    monkeypatch.setattr(sys, "argv", ["main.py", *argv])
    main.main()
    return json.loads(capsys.readouterr().out)


class TestRoute:
    def test_route_plain_prompt(self, monkeypatch, capsys) -> None:
        out = _run(monkeypatch, capsys, "route", "--prompt", "Who discovered gold?")
        assert out["chosen_model"] == "gpt-5-mini"
        assert out["category"] == "qa"
        assert out["scoring"]["model_id"] == "gpt-5-mini"

    def test_route_with_image(self, monkeypatch, capsys) -> None:
        out = _run(
            monkeypatch, capsys,
            "route", "--prompt", "What is this?", "--image", "photo.jpg",
        )
        assert out["intent"] == "vision"
        assert out["chosen_model"] == "gemini-3-flash-preview"

    def test_route_with_file(self, monkeypatch, capsys, tmp_path) -> None:
        source = tmp_path / "util.py"
        source.write_text("def add(a, b):\n    return a + b\n", encoding="utf-8")
        out = _run(monkeypatch, capsys, "route", "--prompt", "Add docstrings", "--file", str(source))
        assert out["category"] == "code_uploaded_file"
        assert out["chosen_model"] == "claude-sonnet-4-5-20250929"


class TestExplainAndModels:
    def test_explain(self, monkeypatch, capsys) -> None:
        out = _run(
            monkeypatch, capsys,
            "explain", "--prompt", "Fix this error: TypeError: x is undefined", "--model", "gpt-5.2",
        )
        assert out["model_id"] == "gpt-5.2"
        assert 0 <= out["expected_success"] <= 100
        assert out["confidence"] in ("High", "Medium", "Low")

    def test_explain_unknown_model_exits(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr(sys, "argv", ["main.py", "explain", "--prompt", "hi", "--model", "gpt-2"])
        with pytest.raises(SystemExit) as exc_info:
            main.main()
        assert exc_info.value.code == 2
        assert "gpt-2" in capsys.readouterr().err

    def test_models(self, monkeypatch, capsys) -> None:
        out = _run(monkeypatch, capsys, "models")
        assert out["count"] == 7
        assert {m["id"] for m in out["models"]} >= {"gpt-5-mini", "gpt-5.2"}


def test_no_command_prints_help(monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["main.py"])
    with pytest.raises(SystemExit) as exc_info:
        main.main()
    assert exc_info.value.code == 1
