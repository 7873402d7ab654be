"""Tests for attachment gist generation."""

import pytest

from modeltriage.routing.gists import image_gist, text_file_gist


class TestTextFileGist:
    """Tests for text_file_gist()."""

    def test_react_component_with_hooks(self) -> None:
        content = "import React, { useState } from 'react';\nexport default function App() {}"
        gist = text_file_gist("App.tsx", content, ".tsx")
        assert gist.kind == "TypeScript React file"
        assert gist.language == "TypeScript"
        assert gist.topic == "React component with hooks"
        assert "React" in gist.signals

    def test_api_route_handler(self) -> None:
        content = "export async function GET(request) {\n  return Response.json({})\n}"
        gist = text_file_gist("route.js", content, ".js")
        assert gist.topic == "API route handler"
        assert "API handler" in gist.signals

    def test_utility_exports(self) -> None:
        gist = text_file_gist("utils.ts", "export function slugify(s) { return s }", ".ts")
        assert gist.topic == "utility functions"
        assert "exports" in gist.signals

    def test_type_definitions(self) -> None:
        gist = text_file_gist("types.ts", "interface User { id: string }", ".ts")
        assert gist.topic == "type definitions"

    def test_config_filename(self) -> None:
        gist = text_file_gist("tsconfig.json", '{"compilerOptions": {}}', ".json")
        assert gist.kind == "JSON config"
        assert gist.topic == "configuration"

    def test_error_log_overrides_kind(self) -> None:
        gist = text_file_gist("output.txt", "Error: connection refused\n  at main", ".txt")
        assert gist.kind == "log file"
        assert gist.topic == "error log or stack trace"
        assert "error codes" in gist.signals

    def test_build_failure(self) -> None:
        gist = text_file_gist("ci.log", "step 3: build failed with exit 1", ".log")
        assert gist.topic == "build error output"

    def test_python_test_file(self) -> None:
        gist = text_file_gist("test_app.py", "def test_ok():\n    assert True", ".py")
        assert gist.kind == "Python file"
        assert gist.topic == "test file"

    @pytest.mark.parametrize(
        "filename,ext,signal",
        [
            ("site.css", ".css", "styling"),
            ("index.html", ".html", "markup"),
            ("schema.sql", ".sql", "database"),
            ("deploy.sh", ".sh", "scripting"),
            ("README.md", ".md", "documentation"),
            ("sales.csv", ".csv", "data"),
        ],
    )
    def test_extension_signals(self, filename, ext, signal) -> None:
        gist = text_file_gist(filename, "plain content", ext)
        assert signal in gist.signals

    def test_unknown_extension(self) -> None:
        gist = text_file_gist("notes.xyz", "hello", ".xyz")
        assert gist.kind == "text file"
        assert gist.language == "text"
        assert gist.topic == "code"

    def test_only_first_500_chars_inspected(self) -> None:
        content = "a" * 600 + "import React from 'react'"
        gist = text_file_gist("late.js", content, ".js")
        assert "React" not in gist.signals


class TestImageGist:
    """Tests for image_gist()."""

    @pytest.mark.parametrize(
        "prompt,kind,signal",
        [
            ("What does this code do?", "screenshot of code", "code"),
            ("Why am I seeing this terminal output?", "screenshot of terminal output", "terminal"),
            ("Make this button look better", "screenshot of UI", "UI"),
            ("Describe this diagram", "diagram or chart", "diagram"),
        ],
    )
    def test_prompt_heuristics(self, prompt, kind, signal) -> None:
        gist = image_gist("image.png", prompt)
        assert gist.kind == kind
        assert signal in gist.signals

    def test_screenshot_filename(self) -> None:
        gist = image_gist("Screenshot 2026-01-02.png", "What is this?")
        assert gist.kind == "screenshot"

    def test_generic_image(self) -> None:
        gist = image_gist("photo.jpg", "What is this?")
        assert gist.kind == "image"
        assert gist.topic == "visual content"
        assert gist.signals == ()
