"""
Lightweight attachment summaries ("gists") used to phrase override
explanations.  Only filenames, extensions and the first few hundred
characters of content are inspected; nothing here calls a model.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Characters of content inspected per text file
GIST_SNIPPET_CHARS = 500


class AttachmentGist(BaseModel):
    """Structured summary of one attachment.

    Attributes:
        kind: e.g. "TypeScript file", "log file", "screenshot of code".
        language: Programming or markup language, when known.
        topic: Short description of what the attachment contains.
        signals: Tags such as "React", "error codes", "tests".
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    language: Optional[str] = None
    topic: str
    signals: Tuple[str, ...] = Field(default_factory=tuple)


# extension -> (kind, language)
_EXTENSION_KINDS: Dict[str, Tuple[str, str]] = {
    ".ts": ("TypeScript file", "TypeScript"),
    ".tsx": ("TypeScript React file", "TypeScript"),
    ".js": ("JavaScript file", "JavaScript"),
    ".jsx": ("JavaScript React file", "JavaScript"),
    ".py": ("Python file", "Python"),
    ".java": ("Java file", "Java"),
    ".go": ("Go file", "Go"),
    ".rs": ("Rust file", "Rust"),
    ".cpp": ("C++ file", "C++"),
    ".c": ("C file", "C"),
    ".h": ("C header file", "C"),
    ".css": ("CSS stylesheet", "CSS"),
    ".scss": ("SCSS stylesheet", "SCSS"),
    ".html": ("HTML document", "HTML"),
    ".sql": ("SQL script", "SQL"),
    ".sh": ("shell script", "Shell"),
    ".json": ("JSON config", "JSON"),
    ".yaml": ("YAML config", "YAML"),
    ".yml": ("YAML config", "YAML"),
    ".csv": ("CSV data file", "CSV"),
    ".md": ("Markdown document", "Markdown"),
    ".log": ("log file", "text"),
    ".txt": ("text file", "text"),
}

# extension -> signal added regardless of content
_EXTENSION_SIGNALS: Dict[str, Tuple[str, str]] = {
    ".css": ("styling", "stylesheet rules"),
    ".scss": ("styling", "stylesheet rules"),
    ".html": ("markup", "page markup"),
    ".sql": ("database", "database queries"),
    ".sh": ("scripting", "shell automation"),
    ".md": ("documentation", "documentation"),
    ".csv": ("data", "tabular data"),
}


def _contains_any(text: str, needles: Sequence[str]) -> bool:
    return any(n in text for n in needles)


def text_file_gist(filename: str, content: str, extension: str) -> AttachmentGist:
    """Summarise an uploaded text or code file.

    Later checks override the topic chosen by earlier ones, so the most
    specific evidence (errors, build output, tests) wins.
    """
    snippet = content[:GIST_SNIPPET_CHARS].lower()
    name = filename.lower()
    ext = extension.lower()
    kind, language = _EXTENSION_KINDS.get(ext, ("text file", "text"))
    signals: List[str] = []
    topic = "code"

    if ext in _EXTENSION_SIGNALS:
        signal, topic = _EXTENSION_SIGNALS[ext]
        signals.append(signal)

    if _contains_any(snippet, ("import react", "from 'react'", 'from "react"')):
        signals.append("React")
        if _contains_any(snippet, ("usestate", "useeffect")):
            topic = "React component with hooks"
        elif "export default function" in snippet or ("const " in snippet and "=>" in snippet):
            topic = "React component"
        else:
            topic = "React code"

    if _contains_any(snippet, ("next/", "from 'next", 'from "next')):
        signals.append("Next.js")
        if _contains_any(snippet, ("app/", "route.")):
            topic = "Next.js API route"
        elif "page." in snippet:
            topic = "Next.js page component"

    if _contains_any(snippet, ("export async function get", "export async function post")):
        topic = "API route handler"
        signals.append("API handler")

    if _contains_any(snippet, ("export function", "export const")):
        if "React" not in signals and "Next.js" not in signals:
            topic = "utility functions"
            signals.append("exports")

    if _contains_any(snippet, ("interface ", "type ", "enum ")) and topic == "code":
        topic = "type definitions"
        signals.append("types")

    if _contains_any(name, ("config", "tsconfig", "package.json")):
        topic = "configuration"
        signals.append("config")

    if _contains_any(snippet, ("error:", "exception", "stack trace")):
        topic = "error log or stack trace"
        signals.append("error codes")
        if "log" not in kind:
            kind = "log file"

    if "build" in snippet and "failed" in snippet:
        topic = "build error output"
        signals.append("build failure")

    if _contains_any(name, (".test.", ".spec.", "test_")) or _contains_any(
        snippet, ("describe(", "it(", "def test_")
    ):
        topic = "test file"
        signals.append("tests")

    return AttachmentGist(kind=kind, language=language, topic=topic, signals=tuple(signals))


def image_gist(filename: str, prompt: str) -> AttachmentGist:
    """Summarise an image from the prompt that accompanies it."""
    text = prompt.lower()

    if _contains_any(text, ("code", "function", "syntax")):
        return AttachmentGist(kind="screenshot of code", topic="code snippet or file", signals=("code",))
    if _contains_any(text, ("error", "terminal", "console")):
        return AttachmentGist(
            kind="screenshot of terminal output",
            topic="error message or command output",
            signals=("terminal",),
        )
    if _contains_any(text, ("ui", "interface", "design", "button")):
        return AttachmentGist(kind="screenshot of UI", topic="user interface or design", signals=("UI",))
    if _contains_any(text, ("diagram", "chart", "architecture")):
        return AttachmentGist(kind="diagram or chart", topic="visual diagram", signals=("diagram",))
    if "screenshot" in filename.lower():
        return AttachmentGist(kind="screenshot", topic="screen capture")
    return AttachmentGist(kind="image", topic="visual content")
