"""
CLI entry point for the ModelTriage decision engine.

Usage:
    python main.py route --prompt "..." [--image shot.png] [--file app.ts] [--external]
    python main.py explain --prompt "..." --model gpt-5.2
    python main.py models
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from modeltriage.capabilities import CapabilityTable
from modeltriage.config import get_settings, resolve_path
from modeltriage.exceptions import ModelTriageException
from modeltriage.routing import Attachment, AttachmentContext, build_engine


def _configure_logging(settings):
    logging.basicConfig(
        level=getattr(logging, settings.logging.level.upper(), logging.INFO),
        format=settings.logging.format,
        stream=sys.stderr,
    )


def _load_attachments(args):
    """Build attachment records from --image / --file arguments."""
    attachments = [Attachment(type="image", filename=name) for name in args.image]
    for path in args.file:
        file_path = Path(path)
        content = file_path.read_text(encoding="utf-8", errors="replace")
        attachments.append(
            Attachment(type="text", filename=file_path.name, content=content)
        )
    return attachments


def cmd_route(args, settings):
    """Choose a model for a prompt."""
    if args.external:
        settings.classifier.strategy = "external"
    engine = build_engine(settings)

    attachments = _load_attachments(args)
    context = (
        AttachmentContext.from_attachments(args.prompt, attachments)
        if attachments else None
    )
    decision = engine.decide(args.prompt, context)
    print(json.dumps(decision.model_dump(), indent=2))


def cmd_explain(args, settings):
    """Show the score breakdown for a given model."""
    engine = build_engine(settings)
    result = engine.explain(args.prompt, args.model)
    print(json.dumps(result.model_dump(), indent=2))


def cmd_models(args, settings):
    """List the capability table."""
    path = resolve_path(settings.routing.capabilities_path)
    table = CapabilityTable(path if path.exists() else None)
    print(json.dumps(table.to_dict(), indent=2))


def main():
    parser = argparse.ArgumentParser(
        description="ModelTriage - LLM model selection engine"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # route
    p_route = subparsers.add_parser("route", help="Route a prompt to a model")
    p_route.add_argument("--prompt", required=True, help="Input prompt")
    p_route.add_argument("--image", action="append", default=[],
                         help="Attached image filename (repeatable)")
    p_route.add_argument("--file", action="append", default=[],
                         help="Path of a text/code file to attach (repeatable)")
    p_route.add_argument("--external", action="store_true",
                         help="Use the external LLM classifier")

    # explain
    p_explain = subparsers.add_parser("explain", help="Explain a model choice")
    p_explain.add_argument("--prompt", required=True, help="Input prompt")
    p_explain.add_argument("--model", required=True, help="Model id to explain")

    # models
    subparsers.add_parser("models", help="List models and capabilities")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    _configure_logging(settings)

    commands = {
        "route": cmd_route,
        "explain": cmd_explain,
        "models": cmd_models,
    }
    try:
        commands[args.command](args, settings)
    except ModelTriageException as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
