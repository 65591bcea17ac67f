"""
CLI interface for branchtree.

Loads a stored branch tree, optionally applies editor commands to it, and
prints the tree as ASCII or as a Mermaid gitGraph.

    branchtree                                   # print the stored tree
    branchtree -c insert-below -c "type develop" -c confirm-edit
    branchtree --format mermaid --fence > tree.md
"""

from __future__ import annotations

import argparse
import copy
import inspect
import logging
import shlex
import sys
from pathlib import Path

from .config import get_config
from .editor import COMMANDS, Editor
from .formats import ascii as _ascii  # noqa: F401 - ensure ascii format is registered
from .formats import mermaid as _mermaid  # noqa: F401 - ensure mermaid format is registered
from .formats.base import registry
from .storage import JsonFileStore, MemoryStore, restore_document

logger = logging.getLogger(__name__)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="branchtree",
        description="Edit and export git branch trees",
    )

    parser.add_argument(
        "document",
        nargs="?",
        help="Document JSON file (defaults to the configured storage path)",
    )

    parser.add_argument(
        "--format",
        "-f",
        dest="format_name",
        choices=registry.names,
        help="Export format (default: from config, usually ascii)",
    )

    parser.add_argument(
        "--fence",
        action="store_true",
        default=None,
        help="Wrap Mermaid output in a ```mermaid code block",
    )

    parser.add_argument(
        "--command",
        "-c",
        dest="commands",
        action="append",
        default=[],
        metavar="COMMAND",
        help="Editor command to apply, e.g. 'insert-below' or 'set-name-buffer develop'. Repeatable",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Write the export to this file; format is inferred from its extension",
    )

    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Apply commands without saving the document",
    )

    parser.add_argument(
        "--history-limit",
        type=int,
        help="Undo/redo depth for this run",
    )

    parser.add_argument(
        "--list-commands",
        action="store_true",
        help="List editor command names and exit",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log engine activity to stderr",
    )

    return parser.parse_args(args)


def parse_command(text: str) -> tuple[str, list[str]]:
    """Split 'set-name-buffer develop' into ('set-name-buffer', ['develop'])."""
    parts = shlex.split(text)
    if not parts:
        raise ValueError("Empty command")
    return parts[0], parts[1:]


def parse_bool(text: str) -> bool:
    """Same rule as boolean env vars: "true", "1", "yes" -> True."""
    return text.lower() in ("true", "1", "yes")


# Commands whose arguments are not plain strings
ARG_CONVERTERS = {
    "confirm-comment-edit": (parse_bool,),
}


def convert_args(name: str, args: list[str]) -> list:
    converters = ARG_CONVERTERS.get(name, ())
    return [converters[i](arg) if i < len(converters) else arg for i, arg in enumerate(args)]


def apply_commands(editor: Editor, commands: list[str]) -> None:
    """Run commands in order. Raises ValueError on unknown names or bad arguments."""
    for text in commands:
        name, args = parse_command(text)
        if name not in COMMANDS:
            raise ValueError(f"Unknown command: {name}")
        if name == "type":
            # Each character is a separate keystroke
            for char in " ".join(args):
                editor.apply_typed_char(char)
            continue
        values = convert_args(name, args)
        try:
            inspect.signature(getattr(editor, COMMANDS[name])).bind(*values)
        except TypeError as e:
            raise ValueError(f"Bad arguments for {name}: {args}") from e
        editor.dispatch(name, *values)


def resolve_format(format_name: str | None, output: str | None, default: str = "ascii") -> str:
    """Pick the export format: explicit flag, then output extension, then config."""
    if format_name:
        return format_name
    if output:
        fmt = registry.for_filename(output)
        if fmt:
            return fmt.name
    return default


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if parsed.list_commands:
        print("\n".join(sorted(COMMANDS)))
        return 0

    cfg = copy.deepcopy(get_config())
    if parsed.history_limit is not None:
        if parsed.history_limit < 0:
            print(f"Error: --history-limit must be >= 0, got {parsed.history_limit}", file=sys.stderr)
            return 1
        cfg.editor.history_limit = parsed.history_limit

    path = Path(parsed.document) if parsed.document else Path(cfg.storage.path)
    # An unreadable file is reported, never replaced by a fresh document
    try:
        raw = JsonFileStore(path).load()
        if raw is not None:
            restore_document(raw)
    except (OSError, ValueError) as e:
        print(f"Error: Cannot load {path}: {e}", file=sys.stderr)
        return 1

    store = MemoryStore(raw) if parsed.dry_run else JsonFileStore(path)

    editor = Editor(store=store, config=cfg)
    logger.debug("Applying %d commands to %s", len(parsed.commands), path)

    try:
        apply_commands(editor, parsed.commands)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    format_name = resolve_format(parsed.format_name, parsed.output, cfg.export.default_format)
    try:
        output = editor.export(format_name, fenced=parsed.fence)
    except KeyError:
        print(f"Error: Unknown export format: {format_name}", file=sys.stderr)
        return 1

    if parsed.output:
        try:
            Path(parsed.output).write_text(output + "\n", encoding="utf-8")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
        return 0

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
