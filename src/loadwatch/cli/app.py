"""CLI orchestration and command routing."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Callable, Sequence
from typing import TypeAlias
from pathlib import Path

from loadwatch.cli.commands import cmd_history, cmd_probe, cmd_watch
from loadwatch.cli.parser import build_parser, parse_args

logger = logging.getLogger(__name__)

CommandHandler: TypeAlias = Callable[[argparse.Namespace], int]

COMMANDS: dict[str, CommandHandler] = {
    "watch": cmd_watch,
    "probe": cmd_probe,
    "history": cmd_history,
}

# Exit status when no subcommand was given, matching argparse usage errors.
USAGE_EXIT_CODE = 2


def dispatch(args: argparse.Namespace) -> int:
    """Run the handler for ``args.command``; print help when there is none."""
    handler = COMMANDS.get(args.command or "")
    if handler is None:
        build_parser().print_help()
        return USAGE_EXIT_CODE
    return handler(args)


def _enter_workdir(workdir: Path) -> None:
    target = workdir.resolve()
    target.mkdir(parents=True, exist_ok=True)
    os.chdir(target)


def run(
    argv: Sequence[str] | None = None,
    *,
    configure_logging: Callable[[], None] | None = None,
) -> int:
    """Parse args, apply shared CLI setup, and execute command."""
    args = parse_args(argv)
    if args.workdir:
        _enter_workdir(args.workdir)
    if configure_logging is not None:
        configure_logging()

    logger.info("loadwatch %s (cwd %s)", args.command or "-", Path.cwd())
    return dispatch(args)
