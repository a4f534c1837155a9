# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Run intermediary mapping generation, rewrite and update flows."""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import TextIO

from intermediary import (
    AllocationError,
    ClassGraphError,
    ConfigError,
    ConflictError,
    DecisionPolicy,
    FailFastPolicy,
    GenerationSession,
    GeneratorConfig,
    InteractivePolicy,
    MappingFormatError,
    load_class_graph,
)
from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger(__name__)


class ValidationError(RuntimeError):
    """Represent user input validation failure."""


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="intermediary")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser("generate")
    _add_common_arguments(generate_parser)

    rewrite_parser = subparsers.add_parser("rewrite")
    _add_common_arguments(rewrite_parser)
    rewrite_parser.add_argument(
        "--old-mapping", required=True, help="Previous intermediary mapping file."
    )

    update_parser = subparsers.add_parser("update")
    _add_common_arguments(update_parser)
    update_parser.add_argument(
        "--old-input", required=True, help="Class dump of the previous version."
    )
    update_parser.add_argument(
        "--old-mapping", required=True, help="Previous intermediary mapping file."
    )
    update_parser.add_argument(
        "--matches", required=True, help="Correspondence file, old to new."
    )
    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", required=True, help="Class dump of the new version.")
    parser.add_argument("--output", required=True, help="Mapping file to write.")
    parser.add_argument(
        "-t", "--target-namespace", default=None, help="Package for renamed classes."
    )
    parser.add_argument(
        "-p",
        "--obfuscation-pattern",
        action="append",
        default=[],
        help="Regex of obfuscated class names; replaces the default when given.",
    )
    parser.add_argument(
        "-i",
        "--include",
        action="append",
        default=[],
        help="Regex of class names to emit; repeatable.",
    )
    parser.add_argument(
        "--keep-package",
        action="store_true",
        help="Keep the original package of obfuscated classes.",
    )
    parser.add_argument(
        "--only-class-names",
        action="store_true",
        help="Skip field and method records.",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Fail on naming conflicts instead of prompting.",
    )
    parser.add_argument(
        "--counter-file", default=None, help="External counter file to read and mirror."
    )


def run(
    argv: list[str], stdout: TextIO, stderr: TextIO, stdin: TextIO | None = None
) -> int:
    """Run intermediary command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.
        stdin: Stream conflict selections are read from.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning("Argument parsing failed (argv=%s)", argv)
        return 2

    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    _emit_marker(console=console, phase="validation", state="start")
    try:
        config = GeneratorConfig.build(
            target_namespace=args.target_namespace,
            obfuscation_patterns=args.obfuscation_pattern,
            include_patterns=args.include,
            keep_package=args.keep_package,
            only_class_names=args.only_class_names,
            interactive=not args.non_interactive,
            counter_file=args.counter_file,
        )
        _validate_inputs(args=args)
    except (ConfigError, ValidationError) as exc:
        logger.warning("Validation failed (error=%s)", exc)
        stderr.write(f"{exc}\n")
        return 2
    _emit_marker(console=console, phase="validation", state="done")

    policy: DecisionPolicy = (
        InteractivePolicy(console=console, stdin=stdin or sys.stdin)
        if config.interactive
        else FailFastPolicy()
    )

    _emit_marker(console=console, phase="load", state="start")
    try:
        session = _prepare_session(args=args, config=config, policy=policy)
    except (ClassGraphError, MappingFormatError, OSError) as exc:
        logger.warning("Loading inputs failed (error=%s)", exc)
        stderr.write(f"Loading inputs failed: {exc}\n")
        return 2
    _emit_marker(console=console, phase="load", state="done")

    _emit_marker(console=console, phase="generate", state="start")
    started = time.monotonic()
    try:
        summary = session.write(Path(args.output))
    except (ConflictError, AllocationError) as exc:
        logger.warning("Generation failed (error=%s)", exc)
        stderr.write(f"Generation failed: {exc}\n")
        return 2
    except OSError as exc:
        logger.warning("Writing output failed (path=%s error=%s)", args.output, exc)
        stderr.write(f"Writing output failed: {exc}\n")
        return 2
    _emit_marker(console=console, phase="generate", state="done")

    counters = {
        f"next_{category.value}": value for category, value in summary.counters.items()
    }
    _emit_summary(
        console=console,
        summary={
            "class_records": summary.class_records,
            "field_records": summary.field_records,
            "method_records": summary.method_records,
            **counters,
            "elapsed_ms": int(round((time.monotonic() - started) * 1000)),
        },
    )
    console.print("status=success")
    return 0


def _emit_marker(console: Console, phase: str, state: str) -> None:
    console.print(f"{phase}:{state}")


def _emit_summary(console: Console, summary: dict[str, int]) -> None:
    fields = " ".join(f"{key}={value}" for key, value in summary.items())
    console.print(fields, soft_wrap=True)


def _validate_inputs(args: argparse.Namespace) -> None:
    """Validate input and output path constraints.

    Args:
        args: Parsed CLI arguments.

    Raises:
        ValidationError: If an input file is missing or the output is a directory.
    """
    inputs = [("Input", args.input)]
    if args.command in ("rewrite", "update"):
        inputs.append(("Old mapping", args.old_mapping))
    if args.command == "update":
        inputs.append(("Old input", args.old_input))
        inputs.append(("Matches", args.matches))
    for label, raw_path in inputs:
        path = Path(raw_path)
        if not path.is_file():
            raise ValidationError(f"{label} path does not exist: {path.resolve()}")

    output_path = Path(args.output)
    if output_path.is_dir():
        raise ValidationError(f"Output path must be a file: {output_path.resolve()}")
    if not output_path.resolve().parent.is_dir():
        raise ValidationError(
            f"Output directory does not exist: {output_path.resolve().parent}"
        )


def _prepare_session(
    args: argparse.Namespace, config: GeneratorConfig, policy: DecisionPolicy
) -> GenerationSession:
    """Load inputs for the selected command and build a session.

    Args:
        args: Parsed CLI arguments.
        config: Generator configuration.
        policy: Conflict decision policy.

    Returns:
        Prepared session.
    """
    graph = load_class_graph(Path(args.input))
    if args.command == "rewrite":
        return GenerationSession.for_rewrite(
            config=config,
            graph=graph,
            old_mapping_path=Path(args.old_mapping),
            policy=policy,
            output_path=Path(args.output),
        )
    if args.command == "update":
        return GenerationSession.for_update(
            config=config,
            graph=graph,
            old_graph=load_class_graph(Path(args.old_input)),
            old_mapping_path=Path(args.old_mapping),
            matches_path=Path(args.matches),
            policy=policy,
            output_path=Path(args.output),
        )
    return GenerationSession.for_generate(
        config=config,
        graph=graph,
        output_path=Path(args.output),
        policy=policy,
    )


def main() -> None:
    """Run intermediary CLI."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr, stdin=sys.stdin)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
