"""
CLI entry point for the gcodexform command.

Reads a GCODE program from a file or stdin, runs it through the processors
named with --stage (in order) and writes the result to a file or stdout.

Example:
    gcodexform part.nc -o mirrored.nc --stage mirror:x=50 --stage normalize
"""

from __future__ import annotations

import argparse
import logging
import sys

from gcodexform import config as cfg
from gcodexform.config import TRACE
from gcodexform.pipeline import ErrorPolicy, GcodePipeline, PipelineConfig
from gcodexform.processors.registry import (
    create_processor,
    get_processor_class,
    list_registered_processors,
    parse_stage_spec,
)
from gcodexform.utils.errors import GcodeError, PipelineError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gcodexform",
        description="Stream GCODE through a chain of transform processors",
    )
    parser.add_argument("input", nargs="?", default="-", help="Input GCODE file ('-' or omitted for stdin)")
    parser.add_argument("-o", "--output", default="-", help="Output file ('-' for stdout)")
    parser.add_argument(
        "-s",
        "--stage",
        action="append",
        default=[],
        metavar="NAME[:k=v,...]",
        help="Processor stage, repeatable; applied in the given order",
    )
    parser.add_argument(
        "--on-error",
        choices=[policy.value for policy in ErrorPolicy],
        default=None,
        help=f"Failure policy (default: {cfg.ON_ERROR_DEFAULT})",
    )
    parser.add_argument("--list", action="store_true", help="List available processors and exit")

    # Verbose logging options
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only report errors (ERROR level)")
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set specific log level",
    )
    return parser


def _log_level(args: argparse.Namespace) -> int:
    if args.log_level:
        return TRACE if args.log_level == "TRACE" else getattr(logging, args.log_level)
    if args.verbose >= 3 or cfg.TRACE_ENABLED:
        return TRACE
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    if args.quiet:
        return logging.ERROR
    return getattr(logging, cfg.LOG_LEVEL_DEFAULT)


def main(argv: list[str] | None = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=_log_level(args),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.list:
        for name in list_registered_processors():
            processor_class = get_processor_class(name)
            doc = (processor_class.__doc__ or "").strip().splitlines()
            print(f"{name:16} {doc[0] if doc else ''}")
        return 0

    try:
        stages = [create_processor(*parse_stage_spec(spec)) for spec in args.stage]
        on_error = ErrorPolicy.from_name(args.on_error or cfg.ON_ERROR_DEFAULT)
    except (ValueError, GcodeError) as e:
        logger.error(f"Invalid pipeline configuration: {e}")
        return 2

    for stage in stages:
        logger.info(f"Stage {stage.name}: {stage.get_help()}")

    pipeline = GcodePipeline(PipelineConfig(stages=stages, on_error=on_error))

    try:
        source = sys.stdin if args.input == "-" else open(args.input, encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 2
    try:
        sink = sys.stdout if args.output == "-" else open(args.output, "w", encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot write {args.output}: {e}")
        if source is not sys.stdin:
            source.close()
        return 2

    try:
        for command in pipeline.iter_run(source):
            sink.write(command + "\n")
    except PipelineError as e:
        logger.error(str(e))
        return 1
    finally:
        if source is not sys.stdin:
            source.close()
        if sink is not sys.stdout:
            sink.close()

    return 0


def main_entry():
    """Entry point for the gcodexform command."""
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
