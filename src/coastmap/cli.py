"""CLI entrypoint for the coastmap builder."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .models import MapBuildError
from .pipeline import format_build_lines, run_map_build
from .util import setup_logging
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("coastmap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coastmap",
        description="Coastline map with labelled sites and a locator inset.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    build_p = subparsers.add_parser("build", help="Fetch data, render and write the map.")
    add_common(build_p)
    build_p.add_argument(
        "--output",
        default=None,
        help="Override output.path from the config.",
    )
    build_p.add_argument(
        "--show",
        action="store_true",
        help="Open the composed image in the system viewer after writing it.",
    )

    validate_p = subparsers.add_parser("validate", help="Validate the config without fetching.")
    add_common(validate_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.output.logs_dir, verbose=args.verbose)
    return cfg


def _run_validate(cfg: AppConfig) -> int:
    report = Validator(cfg).run()
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_build(cfg: AppConfig, *, output: str | None, show: bool) -> int:
    LOGGER.info("Starting map build.")
    validation = Validator(cfg).run()
    for line in format_report_lines(validation):
        LOGGER.info(line)
    if not validation.ok:
        LOGGER.error("Build aborted due to validation errors.")
        return 1

    output_path = Path(output).resolve() if output else None
    try:
        report = run_map_build(cfg, output_path=output_path)
    except MapBuildError as exc:
        LOGGER.error("Build failed: %s", exc)
        return 1
    for line in format_build_lines(report):
        LOGGER.info(line)
    if show and report.image is not None:
        report.image.show()
    LOGGER.info("Build finished.")
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "build":
        return _run_build(cfg, output=args.output, show=bool(args.show))
    if command == "validate":
        return _run_validate(cfg)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
