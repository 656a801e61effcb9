"""CLI entry point and orchestration logic."""

import argparse
import logging
import socket
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from . import __version__
from .emitters.mikrotik import RouterOSScript, emit_script
from .model.config import ScreenConfig
from .parser.reader import parse_text
from .settings import Settings, default_template
from .util import ConversionError, setup_logging

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="screen2mtk",
        description="Convert a ScreenOS configuration export to MikroTik RouterOS firewall rules.",
    )
    p.add_argument(
        "input", nargs="?", default="-",
        help="Path to ScreenOS config export (default: standard input)",
    )
    p.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the RouterOS script here (default: standard output)",
    )
    p.add_argument(
        "-z", "--zone", action="append", dest="zones", default=None,
        help="Zone of interest, repeatable (default: Clients)",
    )
    p.add_argument("--all-zones", action="store_true", help="Convert policies of every zone")
    p.add_argument("-c", "--config", type=Path, default=None, help="Path to settings YAML")
    p.add_argument(
        "--init-config", type=Path, default=None, metavar="PATH",
        help="Write a settings template to PATH and exit",
    )
    p.add_argument(
        "--no-resolve", action="store_true",
        help="Skip host name address objects instead of resolving them",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"screen2mtk {__version__}")
    return p


def load_settings(args: argparse.Namespace) -> Settings:
    """Settings file values, overridden by command line flags."""
    settings = Settings()
    if args.config:
        log.info(f"Loading settings from: {args.config}")
        settings = Settings.from_yaml(args.config.read_text(encoding="utf-8"))
    if args.zones:
        settings.zones = args.zones
    if args.all_zones:
        settings.all_zones = True
    return settings


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def convert(text: str, settings: Settings, resolve_hosts: bool = True) -> RouterOSScript:
    """Parse ScreenOS text and build the RouterOS script for the configured zones."""
    config: ScreenConfig = parse_text(
        text,
        services=settings.service_catalog(),
        resolver=socket.gethostbyname if resolve_hosts else None,
    )

    if settings.all_zones:
        policies = config.policies
    else:
        policies = config.filter_zones(settings.zones)
        log.info(f"Kept {len(policies)} of {len(config.policies)} policies for zone(s) {', '.join(settings.zones)}")

    script = emit_script(config, policies)
    script.diagnostics = config.diagnostics + script.diagnostics
    return script


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.init_config:
        args.init_config.write_text(default_template(), encoding="utf-8")
        log.info(f"Settings template written to: {args.init_config}")
        return

    # === STEP 1: Settings ===
    try:
        settings = load_settings(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        log.error(f"Cannot load settings: {e}")
        sys.exit(1)

    # === STEP 2: Read ScreenOS export ===
    if args.input != "-" and not Path(args.input).exists():
        log.error(f"Input file not found: {args.input}")
        sys.exit(1)
    log.info(f"Reading ScreenOS config: {'<stdin>' if args.input == '-' else args.input}")
    try:
        text = _read_input(args.input)
    except (OSError, UnicodeDecodeError) as e:
        log.error(f"Cannot read ScreenOS config: {e}")
        sys.exit(1)

    # === STEP 3: Parse and emit ===
    try:
        script = convert(text, settings, resolve_hosts=not args.no_resolve)
    except ConversionError as e:
        log.error(str(e))
        sys.exit(1)

    # === STEP 4: Write output ===
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(script.text, encoding="utf-8")
        log.info(f"RouterOS script written to: {args.output}")
    else:
        sys.stdout.write(script.text)
        sys.stdout.flush()

    if script.diagnostics:
        log.info(f"{len(script.diagnostics)} warning(s) reported")
