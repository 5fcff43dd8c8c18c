"""pwamanifest - PWA asset manifest and service worker generator."""

import argparse
import logging
import sys
from typing import TextIO

__version__ = "0.1.0"

DEFAULT_CONFIG_PATH = "pwamanifest.yaml"

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False, stream: TextIO | None = None) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=stream if stream is not None else sys.stdout,
    )


def _cmd_generate(args: argparse.Namespace) -> None:
    """Execute the generate command - write service worker and manifest."""
    _setup_logging(args.verbose)

    logger.info("pwamanifest %s starting...", __version__)

    from .config import ConfigError, load_config
    from .emitter import EmitError
    from .generator import generate

    # 1. Load configuration
    try:
        config = load_config(args.config)
        logger.info("Configuration loaded from %s", args.config)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    # 2. Run the pipeline
    try:
        result = generate(config, dry_run=args.dry_run)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)
    except EmitError as e:
        logger.error("Generation failed: %s", e)
        sys.exit(1)

    # 3. Summary
    changed = len(result.changed)
    verb = "would change" if args.dry_run else "changed"
    logger.info("Done: %d assets, %d/%d outputs %s", len(result.assets), changed, len(result.outputs), verb)


def _cmd_manifest(args: argparse.Namespace) -> None:
    """Execute the manifest command - print the manifest without writing."""
    # stdout carries the manifest itself
    _setup_logging(args.verbose, stream=sys.stderr)

    from .config import ConfigError, create_build_context, load_config
    from .generator import build_asset_manifest

    try:
        config = load_config(args.config)
        context = create_build_context(config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    _assets, manifest_json = build_asset_manifest(config, context)
    print(manifest_json)


def _cmd_check(args: argparse.Namespace) -> None:
    """Execute the check command - fail if any output is out of date."""
    _setup_logging(args.verbose)

    from .config import ConfigError, load_config
    from .emitter import EmitError
    from .generator import generate

    try:
        config = load_config(args.config)
        result = generate(config, dry_run=True)
    except (ConfigError, EmitError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    stale = result.changed
    for path in stale:
        print(f"✗ STALE: {path}")

    if stale:
        print(f"\nResult: {len(stale)}/{len(result.outputs)} outputs out of date")
        sys.exit(1)

    print(f"Result: all {len(result.outputs)} outputs up to date")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the pwamanifest package."""
    parser = argparse.ArgumentParser(
        description="pwamanifest - PWA asset manifest and service worker generator"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pwamanifest {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # Generate subcommand (default behavior)
    generate_parser = subparsers.add_parser(
        "generate",
        help="Write the service worker, manifest file and entry document (default)",
    )
    _add_common_arguments(generate_parser)
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report which outputs would change without writing them",
    )
    generate_parser.set_defaults(func=_cmd_generate)

    # Manifest subcommand
    manifest_parser = subparsers.add_parser(
        "manifest",
        help="Print the asset manifest to stdout without writing files",
    )
    _add_common_arguments(manifest_parser)
    manifest_parser.set_defaults(func=_cmd_manifest)

    # Check subcommand
    check_parser = subparsers.add_parser(
        "check",
        help="Exit with status 1 if any generated output is out of date",
    )
    _add_common_arguments(check_parser)
    check_parser.set_defaults(func=_cmd_check)

    args = parser.parse_args(argv)

    # Default to 'generate' if no command specified
    if args.command is None:
        args.config = DEFAULT_CONFIG_PATH
        args.verbose = False
        args.dry_run = False
        args.func = _cmd_generate

    args.func(args)
