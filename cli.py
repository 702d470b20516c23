#!/usr/bin/env python3
"""
nixmap CLI

Follows the imports of a NixOS configuration, prints the import tree and
flags option paths that are defined in more than one file.
"""

import argparse
import logging
import sys
from pathlib import Path

from exporters import to_json, to_summary, to_tree, write_chain_log
from log_config import LoggingConfig, configure_logging, level_for_verbosity
from scanner.builder import analyze
from settings import DEFAULT_ROOT, Settings, SettingsError, load_settings


logger = logging.getLogger("nixmap")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FINDINGS = 2


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="nixmap",
        description="Follow NixOS configuration imports and report the import tree and conflicting definitions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nixmap                               # Analyze /etc/nixos
  nixmap ./config --entry hosts/web.nix # Start from a specific file
  nixmap . -f json -o analysis.json    # JSON output to file
  nixmap . --key services.caddy        # Also check services.caddy for conflicts
  nixmap . --orphans                   # Also walk files no entry imports
  nixmap . --strict                    # Exit 2 on dangling imports or cycles
        """,
    )

    # Positional arguments
    parser.add_argument(
        "root",
        nargs="?",
        default=None,
        help=f"Configuration directory (default: {DEFAULT_ROOT})",
    )

    parser.add_argument(
        "--entry",
        nargs="+",
        default=None,
        help="Entry files, relative to the root (default: flake.nix and/or configuration.nix)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML settings file (default: <root>/.nixmap.yaml if present)",
    )

    # Output options
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )

    parser.add_argument(
        "-f", "--format",
        choices=["tree", "json"],
        default="tree",
        help="Output format (default: tree)",
    )

    parser.add_argument(
        "--ascii-style",
        choices=["tree", "ascii"],
        default="tree",
        help="Tree style: 'tree' (Unicode) or 'ascii' (pure ASCII)",
    )

    parser.add_argument(
        "--chain-log",
        type=str,
        default=None,
        help=(
            "Path of the import chain log (default: /tmp/nixos-import-chain.txt). "
            "Its header holds the current time unless SOURCE_DATE_EPOCH is set, "
            "which makes repeated runs write identical files"
        ),
    )

    parser.add_argument(
        "--no-chain-log",
        action="store_true",
        help="Do not write the import chain log",
    )

    # Scanning options
    parser.add_argument(
        "--extension",
        type=str,
        default=None,
        help="Configuration file extension (default: .nix)",
    )

    parser.add_argument(
        "--key",
        nargs="+",
        default=None,
        help="Additional option paths to check for conflicts (e.g., services.caddy)",
    )

    parser.add_argument(
        "--exclude-dir",
        nargs="+",
        default=None,
        help="Directory names skipped by the orphan scan",
    )

    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Deepest import level to follow",
    )

    parser.add_argument(
        "--max-nodes",
        type=int,
        default=None,
        help="Maximum number of files to visit",
    )

    parser.add_argument(
        "--orphans",
        action="store_true",
        help="Also walk configuration files that no entry imports",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 2 when dangling imports or cycles are found",
    )

    # Logging options
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file",
    )

    return parser.parse_args(args)


def build_settings(parsed) -> Settings:
    """
    Merge the settings file and command line options.

    Raises:
        SettingsError: If the settings file is invalid.
    """
    root_arg = Path(parsed.root) if parsed.root else None
    settings = load_settings(
        path=Path(parsed.config) if parsed.config else None,
        root=root_arg if root_arg is not None else DEFAULT_ROOT,
    )

    if root_arg is not None:
        settings.root = root_arg
    if parsed.entry:
        settings.entries = list(parsed.entry)
    if parsed.extension:
        ext = parsed.extension
        settings.extension = ext if ext.startswith(".") else "." + ext
    if parsed.key:
        settings.vocabulary = settings.vocabulary + [k for k in parsed.key if k not in settings.vocabulary]
    if parsed.exclude_dir:
        settings.exclude_dirs = sorted(set(settings.exclude_dirs) | set(parsed.exclude_dir))
    if parsed.max_depth is not None:
        settings.max_depth = parsed.max_depth
    if parsed.max_nodes is not None:
        settings.max_nodes = parsed.max_nodes
    if parsed.chain_log:
        settings.chain_log = Path(parsed.chain_log)
    if parsed.no_chain_log:
        settings.chain_log = None
    if parsed.orphans:
        settings.orphans = True
    if parsed.verbose:
        settings.log_level = level_for_verbosity(parsed.verbose)
    if parsed.log_file:
        settings.log_file = parsed.log_file
    return settings


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)

    try:
        settings = build_settings(parsed)
    except SettingsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    configure_logging(LoggingConfig(level=settings.log_level, log_file=settings.log_file))

    root = Path(settings.root).resolve()
    if not root.is_dir():
        print(f"Error: '{settings.root}' is not a directory", file=sys.stderr)
        return EXIT_ERROR

    state = analyze(
        root=root,
        entries=settings.entries or None,
        extension=settings.extension,
        vocabulary=settings.vocabulary,
        exclude_dirs=set(settings.exclude_dirs),
        max_depth=settings.max_depth,
        max_nodes=settings.max_nodes,
        include_orphans=settings.orphans,
    )

    if not state.entries:
        print(
            f"Error: no entry files found in '{root}' (expected flake{settings.extension} "
            f"or configuration{settings.extension}; use --entry)",
            file=sys.stderr,
        )
        return EXIT_ERROR

    # Generate output
    if parsed.format == "json":
        output = to_json(state, root)
    else:
        output = to_tree(state, root, style=parsed.ascii_style) + "\n\n" + to_summary(state, root)

    # Write output
    if parsed.output:
        try:
            output_path = Path(parsed.output)
            output_path.write_text(output + "\n", encoding="utf-8")
            print(f"Output written to: {output_path}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return EXIT_ERROR
    else:
        print(output)

    if settings.chain_log is not None:
        try:
            chain_path = write_chain_log(state, settings.chain_log)
            print(f"Import chain saved to: {chain_path}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing chain log: {e}", file=sys.stderr)
            return EXIT_ERROR

    if parsed.strict and (state.dangling() or state.cycles()):
        logger.warning(
            "%d dangling reference(s), %d cycle(s) found",
            len(state.dangling()),
            len(state.cycles()),
        )
        return EXIT_FINDINGS

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
