"""CLI commands for relay list sync.

Provides a command-line interface for one-off runs and for checking how
individual entries normalize.
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys

from pydantic import ValidationError

from relay_list_sync.info import build_info
from relay_list_sync.normalizer import classify_entry
from relay_list_sync.settings import get_settings
from relay_list_sync.worker import run_once


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI output.

    Args:
        verbose: Enable debug logging.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def cmd_run(args: argparse.Namespace) -> int:
    """Run one reconciliation.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success).
    """
    result = asyncio.run(run_once(get_settings(), dry_run=args.dry_run))

    if args.json:
        print(json.dumps(dataclasses.asdict(result), indent=2, default=str))
    elif result.error:
        print(f"❌ {result.list_name}: {result.error}")
    elif result.wrote:
        print(
            f"✓ {result.list_name}: Synced {result.desired_count} IPs "
            f"(+{result.added}, -{result.removed}) "
            f"in {result.duration_seconds:.1f}s"
        )
    else:
        verb = "Would sync" if args.dry_run else "No changes"
        print(
            f"✓ {result.list_name}: {verb} ({result.desired_count} IPs, "
            f"+{result.added}, -{result.removed}, "
            f"{result.dropped_count} dropped)"
        )

    return 0 if result.succeeded else 1


def cmd_normalize(args: argparse.Namespace) -> int:
    """Show how entries normalize.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (1 if any entry was dropped).
    """
    results = [
        classify_entry(entry, allow_promote_ipv6_to_slash64=args.promote_ipv6)
        for entry in args.entries
    ]

    if args.json:
        payload = [
            {
                "raw": r.raw,
                "normalized": r.value,
                "reason": r.reason.value if r.reason else None,
            }
            for r in results
        ]
        print(json.dumps(payload, indent=2))
    else:
        for r in results:
            if r.accepted:
                print(f"  {r.raw} -> {r.value}")
            else:
                print(f"  {r.raw} -> dropped ({r.reason.value})")

    return 0 if all(r.accepted for r in results) else 1


def cmd_info(args: argparse.Namespace) -> int:
    """Print the status document served at /info.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code.
    """
    print(json.dumps(build_info(get_settings()), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command line arguments.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Sync iCloud Private Relay egress ranges to a Cloudflare IP list",
        prog="relay-list-sync",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Reconcile the list once")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compare without writing to Cloudflare",
    )
    run_parser.add_argument("--json", action="store_true", help="Output as JSON")
    run_parser.set_defaults(func=cmd_run)

    normalize_parser = subparsers.add_parser(
        "normalize", help="Show how entries normalize"
    )
    normalize_parser.add_argument("entries", nargs="+", help="Raw entries")
    normalize_parser.add_argument(
        "--promote-ipv6",
        action="store_true",
        help="Promote IPv6 entries without a prefix to /64",
    )
    normalize_parser.add_argument("--json", action="store_true", help="Output as JSON")
    normalize_parser.set_defaults(func=cmd_normalize)

    info_parser = subparsers.add_parser("info", help="Print worker status document")
    info_parser.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        return args.func(args)
    except ValidationError as e:
        print(f"Error: invalid settings: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logging.exception("Unexpected error")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
