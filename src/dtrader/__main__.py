"""
Entry point for running dtrader as a module.

Usage:
    python -m dtrader [command] [options]

Commands:
    run         Start the console (default)
    doctor      Run preflight checks

Options:
    --env ENV           Environment (development/production)
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="dtrader-crypto console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=["run", "doctor"],
        help="Command to execute (default: run)",
    )
    parser.add_argument(
        "--env",
        default=os.getenv("DTRADER_ENV") or os.getenv("NODE_ENV") or "development",
        help="Environment (development/production)",
    )

    args = parser.parse_args(argv)

    # Import here to avoid slow startup for --help
    from dtrader.app.run import run_console, run_doctor

    try:
        if args.command == "run":
            return asyncio.run(run_console(env=args.env))
        elif args.command == "doctor":
            return asyncio.run(run_doctor(env=args.env))
        else:
            parser.print_help()
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
