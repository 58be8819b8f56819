"""Command-line entry point for running tutorials."""

import sys
from typing import List, Optional

from . import tutorials  # noqa: F401  registers every tutorial
from .config import CleanupMode
from .core.registry import get_tutorial, list_tutorials
from .core.tutorial import EXIT_FAILURE
from .utils.logger import get_logger

logger = get_logger(__name__)


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="aws-tutorials",
        description="Run AWS getting-started tutorials and clean up after them",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List available tutorials")

    run_parser = subparsers.add_parser("run", help="Run a tutorial")
    run_parser.add_argument(
        "slug",
        type=str,
        help="Tutorial to run (see 'aws-tutorials list')"
    )
    run_parser.add_argument(
        "--cleanup",
        type=str,
        choices=[mode.value for mode in CleanupMode],
        default=None,
        help="When to delete created resources (default: TUTORIAL_CLEANUP or always)"
    )
    run_parser.add_argument(
        "--region",
        type=str,
        default=None,
        help="AWS region (default: AWS_REGION or us-east-1)"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "list":
        for tutorial_cls in list_tutorials():
            print(f"{tutorial_cls.slug:<30} {tutorial_cls.title}")
        return 0

    try:
        tutorial_cls = get_tutorial(args.slug)
    except KeyError as e:
        logger.error(e.args[0])
        return EXIT_FAILURE

    tutorial = tutorial_cls(
        cleanup_mode=CleanupMode(args.cleanup) if args.cleanup else None,
        region=args.region,
    )
    result = tutorial.run()
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
