"""Main CLI entry point for the manga library."""

import argparse
import logging
import sys

from src.library import config
from src.library.logger import setup_logging

from .commands.library import add_global_arguments, setup_library_commands


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="shelf", description="Manga library - feed sync and chapter downloads"
    )
    add_global_arguments(parser)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Setup library commands
    setup_library_commands(subparsers)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = config.load_settings(args.config)
    setup_logging(settings.log_dir or None, logging.DEBUG if args.verbose else logging.WARNING)

    # Execute command
    if hasattr(args, "func"):
        return args.func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
