"""
CORA main entry point.

This module provides the CLI interface for launching CORA.
"""

import argparse
import sys

from .errors import CoraError


def main(argv=None):
    """Main entry point for CORA."""
    parser = argparse.ArgumentParser(
        prog="cora",
        description="CORA - Command-line Operations & Recovery Assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cora                          Start interactive session
  cora --shell pwsh             Use PowerShell as the command shell
  cora "list large files here"  Handle a single request
        """
    )

    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Show version information"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output and debug logging"
    )

    parser.add_argument(
        "--shell",
        type=str,
        help="Shell executable to run commands in (bash, cmd.exe, powershell.exe, ...)"
    )

    parser.add_argument(
        "--dialect",
        choices=["bash", "cmd", "powershell"],
        help="Shell dialect, when it cannot be inferred from --shell"
    )

    parser.add_argument(
        "--provider",
        choices=["anthropic", "openai"],
        help="Language model provider"
    )

    parser.add_argument(
        "prompt",
        nargs="*",
        help="Optional request to handle (non-interactive mode)"
    )

    args = parser.parse_args(argv)

    if args.version:
        from . import __version__
        print(f"CORA version {__version__}")
        return 0

    from .assistant import Assistant, configure_logging
    from .config import get_config

    try:
        config = get_config()
    except (CoraError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.debug:
        config.ui.debug = True
        config.logging.level = "debug"
    if args.shell:
        config.shell.process_name = args.shell
        if not args.dialect:
            config.shell.dialect = None
    if args.dialect:
        config.shell.dialect = args.dialect
    if args.provider:
        config.api.provider = args.provider

    configure_logging(config)

    assistant = Assistant(config)

    if args.prompt:
        return assistant.run_once(" ".join(args.prompt))

    return assistant.run()


if __name__ == "__main__":
    sys.exit(main())
