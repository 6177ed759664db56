#!/usr/bin/env python3
"""
Main entry point for Winget-AutoUpdate, as run by the scheduled tasks:
``python -m winget_autoupdate run``.
"""

from __future__ import annotations

import sys
from typing import NoReturn

from .cli import CLI


def main() -> NoReturn:
    """Main entry point for the update agent."""
    try:
        cli = CLI()
        exit_code = cli.run()
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(130)  # Standard exit code for SIGINT
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
