"""Process helpers for the Windows tools the agent drives.

schtasks.exe and powershell.exe are run hidden, with output captured and
wrapped in a CommandResult so callers can log and branch on the exit code.
"""

from __future__ import annotations

import base64
import subprocess
import sys

from loguru import logger

from .exceptions import CommandError
from .models import CommandResult

CREATE_NO_WINDOW = 0x08000000


def run_process(command: list[str]) -> CommandResult:
    """Run a command to completion without showing a console window.

    Args:
        command: Executable and arguments.

    Returns:
        CommandResult with stdout and stderr combined.

    Raises:
        CommandError: If the executable cannot be started.
    """
    logger.debug(f"Executing command: {' '.join(command)}")
    try:
        process = subprocess.run(
            command,
            check=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            creationflags=CREATE_NO_WINDOW if sys.platform == "win32" else 0,
        )
    except OSError as e:
        raise CommandError(f"Failed to execute command {command[0]}", command, e) from e

    output = (process.stdout or "") + (process.stderr or "")
    if process.returncode != 0:
        logger.debug(f"{command[0]} exited with code {process.returncode}: {output.strip()}")

    return {
        "success": process.returncode == 0,
        "output": output,
        "command": command,
        "return_code": process.returncode,
    }


def run_powershell(script: str) -> CommandResult:
    """Run a PowerShell script passed as an encoded command.

    Encoding the script avoids every quoting issue with the command line.
    """
    encoded = base64.b64encode(script.encode("utf-16-le")).decode("ascii")
    return run_process(
        [
            "powershell.exe",
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-EncodedCommand",
            encoded,
        ]
    )


def quote_ps(value: str) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + value.replace("'", "''") + "'"
