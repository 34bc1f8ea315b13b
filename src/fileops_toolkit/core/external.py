"""Running external tools (wget, youtube-dl) with uniform error handling."""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from typing import TYPE_CHECKING

from ..config.constants import ERROR_MESSAGE_TRUNCATE_LENGTH
from .base import ConfigurationError, ToolkitError

if TYPE_CHECKING:
    from pathlib import Path

LOG = logging.getLogger(__name__)


class ExternalCommandError(ToolkitError):
    """An external command failed or timed out."""

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        return_code: int | None = None,
        stderr: str | None = None,
        file_path: Path | None = None,
    ) -> None:
        """Initialize the error with detailed context."""
        super().__init__(message, file_path=file_path)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


def check_availability(executable: str) -> str:
    """
    Resolve an executable on PATH.

    Raises:
        ConfigurationError: if the executable cannot be found

    """
    resolved = shutil.which(executable)
    if resolved is None:
        msg = f"Missing executable: {executable}"
        LOG.error(msg)
        raise ConfigurationError(msg)
    return resolved


def run_external(
    command: list[str],
    *,
    timeout: int | None = None,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess:
    """Run a command, capturing its output, and raise on failure."""
    check_availability(command[0])

    LOG.info("Running command: %s", " ".join(command))
    start_time = time.time()

    try:
        result = subprocess.run(  # noqa: S603
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            cwd=cwd,
            encoding="utf-8",
            errors="replace",
        )
    except subprocess.TimeoutExpired as e:
        msg = f"{command[0]} timed out after {timeout}s"
        raise ExternalCommandError(msg, command=command) from e
    except OSError as e:
        msg = f"Could not start {command[0]}: {e}"
        raise ExternalCommandError(msg, command=command) from e

    LOG.debug("%s finished in %.2fs with code %d", command[0], time.time() - start_time, result.returncode)

    if result.returncode != 0:
        error_msg = f"{command[0]} failed with return code {result.returncode}"
        details = (result.stderr or result.stdout or "").strip()
        if details:
            error_msg += f": {details.splitlines()[-1][:ERROR_MESSAGE_TRUNCATE_LENGTH]}"
        raise ExternalCommandError(
            error_msg,
            command=command,
            return_code=result.returncode,
            stderr=result.stderr,
        )
    return result
