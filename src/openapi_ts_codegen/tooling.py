"""Subprocess helpers for external generator, formatter and type-check tools."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import logging
import subprocess
from typing import Optional

logger = logging.getLogger(__name__)


class ToolError(RuntimeError):
    """Raised when an external tool cannot run or exits non-zero."""


def run_tool(
    command: Sequence[str],
    *,
    description: str,
    cwd: Optional[Path] = None,
) -> subprocess.CompletedProcess[str]:
    """Run an external tool and raise :class:`ToolError` on failure.

    Args:
        command (Sequence[str]): Executable and arguments.
        description (str): Short label used in log and error messages.
        cwd (Optional[Path]): Working directory for the process.

    Returns:
        subprocess.CompletedProcess[str]: The completed process.
    """
    logger.debug("Running %s: %s", description, " ".join(command))
    try:
        return subprocess.run(
            list(command),
            check=True,
            capture_output=True,
            text=True,
            cwd=cwd,
        )
    except OSError as exc:
        raise ToolError(f"Failed to execute {description}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        error_text = exc.stderr.strip() or exc.stdout.strip() or str(exc)
        raise ToolError(f"{description} failed: {error_text}") from exc
