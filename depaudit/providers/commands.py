"""Run package-manager binaries that create or validate lock files."""

import asyncio
import shutil
from pathlib import Path

from depaudit.core.exceptions.errors import LockfileCommandError
from depaudit.core.logger.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 600.0


def check_binary_available(binary_name: str) -> bool:
    """Check if a binary is available in PATH."""
    return shutil.which(binary_name) is not None


async def run_command(
    cmd: list[str],
    cwd: Path,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Run a command asynchronously and fail loudly on a non-zero exit.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        timeout: Seconds before the process is killed.

    Returns:
        Captured standard output.

    Raises:
        LockfileCommandError: If the binary is missing, times out or exits non-zero.
    """
    command_line = " ".join(cmd)
    if not check_binary_available(cmd[0]):
        raise LockfileCommandError(
            f"{cmd[0]} is not installed or not on PATH",
            command=cmd,
        )

    logger.info(f"Running {command_line} in {cwd}")
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
    )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise LockfileCommandError(
            f"{command_line} timed out after {timeout:.0f} seconds",
            command=cmd,
        )

    out = stdout.decode("utf-8", errors="replace")
    err = stderr.decode("utf-8", errors="replace")
    if process.returncode:
        raise LockfileCommandError(
            f"{command_line} failed with exit code {process.returncode}",
            command=cmd,
            exit_code=process.returncode,
            stderr=err or out,
        )

    logger.debug(f"{command_line} finished")
    return out
