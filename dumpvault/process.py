# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Process Runner - Out-of-process execution of external tools.

Dump and restore tools run as child processes; the caller awaits their
completion, so a slow tool never blocks the event loop. The exit code is
the only success signal. Diagnostic output is kept for logging.
"""

import asyncio
import contextlib
import time
from dataclasses import dataclass
from typing import List

import structlog

from dumpvault.errors import explain_tool_not_found, explain_tool_timeout
from dumpvault.exceptions import TimedOutError, ToolNotFoundError

logger = structlog.get_logger()

# Diagnostic lines kept in error details
STDERR_TAIL_LINES = 20


@dataclass
class ToolResult:
    """Outcome of one external tool invocation."""

    argv: List[str]
    returncode: int
    stdout: str
    stderr: str
    duration_seconds: float

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, lines: int = STDERR_TAIL_LINES) -> str:
        return "\n".join(self.stderr.strip().splitlines()[-lines:])


async def _spawn(*argv: str) -> asyncio.subprocess.Process:
    """Launch a child process with captured output."""
    return await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )


async def _kill_and_reap(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()


async def run_tool(
    argv: List[str],
    timeout_seconds: float | None = None,
    details: dict | None = None,
) -> ToolResult:
    """
    Run an external tool to completion.

    Args:
        argv: Executable followed by its arguments
        timeout_seconds: Kill the child after this long (None = no limit)
        details: Extra context attached to raised errors

    Returns:
        ToolResult with exit status and decoded output

    Raises:
        ToolNotFoundError: If the executable cannot be launched
        TimedOutError: If the deadline passes (the child is killed)
    """
    tool = argv[0]
    context = {"tool": tool, **(details or {})}
    start = time.monotonic()

    try:
        process = await _spawn(*argv)
    except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
        raise ToolNotFoundError(explain_tool_not_found(tool), details=context) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        await _kill_and_reap(process)

        logger.error(
            "tool_timed_out",
            tool=tool,
            timeout_seconds=timeout_seconds,
        )
        raise TimedOutError(
            explain_tool_timeout(tool, timeout_seconds or 0),
            details={**context, "timeout_seconds": timeout_seconds},
        ) from e
    except BaseException:
        # Cancelled or interrupted: the child must not outlive the caller's lock
        await asyncio.shield(_kill_and_reap(process))
        logger.warning("tool_cancelled", tool=tool)
        raise

    result = ToolResult(
        argv=list(argv),
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=(stdout or b"").decode("utf-8", errors="replace"),
        stderr=(stderr or b"").decode("utf-8", errors="replace"),
        duration_seconds=time.monotonic() - start,
    )

    logger.debug(
        "tool_finished",
        tool=tool,
        returncode=result.returncode,
        duration=round(result.duration_seconds, 3),
    )

    return result


def log_diagnostics(result: ToolResult, success_marker: str, operation: str) -> None:
    """
    Log a tool's diagnostic stream.

    Tools report progress on stderr even when they succeed, so the text is
    informational only. Output without the usual completion phrase is
    surfaced once as a warning.
    """
    if not result.stderr.strip():
        return

    for line in result.stderr.strip().splitlines():
        logger.debug(f"{operation}_tool_output", line=line)

    if success_marker not in result.stderr:
        logger.warning(
            f"{operation}_tool_warnings",
            returncode=result.returncode,
            output=result.stderr_tail(),
        )


async def probe_tool(tool: str) -> str | None:
    """
    Report the version line of an external tool.

    Returns:
        First line of ``<tool> --version`` output, or None when the tool
        cannot be run or exits with an error
    """
    try:
        result = await run_tool([tool, "--version"], timeout_seconds=30)
    except (ToolNotFoundError, TimedOutError):
        return None

    if not result.succeeded:
        return None

    output = (result.stdout or result.stderr).strip()
    return output.splitlines()[0] if output else tool
