"""Wrappers for macOS system commands."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from ..models.privilege import FailureKind, ProcessResult

logger = logging.getLogger(__name__)

OSASCRIPT = "/usr/bin/osascript"
SUDO = "/usr/bin/sudo"

# Signature shared by run_cmd and the fakes used in tests
CommandExecutor = Callable[..., Awaitable[ProcessResult]]

_CANCEL_MARKERS = ("user canceled", "user cancelled", "(-128)")
_AUTH_MARKERS = (
    "password",
    "authentication",
    "not allowed",
    "not authorized",
    "a terminal is required",
)


async def run_cmd(*args: str, timeout: float = 30.0) -> ProcessResult:
    """Run a command without a shell and capture its output."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return ProcessResult(returncode=127, stderr=str(e))

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return ProcessResult(returncode=-1, stderr="Command timed out", timed_out=True)

    return ProcessResult(
        returncode=proc.returncode or 0,
        stdout=stdout.decode("utf-8", errors="replace").strip(),
        stderr=stderr.decode("utf-8", errors="replace").strip(),
    )


def classify_failure(result: ProcessResult) -> Optional[FailureKind]:
    """Map a finished process to a failure kind, or None when it succeeded.

    Exit code and the timeout flag are authoritative. Telling an
    authentication problem apart from an ordinary command failure relies on
    the diagnostic text of sudo and osascript, so it is a heuristic and may
    misfile messages from future macOS releases.
    """
    if result.timed_out:
        return FailureKind.TIMEOUT
    if result.returncode == 0:
        return None

    text = f"{result.stderr}\n{result.stdout}".lower()
    if any(marker in text for marker in _CANCEL_MARKERS):
        return FailureKind.USER_CANCELLED
    if any(marker in text for marker in _AUTH_MARKERS):
        return FailureKind.AUTHENTICATION
    return FailureKind.COMMAND


def escape_shell_arg(value) -> str:
    """Escape a value for use inside a double-quoted sh word."""
    if value is None:
        return ""
    return (
        str(value)
        .replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("$", "\\$")
        .replace("`", "\\`")
    )


def compose_shell_command(batch: Sequence[Sequence[str]]) -> str:
    """Join argument vectors into one `&&`-chained sh command line."""
    return " && ".join(
        " ".join(f'"{escape_shell_arg(arg)}"' for arg in argv) for argv in batch
    )


def applescript_string(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def admin_script(shell_command: str) -> str:
    """AppleScript that runs a shell line behind the administrator prompt."""
    return f"do shell script {applescript_string(shell_command)} with administrator privileges"


def osascript_argv(shell_command: str) -> list[str]:
    return [OSASCRIPT, "-e", admin_script(shell_command)]


def sudo_argv(argv: Sequence[str]) -> list[str]:
    """Non-interactive sudo: fails fast instead of asking for a password."""
    return [SUDO, "-n", *argv]


async def list_network_services(
    networksetup: str = "/usr/sbin/networksetup",
    executor: CommandExecutor = run_cmd,
) -> list[str]:
    """List network service names, skipping the header line.

    Disabled services are reported with a leading asterisk; it is stripped so
    the names can be passed back to networksetup.
    """
    result = await executor(networksetup, "-listallnetworkservices")
    if not result.ok:
        logger.error(f"Listing network services failed: {result.diagnostic}")
        return []

    services = []
    for line in result.stdout.splitlines()[1:]:
        name = line.strip().lstrip("*").strip()
        if name:
            services.append(name)
    return services
