"""Elevation policy and privileged execution for networksetup.

Three ways of running a command as administrator are reconciled here:

* a passwordless sudoers entry naming only networksetup (``sudo -n``),
* the interactive ``osascript ... with administrator privileges`` prompt,
  whose success leaves the user session's authorization cache warm,
* executing directly when either of the above is already in effect.

The marker file and the in-memory recency window are hints used to avoid
needless prompts. Only the result of actually running a command is trusted;
when it contradicts the hints, the hints are cleared.
"""

import asyncio
import getpass
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from .config import Settings
from .errors import ElevationFailed, ExecFailed, NeedsAdminRights, UserCancelled
from .models.privilege import AuthStatus, ElevationPath, FailureKind, ProcessResult
from .utils.macos_commands import (
    CommandExecutor,
    classify_failure,
    compose_shell_command,
    escape_shell_arg,
    osascript_argv,
    run_cmd,
    sudo_argv,
)

logger = logging.getLogger(__name__)

CommandBatch = Sequence[Sequence[str]]


def _preview(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class AuthorizationBroker:
    """Decides how a privileged command can run right now."""

    def __init__(
        self,
        settings: Settings,
        executor: CommandExecutor = run_cmd,
        clock: Callable[[], float] = time.monotonic,
        username: Optional[str] = None,
    ):
        self._executor = executor
        self._clock = clock
        self._username = username or getpass.getuser()
        self.marker_path = Path(settings.marker_path)
        self.sudoers_path = Path(settings.sudoers_path)
        self.networksetup = settings.networksetup_path
        self.recent_window = settings.recent_elevation_seconds
        self.timeout = settings.elevation_timeout
        self.prefer_persistent_grant = settings.prefer_persistent_grant
        self._last_elevation: Optional[float] = None

    # -- queries ---------------------------------------------------------

    async def probe_persistent_grant(self) -> bool:
        """True if networksetup runs through sudo without a password.

        ``sudo -n`` refuses instead of prompting, so this never blocks on
        the user and changes nothing on the system.
        """
        result = await self._executor(
            *sudo_argv([self.networksetup, "-listallnetworkservices"]),
            timeout=self.timeout,
        )
        return result.ok

    def has_recent_elevation(self) -> bool:
        if self._last_elevation is None:
            return False
        return self._clock() - self._last_elevation < self.recent_window

    def has_elevation_marker(self) -> bool:
        try:
            return self.marker_path.exists()
        except OSError:
            return False

    def marker_timestamp(self) -> Optional[float]:
        try:
            return float(self.marker_path.read_text().strip())
        except (OSError, ValueError):
            return None

    async def status(self) -> AuthStatus:
        return AuthStatus(
            persistent_grant=await self.probe_persistent_grant(),
            marker_present=self.has_elevation_marker(),
            recent_elevation=self.has_recent_elevation(),
            marker_timestamp=self.marker_timestamp(),
        )

    async def select_path(self) -> ElevationPath:
        if await self.probe_persistent_grant():
            logger.info("Passwordless sudo grant active, executing directly")
            return ElevationPath.GRANT
        if self.has_recent_elevation():
            logger.info(
                f"Elevated within the last {self.recent_window:.0f}s, reusing session authorization"
            )
            return ElevationPath.SESSION
        return ElevationPath.ELEVATE

    # -- state changes ---------------------------------------------------

    def record_elevation(self) -> None:
        """Note a successful elevation: reset the window and write the marker."""
        self._last_elevation = self._clock()
        try:
            self.marker_path.parent.mkdir(parents=True, exist_ok=True)
            self.marker_path.write_text(str(time.time()))
        except OSError as e:
            logger.warning(f"Could not write authorization marker {self.marker_path}: {e}")

    def clear_marker(self) -> None:
        try:
            self.marker_path.unlink()
            logger.warning(f"Removed stale authorization marker {self.marker_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove authorization marker {self.marker_path}: {e}")

    def invalidate(self) -> None:
        """Forget every hint after the OS rejected an authorization."""
        self._last_elevation = None
        self.clear_marker()

    async def acquire_interactive_elevation(self) -> None:
        """Prompt once so later administrator calls in this session skip it."""
        logger.info("Requesting administrator authorization")
        await self._run_interactive("/usr/bin/true")
        self.record_elevation()
        logger.info("Administrator authorization acquired")

    async def install_persistent_grant(self) -> None:
        """Install a sudoers entry allowing networksetup without a password.

        The entry names this user and the networksetup binary only. It is
        written next to its final location, checked with ``visudo -cf`` and
        moved into place; a rejected staging file is removed. Costs exactly
        one prompt.
        """
        entry = f"{self._username} ALL=(ALL) NOPASSWD: {self.networksetup}"
        staging = f"{self.sudoers_path}.tmp"
        shell_command = (
            f'/bin/echo "{escape_shell_arg(entry)}" > "{escape_shell_arg(staging)}" && '
            + compose_shell_command([
                ["/usr/sbin/visudo", "-cf", staging],
                ["/bin/chmod", "0440", staging],
                ["/bin/mv", "-f", staging, str(self.sudoers_path)],
            ])
            # a rejected entry must not linger in sudoers.d
            + f' || {{ /bin/rm -f "{escape_shell_arg(staging)}"; exit 1; }}'
        )
        logger.info(f"Installing passwordless grant at {self.sudoers_path} (one password prompt)")
        await self._run_interactive(shell_command)
        self.record_elevation()
        logger.info("Passwordless grant installed")

    async def revoke_persistent_grant(self) -> None:
        shell_command = compose_shell_command([["/bin/rm", "-f", str(self.sudoers_path)]])
        logger.info(f"Removing passwordless grant at {self.sudoers_path}")
        await self._run_interactive(shell_command)
        self.invalidate()

    async def elevate(self) -> ElevationPath:
        """Obtain elevation and return the path commands should now take."""
        if self.has_elevation_marker():
            logger.info("Authorization marker present, session authorization may still be cached")
        else:
            logger.info("No authorization marker, first use needs the administrator password")

        if self.prefer_persistent_grant:
            try:
                await self.install_persistent_grant()
                return ElevationPath.GRANT
            except ElevationFailed as e:
                logger.warning(
                    f"Could not install passwordless grant, falling back to session authorization: {e.diagnostic}"
                )
        await self.acquire_interactive_elevation()
        return ElevationPath.SESSION

    async def _run_interactive(self, shell_command: str) -> ProcessResult:
        result = await self._executor(*osascript_argv(shell_command), timeout=self.timeout)
        kind = classify_failure(result)
        if kind is None:
            return result
        if kind is FailureKind.USER_CANCELLED:
            logger.info("User dismissed the authorization prompt")
            raise UserCancelled(result.diagnostic)
        if kind is FailureKind.TIMEOUT:
            logger.error(f"Authorization prompt timed out after {self.timeout:.0f}s")
            raise ExecFailed(result.diagnostic, timed_out=True)
        logger.error(f"Elevation failed ({kind.value}): {result.diagnostic}")
        raise ElevationFailed(result.diagnostic)


class PrivilegedCommandRunner:
    """Runs command batches as administrator with a single automatic retry.

    Whole operations are serialized so two overlapping calls cannot each
    raise their own password prompt.
    """

    def __init__(
        self,
        broker: AuthorizationBroker,
        executor: CommandExecutor = run_cmd,
        timeout: float = 60.0,
    ):
        self.broker = broker
        self._executor = executor
        self.timeout = timeout
        self._lock = asyncio.Lock()

    async def run(self, batch: CommandBatch) -> str:
        """Execute ``batch`` as one elevation unit and return its output.

        Commands run in order and stop at the first failure; earlier commands
        are not rolled back.
        """
        commands = [[str(arg) for arg in argv] for argv in batch if argv]
        if not commands:
            return ""
        async with self._lock:
            return await self._run(commands)

    async def install_persistent_grant(self) -> None:
        """Install the passwordless grant without overlapping a running batch."""
        async with self._lock:
            await self.broker.install_persistent_grant()

    async def revoke_persistent_grant(self) -> None:
        async with self._lock:
            await self.broker.revoke_persistent_grant()

    async def _run(self, commands: list[list[str]]) -> str:
        path = await self.broker.select_path()
        if path is ElevationPath.ELEVATE:
            path = await self.broker.elevate()

        kind, result = await self._execute(commands, path)
        if kind is FailureKind.AUTHENTICATION:
            logger.warning("Authorization rejected, retrying once with fresh elevation")
            self.broker.invalidate()
            try:
                path = await self.broker.elevate()
            except ElevationFailed as e:
                raise NeedsAdminRights(e.diagnostic) from e
            kind, result = await self._execute(commands, path)
            if kind is FailureKind.AUTHENTICATION:
                self.broker.invalidate()
                raise NeedsAdminRights(result.diagnostic)

        if kind is None:
            return result.stdout
        if kind is FailureKind.USER_CANCELLED:
            raise UserCancelled(result.diagnostic)
        raise ExecFailed(result.diagnostic, timed_out=kind is FailureKind.TIMEOUT)

    async def _execute(
        self, commands: list[list[str]], path: ElevationPath
    ) -> tuple[Optional[FailureKind], ProcessResult]:
        if path is ElevationPath.GRANT:
            return await self._execute_with_sudo(commands)
        return await self._execute_with_osascript(commands)

    async def _execute_with_sudo(
        self, commands: list[list[str]]
    ) -> tuple[Optional[FailureKind], ProcessResult]:
        outputs = []
        for argv in commands:
            result = await self._executor(*sudo_argv(argv), timeout=self.timeout)
            kind = classify_failure(result)
            if kind is not None:
                logger.error(
                    f"sudo command failed ({kind.value}): {_preview(' '.join(argv))}: {result.diagnostic}"
                )
                return kind, result
            if result.stdout:
                outputs.append(result.stdout)
        return None, ProcessResult(stdout="\n".join(outputs))

    async def _execute_with_osascript(
        self, commands: list[list[str]]
    ) -> tuple[Optional[FailureKind], ProcessResult]:
        shell_command = compose_shell_command(commands)
        logger.info(f"Executing with administrator privileges: {_preview(shell_command)}")
        result = await self._executor(*osascript_argv(shell_command), timeout=self.timeout)
        kind = classify_failure(result)
        if kind is None:
            self.broker.record_elevation()
        else:
            logger.error(f"Privileged command failed ({kind.value}): {result.diagnostic}")
        return kind, result


@dataclass
class PrivilegeContext:
    """Broker and runner shared by every call site of one process."""

    broker: AuthorizationBroker
    runner: PrivilegedCommandRunner

    @classmethod
    def create(
        cls,
        settings: Settings,
        executor: CommandExecutor = run_cmd,
        clock: Callable[[], float] = time.monotonic,
        username: Optional[str] = None,
    ) -> "PrivilegeContext":
        broker = AuthorizationBroker(settings, executor=executor, clock=clock, username=username)
        runner = PrivilegedCommandRunner(broker, executor=executor, timeout=settings.exec_timeout)
        return cls(broker=broker, runner=runner)
