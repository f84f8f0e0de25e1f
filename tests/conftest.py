"""
Pytest configuration for switchproxy tests.
"""

import asyncio
import re

import pytest

from switchproxy.config import Settings
from switchproxy.models.privilege import ProcessResult
from switchproxy.privileged import PrivilegeContext
from switchproxy.utils.macos_commands import OSASCRIPT, SUDO

NETWORKSETUP = "/usr/sbin/networksetup"

SERVICES_OUTPUT = (
    "An asterisk (*) denotes that a network service is disabled.\n"
    "Wi-Fi\n"
    "*Thunderbolt Bridge\n"
    "USB 10/100/1000 LAN\n"
)

CANCELLED = "execution error: User canceled. (-128)"
WRONG_PASSWORD = "execution error: The administrator user name or password was incorrect. (-60007)"
NOT_ALLOWED = "execution error: The operation is not allowed. (-60005)"


def unescape_applescript(script: str) -> str:
    """Recover the shell line from `do shell script "..." with administrator privileges`."""
    match = re.fullmatch(r'do shell script "(.*)" with administrator privileges', script, re.S)
    assert match, script
    return re.sub(r"\\(.)", r"\1", match.group(1), flags=re.S)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeMacOS:
    """Stands in for sudo, osascript and networksetup.

    ``prompt_responses`` is consumed each time the administrator dialog
    would appear: "accept", "cancel", "reject" (wrong password), "timeout"
    or "error".
    ``auth_errors`` makes that many privileged executions fail as if the
    cached authorization had expired.
    """

    def __init__(self):
        self.grant = False
        self.session_cached = False
        self.prompts = 0
        self.prompt_responses: list[str] = []
        self.auth_errors = 0
        self.fail_on: set[str] = set()
        self.timeout_on: set[str] = set()
        self.calls: list[list[str]] = []
        self.sudo_commands: list[list[str]] = []
        self.shell_commands: list[str] = []
        self.exec_attempts = 0
        self.delay = 0.0

    async def __call__(self, *args: str, timeout: float = 30.0) -> ProcessResult:
        argv = list(args)
        self.calls.append(argv)
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)

        if argv[0] == SUDO:
            return self._sudo(argv[2:])
        if argv[0] == OSASCRIPT:
            return self._osascript(unescape_applescript(argv[2]))
        if argv[:2] == [NETWORKSETUP, "-listallnetworkservices"]:
            return ProcessResult(stdout=SERVICES_OUTPUT)
        return ProcessResult(returncode=127, stderr=f"unexpected command {argv}")

    def _matches(self, text: str, markers: set[str]) -> bool:
        return any(marker in text for marker in markers)

    def _sudo(self, argv: list[str]) -> ProcessResult:
        if not self.grant:
            return ProcessResult(returncode=1, stderr="sudo: a password is required")
        if argv[1:] == ["-listallnetworkservices"]:
            return ProcessResult(stdout=SERVICES_OUTPUT)
        self.sudo_commands.append(argv)
        text = " ".join(argv)
        if self._matches(text, self.timeout_on):
            return ProcessResult(returncode=-1, stderr="Command timed out", timed_out=True)
        if self._matches(text, self.fail_on):
            return ProcessResult(returncode=4, stderr=f"** Error: {text} failed")
        return ProcessResult()

    def _osascript(self, shell: str) -> ProcessResult:
        elevation_only = shell == "/usr/bin/true" or "visudo" in shell or "/bin/rm" in shell
        if not elevation_only:
            self.exec_attempts += 1
        if not elevation_only and self.auth_errors:
            self.auth_errors -= 1
            self.session_cached = False
            return ProcessResult(returncode=1, stderr=NOT_ALLOWED)

        if not self.session_cached:
            self.prompts += 1
            response = self.prompt_responses.pop(0) if self.prompt_responses else "accept"
            if response == "cancel":
                return ProcessResult(returncode=1, stderr=CANCELLED)
            if response == "reject":
                return ProcessResult(returncode=1, stderr=WRONG_PASSWORD)
            if response == "timeout":
                return ProcessResult(returncode=-1, stderr="Command timed out", timed_out=True)
            if response == "error":
                return ProcessResult(returncode=1, stderr="execution error: sh: visudo: parse error")
            self.session_cached = True

        if "visudo" in shell:
            self.grant = True
        elif "/bin/rm" in shell:
            self.grant = False
        elif shell != "/usr/bin/true":
            self.shell_commands.append(shell)
            if self._matches(shell, self.timeout_on):
                return ProcessResult(returncode=-1, stderr="Command timed out", timed_out=True)
            if self._matches(shell, self.fail_on):
                return ProcessResult(returncode=1, stderr="execution error: ** Error: failed (4)")
        return ProcessResult()


@pytest.fixture
def fake_os():
    return FakeMacOS()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        config_path=tmp_path / "proxy-config.json",
        marker_path=tmp_path / ".switchproxy-auth",
        sudoers_path=tmp_path / "sudoers.d" / "switchproxy",
    )


@pytest.fixture
def privileges(test_settings, fake_os, clock):
    return PrivilegeContext.create(test_settings, executor=fake_os, clock=clock, username="alice")


@pytest.fixture
def broker(privileges):
    return privileges.broker


@pytest.fixture
def runner(privileges):
    return privileges.runner
