from unittest.mock import AsyncMock, MagicMock

import pytest

from switchproxy.errors import ExecFailed
from switchproxy.models.privilege import ErrorKind
from switchproxy.models.proxy import ProxyInput, ProxyType
from switchproxy.services.proxy_manager import ProxyManager
from switchproxy.services.proxy_storage import ProxyStorage
from switchproxy.services.system_proxy import SystemProxy


@pytest.fixture
def manager(tmp_path, runner, fake_os):
    storage = ProxyStorage(tmp_path / "proxy-config.json")
    return ProxyManager(storage, SystemProxy(runner, executor=fake_os))


@pytest.fixture
def states(manager):
    seen = []

    async def listener(state):
        seen.append(state)

    manager.add_listener(listener)
    return seen


async def _add(manager, name="office", proxy_type=ProxyType.HTTP):
    return await manager.add_proxy(
        ProxyInput(name=name, type=proxy_type, host="proxy.local", port=8080)
    )


@pytest.mark.asyncio
async def test_enable_without_selection(manager, fake_os):
    result = await manager.enable()
    assert result.success is False
    assert "Select a proxy" in result.error
    assert fake_os.calls == []


@pytest.mark.asyncio
async def test_enable_and_disable(manager, fake_os, states):
    entry = await _add(manager)
    manager.storage.set_current_proxy(entry.id)

    result = await manager.enable()
    assert result.success is True
    assert manager.get_state().proxy_enabled is True
    assert fake_os.prompts == 1

    result = await manager.disable()
    assert result.success is True
    assert manager.get_state().proxy_enabled is False
    # second call landed inside the recent-elevation window
    assert fake_os.prompts == 1
    assert states[-1].proxy_enabled is False


@pytest.mark.asyncio
async def test_cancelled_enable_reports_kind(manager, fake_os):
    entry = await _add(manager)
    manager.storage.set_current_proxy(entry.id)
    fake_os.prompt_responses = ["cancel"]

    result = await manager.enable()

    assert result.success is False
    assert result.error_kind is ErrorKind.USER_CANCELLED
    assert manager.get_state().proxy_enabled is False


@pytest.mark.asyncio
async def test_needs_admin_rights_reports_kind(manager, fake_os):
    entry = await _add(manager)
    manager.storage.set_current_proxy(entry.id)
    fake_os.auth_errors = 2

    result = await manager.enable()

    assert result.error_kind is ErrorKind.NEEDS_ADMIN_RIGHTS


@pytest.mark.asyncio
async def test_switch_while_enabled_reapplies(manager, fake_os):
    fake_os.grant = True
    first = await _add(manager, "first")
    second = await _add(manager, "second", ProxyType.SOCKS5)
    manager.storage.set_current_proxy(first.id)
    await manager.enable()
    fake_os.sudo_commands.clear()

    result = await manager.switch(second.id)

    assert result.success is True
    state = manager.get_state()
    assert state.current_proxy_id == second.id
    assert state.proxy_enabled is True
    flags = [c[1] for c in fake_os.sudo_commands]
    assert "-setwebproxystate" in flags  # old http proxy switched off
    assert "-setsocksfirewallproxy" in flags


@pytest.mark.asyncio
async def test_switch_while_disabled_only_selects(manager, fake_os):
    entry = await _add(manager)
    result = await manager.switch(entry.id)
    assert result.success is True
    assert manager.get_state().current_proxy_id == entry.id
    assert fake_os.calls == []


@pytest.mark.asyncio
async def test_switch_unknown(manager):
    result = await manager.switch("missing")
    assert result.success is False
    assert "not found" in result.error


@pytest.mark.asyncio
async def test_update_current_enabled_proxy_reapplies(manager, fake_os):
    fake_os.grant = True
    entry = await _add(manager)
    manager.storage.set_current_proxy(entry.id)
    await manager.enable()
    fake_os.sudo_commands.clear()

    result = await manager.update_proxy(
        entry.id, ProxyInput(name="office", type=ProxyType.HTTP, host="new.local", port=3128)
    )

    assert result.success is True
    assert any("new.local" in c for c in fake_os.sudo_commands)


@pytest.mark.asyncio
async def test_delete_enabled_proxy_disables_first(manager, fake_os):
    fake_os.grant = True
    entry = await _add(manager)
    manager.storage.set_current_proxy(entry.id)
    await manager.enable()
    fake_os.sudo_commands.clear()

    result = await manager.delete_proxy(entry.id)

    assert result.success is True
    assert all(c[-1] == "off" for c in fake_os.sudo_commands)
    assert manager.get_state().current_proxy_id is None


@pytest.mark.asyncio
async def test_change_interfaces_while_enabled(manager, fake_os):
    fake_os.grant = True
    entry = await _add(manager)
    manager.storage.set_current_proxy(entry.id)
    manager.storage.set_selected_network_services(["Wi-Fi"])
    await manager.enable()
    fake_os.sudo_commands.clear()

    result = await manager.set_selected_interfaces(["USB 10/100/1000 LAN"])

    assert result.success is True
    off = {c[2] for c in fake_os.sudo_commands if c[-1] == "off"}
    on = {c[2] for c in fake_os.sudo_commands if c[-1] == "on"}
    assert off == {"Wi-Fi"}
    assert on == {"USB 10/100/1000 LAN"}
    assert manager.storage.get_selected_network_services() == ["USB 10/100/1000 LAN"]


@pytest.mark.asyncio
async def test_change_interfaces_while_disabled(manager, fake_os):
    result = await manager.set_selected_interfaces(["Wi-Fi"])
    assert result.success is True
    assert fake_os.calls == []


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_operation(manager):
    async def broken(state):
        raise RuntimeError("socket closed")

    manager.add_listener(broken)
    entry = await _add(manager)
    result = await manager.switch(entry.id)
    assert result.success is True


@pytest.mark.asyncio
async def test_exec_failure_keeps_state_disabled(tmp_path):
    system_proxy = MagicMock()
    system_proxy.set_and_enable_proxy = AsyncMock(side_effect=ExecFailed("** Error: no such service"))
    manager = ProxyManager(ProxyStorage(tmp_path / "proxy-config.json"), system_proxy)
    listener = AsyncMock()
    manager.add_listener(listener)
    entry = await _add(manager)
    manager.storage.set_current_proxy(entry.id)

    result = await manager.enable()

    assert result.success is False
    assert result.error_kind is ErrorKind.EXEC_FAILED
    assert "no such service" in result.error
    assert manager.get_state().proxy_enabled is False
    assert listener.await_count == 2
