import asyncio
import sys
from typing import Any

import pytest

from forge_mcp import installer as installer_module
from forge_mcp.installer import (
    CANCELLED_MESSAGE,
    InstallOutcome,
    build_installer_command,
    manual_install_hint,
    run_installer,
)


def _python_installer(monkeypatch: pytest.MonkeyPatch, source: str) -> None:
    """Use a tiny Python script as the installer; extra argv is ignored."""
    monkeypatch.setattr(installer_module, "INSTALLER_COMMAND", [sys.executable, "-c", source])


def test_build_installer_command(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(installer_module, "INSTALLER_COMMAND", ["npx", "@insforge/install"])

    cmd = build_installer_command("cursor", "ik_123", "https://app.us-east.insforge.app")

    assert cmd == [
        "npx",
        "@insforge/install",
        "--client",
        "cursor",
        "--env",
        "API_KEY=ik_123",
        "--env",
        "API_BASE_URL=https://app.us-east.insforge.app",
        "-y",
    ]


def test_build_installer_command_rejects_flag_client() -> None:
    with pytest.raises(ValueError, match="cannot start with '-'"):
        build_installer_command("--evil", "k", "u")


def test_manual_install_hint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(installer_module, "INSTALLER_COMMAND", ["npx", "@insforge/install"])
    assert manual_install_hint("kiro") == "npx @insforge/install --client kiro"


def test_failure_message_prefers_error() -> None:
    assert InstallOutcome(False, 3, "", "").failure_message == "Installer exited with code 3"
    assert InstallOutcome(False, None, "", "", error="boom").failure_message == "boom"


@pytest.mark.asyncio
async def test_exit_zero_is_success(monkeypatch: pytest.MonkeyPatch) -> None:
    _python_installer(
        monkeypatch,
        "import sys; print('configured', sys.argv[1:3]); sys.stderr.write('warn\\n')",
    )

    outcome = await run_installer("cursor", "key", "https://x.y.insforge.app")

    assert outcome.success is True
    assert outcome.exit_code == 0
    assert outcome.error is None
    assert "configured ['--client', 'cursor']" in outcome.stdout
    assert outcome.stderr == "warn\n"


@pytest.mark.asyncio
async def test_nonzero_exit_is_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    _python_installer(monkeypatch, "import sys; sys.stderr.write('bad client'); sys.exit(2)")

    outcome = await run_installer("cursor", "key", "url")

    assert outcome.success is False
    assert outcome.exit_code == 2
    assert outcome.stderr == "bad client"
    assert outcome.error is None


@pytest.mark.asyncio
async def test_installer_receives_env_arguments(monkeypatch: pytest.MonkeyPatch) -> None:
    _python_installer(monkeypatch, "import sys; print('|'.join(sys.argv[1:]))")

    outcome = await run_installer("kiro", "secret", "https://a.b.insforge.app")

    assert outcome.stdout.strip() == (
        "--client|kiro|--env|API_KEY=secret|--env|API_BASE_URL=https://a.b.insforge.app|-y"
    )


@pytest.mark.asyncio
async def test_runs_in_workspace(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    _python_installer(monkeypatch, "import os; print(os.getcwd())")

    outcome = await run_installer("copilot", "k", "u", workspace_path=str(tmp_path))

    assert outcome.stdout.strip() == str(tmp_path.resolve())


@pytest.mark.asyncio
async def test_missing_binary_is_spawn_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(installer_module, "INSTALLER_COMMAND", ["/nonexistent/forge-installer"])

    outcome = await run_installer("cursor", "k", "u")

    assert outcome.success is False
    assert outcome.exit_code is None
    assert outcome.error == "/nonexistent/forge-installer not found or not executable"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exception, expected",
    [
        (PermissionError("no execute"), "Permission denied"),
        (OSError("boom"), "Failed to start process"),
    ],
)
async def test_other_spawn_errors(mocker: Any, exception: Exception, expected: str) -> None:
    mocker.patch("forge_mcp.installer._spawn", side_effect=exception)

    outcome = await run_installer("cursor", "k", "u")

    assert outcome.success is False
    assert outcome.exit_code is None
    assert outcome.error is not None and expected in outcome.error


@pytest.mark.asyncio
async def test_cancellation_kills_installer(monkeypatch: pytest.MonkeyPatch) -> None:
    _python_installer(
        monkeypatch,
        "import sys, time; print('starting', flush=True); time.sleep(30); sys.exit(0)",
    )
    cancel_event = asyncio.Event()
    asyncio.get_running_loop().call_later(0.01, cancel_event.set)

    outcome = await asyncio.wait_for(
        run_installer("cursor", "k", "u", cancel_event=cancel_event), timeout=10
    )

    assert outcome.success is False
    assert outcome.exit_code is None
    assert outcome.error == CANCELLED_MESSAGE
    assert installer_module._active_processes == set()


@pytest.mark.asyncio
async def test_unset_cancel_event_does_not_interfere(monkeypatch: pytest.MonkeyPatch) -> None:
    _python_installer(monkeypatch, "print('done')")

    outcome = await run_installer("cursor", "k", "u", cancel_event=asyncio.Event())

    assert outcome.success is True
    assert outcome.stdout == "done\n"


@pytest.mark.asyncio
async def test_task_cancellation_terminates_installer(monkeypatch: pytest.MonkeyPatch) -> None:
    _python_installer(monkeypatch, "import time; time.sleep(30)")
    terminate = installer_module._terminate_process
    terminated: list[int] = []

    async def tracking_terminate(proc: Any) -> None:
        terminated.append(proc.pid)
        await terminate(proc)

    monkeypatch.setattr(installer_module, "_terminate_process", tracking_terminate)

    task = asyncio.ensure_future(run_installer("cursor", "k", "u"))
    await asyncio.sleep(0.2)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(terminated) == 1
    assert installer_module._active_processes == set()


@pytest.mark.asyncio
async def test_flag_like_client_id_is_reported_not_raised(mocker: Any) -> None:
    spawn = mocker.patch("forge_mcp.installer._spawn")

    outcome = await run_installer("--evil", "k", "u")

    assert outcome.success is False
    assert outcome.exit_code is None
    assert outcome.error == "client id cannot start with '-': --evil"
    spawn.assert_not_called()
