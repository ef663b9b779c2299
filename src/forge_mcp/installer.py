"""Supervise the external MCP installer subprocess."""

from __future__ import annotations

import asyncio
import atexit
import codecs
import logging
import os
import shlex
import signal
import time
import weakref
from asyncio.subprocess import DEVNULL, PIPE, Process
from dataclasses import dataclass

from forge_mcp.telemetry import set_span_attributes, trace_span

logger = logging.getLogger("forge_mcp.installer")

INSTALLER_COMMAND = shlex.split(
    os.environ.get("FORGE_MCP_INSTALLER", "").strip() or "npx @insforge/install"
)
CANCELLED_MESSAGE = "Installation cancelled"
_TERMINATE_GRACE_SECONDS = 5
_READ_CHUNK = 4096

_active_processes: set[weakref.ref[Process]] = set()


@dataclass(frozen=True)
class InstallOutcome:
    """Installer process result.

    ``exit_code`` is None when the process could not be started or was
    killed on cancellation.
    """

    success: bool
    exit_code: int | None
    stdout: str
    stderr: str
    error: str | None = None

    @property
    def failure_message(self) -> str:
        return self.error or f"Installer exited with code {self.exit_code}"


def build_installer_command(client_id: str, api_key: str, api_base_url: str) -> list[str]:
    """Build installer argv for one client."""
    if client_id.startswith("-"):
        raise ValueError(f"client id cannot start with '-': {client_id}")
    return [
        *INSTALLER_COMMAND,
        "--client",
        client_id,
        "--env",
        f"API_KEY={api_key}",
        "--env",
        f"API_BASE_URL={api_base_url}",
        "-y",
    ]


def manual_install_hint(client_id: str) -> str:
    return shlex.join([*INSTALLER_COMMAND, "--client", client_id])


async def _terminate_process(proc: Process) -> None:
    try:
        os.killpg(proc.pid, signal.SIGTERM)
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.wait(), timeout=_TERMINATE_GRACE_SECONDS)
    except asyncio.TimeoutError:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            return
        await proc.wait()


def _cleanup_processes() -> None:
    for ref in list(_active_processes):
        proc = ref()
        if proc and proc.returncode is None:
            logger.debug("Cleaning up orphan installer %s", proc.pid)
            try:
                os.killpg(proc.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
    _active_processes.clear()


atexit.register(_cleanup_processes)


def _track_process(proc: Process) -> None:
    _active_processes.add(weakref.ref(proc, lambda ref: _active_processes.discard(ref)))


def _untrack_process(proc: Process) -> None:
    for ref in list(_active_processes):
        if ref() is proc:
            _active_processes.discard(ref)
            break


async def _pump(stream: asyncio.StreamReader | None, sink: list[str]) -> None:
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        sink.append(decoder.decode(chunk))
    sink.append(decoder.decode(b"", final=True))


async def _spawn(cmd: list[str], cwd: str | None) -> Process:
    return await asyncio.create_subprocess_exec(
        *cmd,
        stdin=DEVNULL,
        stdout=PIPE,
        stderr=PIPE,
        cwd=cwd,
        env=dict(os.environ),
        start_new_session=True,
    )


async def run_installer(
    client_id: str,
    api_key: str,
    api_base_url: str,
    workspace_path: str | None = None,
    cancel_event: asyncio.Event | None = None,
) -> InstallOutcome:
    """Run the installer for ``client_id`` and wait for it to exit.

    Args:
        client_id: Target client, passed through as ``--client``.
        api_key: Project API key, passed as ``--env API_KEY=...``.
        api_base_url: Project base URL, passed as ``--env API_BASE_URL=...``.
        workspace_path: Working directory for project-local clients.
        cancel_event: When set before the installer exits, the installer is
            killed and the outcome reports cancellation.

    Returns:
        Exactly one InstallOutcome. Invalid arguments and spawn errors
        never raise.
    """
    start = time.monotonic()
    with trace_span(
        "install/run",
        attributes={"forge_mcp.client": client_id},
    ) as span:
        try:
            cmd = build_installer_command(client_id, api_key, api_base_url)
        except ValueError as exc:
            logger.error("Refusing to run installer: %s", exc)
            return InstallOutcome(
                success=False, exit_code=None, stdout="", stderr="", error=str(exc)
            )
        logger.debug("Spawning installer for %s in %s", client_id, workspace_path or os.getcwd())
        try:
            proc = await _spawn(cmd, workspace_path)
        except FileNotFoundError:
            logger.error("Installer %s not found or not executable", cmd[0])
            return InstallOutcome(
                success=False,
                exit_code=None,
                stdout="",
                stderr="",
                error=f"{cmd[0]} not found or not executable",
            )
        except PermissionError as exc:
            logger.error("Permission denied starting installer: %s", exc)
            return InstallOutcome(
                success=False,
                exit_code=None,
                stdout="",
                stderr="",
                error=f"Permission denied: {exc}",
            )
        except OSError as exc:
            logger.error("Failed to start installer: %s", exc)
            return InstallOutcome(
                success=False,
                exit_code=None,
                stdout="",
                stderr="",
                error=f"Failed to start process: {exc}",
            )

        _track_process(proc)
        stdout: list[str] = []
        stderr: list[str] = []

        async def _wait_for_exit() -> int:
            await asyncio.gather(_pump(proc.stdout, stdout), _pump(proc.stderr, stderr))
            return await proc.wait()

        exit_task = asyncio.ensure_future(_wait_for_exit())
        cancel_task = asyncio.ensure_future(cancel_event.wait()) if cancel_event else None
        try:
            waiting = {exit_task} if cancel_task is None else {exit_task, cancel_task}
            done, _pending = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
            if exit_task not in done:
                logger.info("Installer for %s cancelled", client_id)
                await _terminate_process(proc)
                set_span_attributes(span, {"forge_mcp.status": "cancelled"})
                return InstallOutcome(
                    success=False,
                    exit_code=None,
                    stdout="".join(stdout),
                    stderr="".join(stderr),
                    error=CANCELLED_MESSAGE,
                )
            exit_code = exit_task.result()
        finally:
            if cancel_task is not None:
                cancel_task.cancel()
            if proc.returncode is None:
                await _terminate_process(proc)
            if not exit_task.done():
                exit_task.cancel()
            _untrack_process(proc)

        duration_ms = int((time.monotonic() - start) * 1000)
        status = "success" if exit_code == 0 else "error"
        logger.info(
            "Installer for %s exited with code %s after %dms",
            client_id,
            exit_code,
            duration_ms,
        )
        set_span_attributes(
            span,
            {
                "forge_mcp.status": status,
                "forge_mcp.exit_code": exit_code,
                "forge_mcp.duration_ms": duration_ms,
            },
        )
        return InstallOutcome(
            success=exit_code == 0,
            exit_code=exit_code,
            stdout="".join(stdout),
            stderr="".join(stderr),
        )
