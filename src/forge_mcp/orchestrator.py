"""Install, verify and greet: the end-to-end MCP setup flow for one project."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from forge_mcp.callbacks import StatusCallbacks, VerificationCallbacks, maybe_await
from forge_mcp.chat_opener import WELCOME_PROMPT, ChatOpenResult, try_open_chat, uses_terminal_chat
from forge_mcp.clients import ClientProfile, list_clients
from forge_mcp.credentials import CredentialProvider, Project, build_api_base_url
from forge_mcp.host import Host, QuickPickItem, Terminal
from forge_mcp.installer import InstallOutcome, run_installer
from forge_mcp.telemetry import generate_request_id, set_span_attributes, trace_span
from forge_mcp.terminal_output import build_terminal_output
from forge_mcp.verifier import VerificationOutcome, verify_installation

logger = logging.getLogger("forge_mcp.orchestrator")

RunInstallerFn = Callable[..., Awaitable[InstallOutcome]]
VerifyFn = Callable[[str, str, VerificationCallbacks], Awaitable[VerificationOutcome]]
OpenChatFn = Callable[..., Awaitable[ChatOpenResult]]


class InstallState(str, Enum):
    IDLE = "idle"
    CLIENT_SELECTED = "client_selected"
    WORKSPACE_RESOLVED = "workspace_resolved"
    CREDENTIALS_ACQUIRED = "credentials_acquired"
    INSTALLING = "installing"
    INSTALL_SUCCEEDED = "install_succeeded"
    INSTALL_FAILED = "install_failed"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    VERIFICATION_FAILED = "verification_failed"
    CHAT_OPENED = "chat_opened"


@dataclass(frozen=True)
class InstallationReport:
    """What happened during one ``InstallationOrchestrator.run`` call."""

    states: tuple[InstallState, ...]
    client_id: str | None = None
    install: InstallOutcome | None = None
    verification: VerificationOutcome | None = None
    chat: ChatOpenResult | None = None
    error: str | None = None

    @property
    def installed(self) -> bool:
        return self.install is not None and self.install.success


@dataclass
class InstallationRun:
    """Working state of one user-initiated install."""

    project: Project
    run_id: str
    client: ClientProfile | None = None
    workspace_path: str | None = None
    api_key: str | None = None
    api_base_url: str | None = None
    terminal: Terminal | None = None
    install: InstallOutcome | None = None
    verification: VerificationOutcome | None = None
    chat: ChatOpenResult | None = None
    states: list[InstallState] = field(default_factory=lambda: [InstallState.IDLE])

    def enter(self, state: InstallState) -> None:
        logger.debug("[%s] %s -> %s", self.run_id[:8], self.states[-1].value, state.value)
        self.states.append(state)

    def report(self, error: str | None = None) -> InstallationReport:
        return InstallationReport(
            states=tuple(self.states),
            client_id=self.client.id if self.client else None,
            install=self.install,
            verification=self.verification,
            chat=self.chat,
            error=error,
        )


class InstallationOrchestrator:
    """Drive client pick, installer, verification and chat opening.

    Holds no state between runs; everything a run learns is returned in its
    InstallationReport and reported through ``callbacks``.
    """

    def __init__(
        self,
        host: Host,
        credentials: CredentialProvider,
        callbacks: StatusCallbacks | None = None,
        *,
        installer: RunInstallerFn = run_installer,
        verifier: VerifyFn = verify_installation,
        chat_opener: OpenChatFn = try_open_chat,
        prompt: str = WELCOME_PROMPT,
    ) -> None:
        self.host = host
        self.credentials = credentials
        self.callbacks = callbacks or StatusCallbacks()
        self._installer = installer
        self._verifier = verifier
        self._chat_opener = chat_opener
        self._prompt = prompt

    async def run(
        self,
        project: Project,
        cancel_event: asyncio.Event | None = None,
    ) -> InstallationReport:
        """Run the whole flow for ``project``. Never raises."""
        run = InstallationRun(project=project, run_id=generate_request_id())
        with trace_span(
            "install/orchestrate",
            attributes={"forge_mcp.project": project.id, "forge_mcp.run_id": run.run_id},
        ) as span:
            try:
                report = await self._run(run, cancel_event)
            except Exception as exc:
                logger.exception("MCP installation failed for project %s", project.id)
                await self._report_unexpected_error(project.id, exc)
                report = run.report(error=str(exc))
            set_span_attributes(
                span,
                {
                    "forge_mcp.client": report.client_id or "",
                    "forge_mcp.final_state": report.states[-1].value,
                },
            )
            return report

    async def _report_unexpected_error(self, project_id: str, exc: Exception) -> None:
        try:
            await maybe_await(self.callbacks.on_failed, project_id, str(exc))
        except Exception:
            logger.exception("on_failed callback raised for project %s", project_id)
        try:
            await self.host.window.show_error(f"Failed to install MCP: {exc}")
        except Exception:
            logger.exception("Could not show installation failure for project %s", project_id)

    async def _run(
        self,
        run: InstallationRun,
        cancel_event: asyncio.Event | None,
    ) -> InstallationReport:
        project = run.project
        client = await self._pick_client()
        if client is None:
            logger.debug("Client pick cancelled")
            return run.report()
        run.client = client
        run.enter(InstallState.CLIENT_SELECTED)
        await maybe_await(self.callbacks.on_installation_starting)

        if client.project_local:
            folder = await self._resolve_workspace()
            if folder is None:
                logger.debug("Workspace pick cancelled")
                run.enter(InstallState.IDLE)
                return run.report()
            run.workspace_path = folder
        run.enter(InstallState.WORKSPACE_RESOLVED)

        api_key = await self.credentials.get_project_api_key(project.id)
        if not api_key:
            message = "Could not retrieve API key for this project"
            await self.host.window.show_error(message)
            run.enter(InstallState.IDLE)
            return run.report(error=message)
        api_base_url = build_api_base_url(project)
        run.api_key = api_key
        run.api_base_url = api_base_url
        run.enter(InstallState.CREDENTIALS_ACQUIRED)

        run.enter(InstallState.INSTALLING)
        logger.info("Installing InsForge MCP for %s", client.label)
        run.install = await self._installer(
            client.id,
            api_key,
            api_base_url,
            run.workspace_path,
            cancel_event,
        )

        terminal = self.host.window.create_terminal(
            f"InsForge MCP - {client.label}",
            message=build_terminal_output(run.install, client.label, client.id),
        )
        terminal.show()
        run.terminal = terminal

        if not run.install.success:
            run.enter(InstallState.INSTALL_FAILED)
            return await self._on_install_failed(run, run.install, terminal, cancel_event)

        run.enter(InstallState.INSTALL_SUCCEEDED)
        await self._verify_and_greet(run, client, api_key, api_base_url)
        return run.report()

    async def _pick_client(self) -> ClientProfile | None:
        pick = await self.host.window.show_quick_pick(
            [
                QuickPickItem(label=client.label, description=client.description, value=client)
                for client in list_clients()
            ],
            placeholder="Select which AI client to install MCP for",
            title="Install InsForge MCP",
        )
        return pick.value if pick else None

    async def _resolve_workspace(self) -> str | None:
        folders = self.host.workspace_folders()
        if not folders:
            return os.path.expanduser("~")
        if len(folders) == 1:
            return folders[0].path
        pick = await self.host.window.show_quick_pick(
            [QuickPickItem(label=f.name, description=f.path, value=f.path) for f in folders],
            placeholder="Select workspace folder to install MCP config",
            title="Select Workspace",
        )
        return pick.value if pick else None

    async def _on_install_failed(
        self,
        run: InstallationRun,
        outcome: InstallOutcome,
        terminal: Terminal,
        cancel_event: asyncio.Event | None,
    ) -> InstallationReport:
        error = outcome.failure_message
        logger.warning("MCP installation failed: %s", error)
        await maybe_await(self.callbacks.on_failed, run.project.id, error)
        choice = await self.host.window.show_error(
            f"MCP installation failed: {error}",
            "Retry",
            "View Terminal",
        )
        if choice == "Retry":
            # The retried install must not inherit an earlier cancellation.
            if cancel_event is not None:
                cancel_event.clear()
            return await self.run(run.project, cancel_event)
        if choice == "View Terminal":
            terminal.show()
        return run.report(error=error)

    async def _verify_and_greet(
        self,
        run: InstallationRun,
        client: ClientProfile,
        api_key: str,
        api_base_url: str,
    ) -> None:
        project_id = run.project.id
        run.enter(InstallState.VERIFYING)
        await maybe_await(self.callbacks.on_verifying, project_id)
        run.verification = await self._verifier(api_key, api_base_url, VerificationCallbacks())

        if not run.verification.ok:
            run.enter(InstallState.VERIFICATION_FAILED)
            error = run.verification.error or "MCP server verification failed"
            await maybe_await(self.callbacks.on_failed, project_id, error)
            choice = await self.host.window.show_warning(
                f"MCP installed but server verification failed: {error}. "
                "The configuration may still work.",
                "Retry Verification",
            )
            if choice == "Retry Verification":
                run.verification = await self.retry_verification(
                    project_id, api_key, api_base_url
                )
            return

        tools = list(run.verification.tools)
        run.enter(InstallState.VERIFIED)
        await maybe_await(self.callbacks.on_verified, project_id, tools)

        # Terminal agents reuse the installer terminal.
        terminal = run.terminal if uses_terminal_chat(client.id) else None
        run.chat = await self._chat_opener(self.host, client.id, self._prompt, terminal)
        run.enter(InstallState.CHAT_OPENED)
        if not run.chat.success:
            await maybe_await(
                self.callbacks.on_failed,
                project_id,
                run.chat.error or "Could not open AI chat",
            )

        choice = await self.host.window.show_information(
            f"MCP server verified! {len(tools)} tools available.",
            "View Tools",
        )
        if choice == "View Tools":
            await self.host.window.show_quick_pick(
                [QuickPickItem(label=tool, value=tool) for tool in tools],
                placeholder="Available MCP Tools",
            )

    async def retry_verification(
        self,
        project_id: str,
        api_key: str,
        api_base_url: str,
    ) -> VerificationOutcome:
        """Manually re-run verification for an installed project."""
        await maybe_await(self.callbacks.on_verifying, project_id)
        outcome = await self._verifier(api_key, api_base_url, VerificationCallbacks())
        if outcome.ok:
            tools = list(outcome.tools)
            await maybe_await(self.callbacks.on_verified, project_id, tools)
            await self.host.window.show_information(
                f"MCP server verified! {len(tools)} tools available."
            )
        else:
            error = outcome.error or "MCP server verification failed"
            await maybe_await(self.callbacks.on_failed, project_id, error)
            await self.host.window.show_error(f"MCP verification failed: {error}")
        return outcome
