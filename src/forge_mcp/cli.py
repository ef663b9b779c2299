"""Command line entry point."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

import click

from forge_mcp.callbacks import StatusCallbacks, VerificationCallbacks
from forge_mcp.chat_opener import get_chat_command
from forge_mcp.clients import (
    ClipboardOnly,
    ClipboardPaste,
    DirectInvoke,
    InteractionStrategy,
    TerminalSend,
    list_clients,
)
from forge_mcp.console_host import ConsoleHost
from forge_mcp.credentials import Project, StaticCredentialProvider
from forge_mcp.orchestrator import InstallationOrchestrator, InstallationReport
from forge_mcp.verifier import retry_verification

logger = logging.getLogger("forge_mcp")


def configure_logging(level_name: str | None = None) -> None:
    level = (level_name or os.environ.get("FORGE_MCP_LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def describe_strategy(strategy: InteractionStrategy) -> str:
    if isinstance(strategy, DirectInvoke):
        return "direct command"
    if isinstance(strategy, ClipboardPaste):
        return f"clipboard + paste ({strategy.paste_delay_ms}ms)"
    if isinstance(strategy, ClipboardOnly):
        return "clipboard only"
    if isinstance(strategy, TerminalSend):
        return f"terminal ({strategy.terminal_command})"
    return "none"


def _status_callbacks() -> StatusCallbacks:
    return StatusCallbacks(
        on_installation_starting=lambda: logger.debug("Installation starting"),
        on_verifying=lambda project_id: click.echo(f"Verifying MCP server for {project_id}..."),
        on_verified=lambda project_id, tools: logger.info(
            "Project %s verified with %d tools", project_id, len(tools)
        ),
        on_failed=lambda project_id, error: logger.warning(
            "Project %s failed: %s", project_id, error
        ),
    )


async def _install(orchestrator: InstallationOrchestrator, project: Project) -> InstallationReport:
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT cancellation not supported on this platform")
    try:
        return await orchestrator.run(project, cancel_event)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


@click.group()
@click.option(
    "--log-level",
    envvar="FORGE_MCP_LOG_LEVEL",
    default="WARNING",
    show_default=True,
    help="Python logging level.",
)
def main(log_level: str) -> None:
    """Install and verify the InsForge MCP server for AI coding assistants."""
    configure_logging(log_level)


@main.command("clients")
def clients_command() -> None:
    """List supported clients."""
    for client in list_clients():
        scope = "project" if client.project_local else "user"
        chat = describe_strategy(client.strategy)
        command = get_chat_command(client.id)
        line = f"{client.id:<12} {client.label:<20} {scope:<8} {chat}"
        if command:
            line += f" [{command}]"
        click.echo(line)


@main.command("install")
@click.option("--project-id", envvar="FORGE_MCP_PROJECT_ID", required=True)
@click.option("--appkey", envvar="FORGE_MCP_APPKEY", required=True)
@click.option("--region", envvar="FORGE_MCP_REGION", required=True)
@click.option("--api-key", envvar="FORGE_MCP_API_KEY", help="Project API key.")
@click.option(
    "--workspace",
    "workspaces",
    multiple=True,
    type=click.Path(exists=True, file_okay=False),
    help="Workspace folder for project-local clients (repeatable).",
)
def install_command(
    project_id: str,
    appkey: str,
    region: str,
    api_key: str | None,
    workspaces: tuple[str, ...],
) -> None:
    """Pick a client, run the installer, verify and open chat."""
    host = ConsoleHost(workspaces or (os.getcwd(),))
    orchestrator = InstallationOrchestrator(
        host,
        StaticCredentialProvider(api_key),
        _status_callbacks(),
    )
    project = Project(id=project_id, appkey=appkey, region=region)
    report = asyncio.run(_install(orchestrator, project))
    logger.debug("Run finished in state %s", report.states[-1].value)
    sys.exit(0 if report.installed else 1)


@main.command("verify")
@click.option("--api-key", envvar="FORGE_MCP_API_KEY", required=True)
@click.option("--api-base-url", required=True, help="e.g. https://<appkey>.<region>.insforge.app")
def verify_command(api_key: str, api_base_url: str) -> None:
    """Re-run MCP server verification."""
    callbacks = VerificationCallbacks(
        on_verifying=lambda: click.echo("Verifying MCP server..."),
        on_verified=lambda tools: click.echo(
            f"MCP server verified! {len(tools)} tools available.\n" + "\n".join(tools)
        ),
        on_failed=lambda error: click.secho(f"MCP verification failed: {error}", fg="red", err=True),
    )
    outcome = asyncio.run(retry_verification(api_key, api_base_url, callbacks))
    sys.exit(0 if outcome.ok else 1)


if __name__ == "__main__":
    main()
