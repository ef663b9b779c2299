"""Host binding for running the installer from a plain terminal session."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import click
import pyperclip

from forge_mcp.host import CommandNotFoundError, QuickPickItem, WorkspaceFolder

logger = logging.getLogger("forge_mcp.console_host")

CommandHandler = Callable[..., Awaitable[Any]]


def _interactive() -> bool:
    return sys.stdin.isatty()


class ConsoleCommands:
    """In-process command table. Editors' chat commands are not available here."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._context: dict[str, Any] = {}

    def register(self, name: str, handler: CommandHandler) -> None:
        self._handlers[name] = handler

    def set_context(self, key: str, value: Any) -> None:
        self._context[key] = value

    async def execute(self, name: str, *args: Any) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            raise CommandNotFoundError(f"command '{name}' not found")
        return await handler(*args)

    async def get_context(self, key: str) -> Any:
        return self._context.get(key)


class PyperclipClipboard:
    async def write_text(self, text: str) -> None:
        # Raises PyperclipException when no clipboard mechanism exists (headless/SSH).
        pyperclip.copy(text)


class ConsoleTerminal:
    """Prints what an editor terminal would show.

    Commands sent to it are echoed for the user to run; the console host
    does not own an interactive shell to type into.
    """

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self._message = message
        self._shown = False
        self.sent: list[str] = []

    def show(self) -> None:
        if self._shown:
            return
        self._shown = True
        click.secho(f"\n[{self.name}]", bold=True)
        if self._message:
            click.echo(self._message)

    def send_text(self, text: str) -> None:
        self.sent.append(text)
        click.echo("Run this command to start the chat:")
        click.secho(f"  $ {text}", fg="cyan")


class ConsoleWindow:
    def create_terminal(self, name: str, message: str | None = None) -> ConsoleTerminal:
        return ConsoleTerminal(name, message)

    async def _notify(self, message: str, actions: Sequence[str], color: str | None) -> str | None:
        click.secho(message, fg=color, err=color == "red")
        if not actions or not _interactive():
            return None
        for index, action in enumerate(actions, start=1):
            click.echo(f"  {index}) {action}")
        choice = click.prompt(
            "Choose an action (0 to dismiss)",
            type=click.IntRange(0, len(actions)),
            default=0,
        )
        return actions[choice - 1] if choice else None

    async def show_information(self, message: str, *actions: str) -> str | None:
        return await self._notify(message, actions, None)

    async def show_warning(self, message: str, *actions: str) -> str | None:
        return await self._notify(message, actions, "yellow")

    async def show_error(self, message: str, *actions: str) -> str | None:
        return await self._notify(message, actions, "red")

    async def show_quick_pick(
        self,
        items: Sequence[QuickPickItem],
        placeholder: str = "",
        title: str = "",
    ) -> QuickPickItem | None:
        if title:
            click.secho(title, bold=True)
        for index, item in enumerate(items, start=1):
            suffix = f"  {item.description}" if item.description else ""
            click.echo(f"  {index:>2}) {item.label}{suffix}")
        if not _interactive():
            return None
        choice = click.prompt(
            f"{placeholder or 'Select an item'} (0 to cancel)",
            type=click.IntRange(0, len(items)),
            default=0,
        )
        return items[choice - 1] if choice else None


class ConsoleHost:
    """Console implementation of the host capabilities."""

    def __init__(self, workspace_folders: Sequence[str] = ()) -> None:
        self.commands = ConsoleCommands()
        self.clipboard = PyperclipClipboard()
        self.window = ConsoleWindow()
        self._folders = [
            WorkspaceFolder(name=os.path.basename(os.path.normpath(path)) or path, path=path)
            for path in workspace_folders
        ]

    def workspace_folders(self) -> list[WorkspaceFolder]:
        return list(self._folders)

