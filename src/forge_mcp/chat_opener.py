"""Open a client's AI chat and hand it the welcome prompt."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from forge_mcp.clients import (
    ClipboardOnly,
    ClipboardPaste,
    DirectInvoke,
    NoChat,
    TerminalSend,
    find_client,
)
from forge_mcp.host import Host, Terminal

logger = logging.getLogger("forge_mcp.chat_opener")

WELCOME_PROMPT = (
    "I'm using InsForge as my backend platform, call InsForge MCP's fetch-docs tool "
    "to learn about InsForge instructions."
)
PASTE_COMMAND = "editor.action.clipboardPasteAction"
SURFACE_OPEN_PASTE_DELAY_MS = 50
OPEN_AND_PASTE_MESSAGE = "Prompt copied to clipboard. Please open the AI chat and paste it."
PASTE_MESSAGE = "Prompt copied to clipboard. Please paste it into the chat input."

SleepFn = Callable[[float], Awaitable[None]]


class ChatMethod(str, Enum):
    COMMAND = "command"
    CLIPBOARD = "clipboard"
    TERMINAL = "terminal"
    NONE = "none"


@dataclass(frozen=True)
class ChatOpenResult:
    """Outcome of delivering the prompt.

    ``degraded`` marks a success where automation failed after the clipboard
    write; the prompt is on the clipboard and the user was asked to paste it.
    ``error`` then carries the automation failure.
    """

    success: bool
    method: ChatMethod
    error: str | None = None
    degraded: bool = False


def build_terminal_command(terminal_command: str, prompt: str) -> str:
    """Quote ``prompt`` for the shell. Only double quotes are escaped."""
    escaped = prompt.replace('"', '\\"')
    return f'{terminal_command} "{escaped}"'


async def _direct_invoke(host: Host, strategy: DirectInvoke, prompt: str) -> ChatOpenResult:
    await host.commands.execute(strategy.command_name, {"query": prompt, "isPartialQuery": True})
    return ChatOpenResult(success=True, method=ChatMethod.COMMAND)


async def _surface_is_open(host: Host, key: str) -> bool:
    try:
        return bool(await host.commands.get_context(key))
    except Exception as exc:
        logger.debug("Could not read context key %s: %s", key, exc)
        return False


async def _clipboard_paste(
    host: Host,
    strategy: ClipboardPaste,
    prompt: str,
    sleep: SleepFn,
) -> ChatOpenResult:
    await host.clipboard.write_text(prompt)
    logger.debug("Copied prompt to clipboard")

    delay_ms = strategy.paste_delay_ms
    if strategy.skip_probe_key and await _surface_is_open(host, strategy.skip_probe_key):
        logger.debug("Chat already open (%s), skipping open command", strategy.skip_probe_key)
        delay_ms = SURFACE_OPEN_PASTE_DELAY_MS
    else:
        try:
            await host.commands.execute(strategy.command_name)
        except Exception as exc:
            logger.warning("Failed to open chat with %s: %s", strategy.command_name, exc)
            await host.window.show_information(OPEN_AND_PASTE_MESSAGE)
            return ChatOpenResult(
                success=True,
                method=ChatMethod.CLIPBOARD,
                error=str(exc),
                degraded=True,
            )

    await sleep(delay_ms / 1000)
    try:
        await host.commands.execute(PASTE_COMMAND)
    except Exception as exc:
        logger.debug("Paste failed: %s", exc)
        await host.window.show_information(PASTE_MESSAGE)
        return ChatOpenResult(
            success=True,
            method=ChatMethod.CLIPBOARD,
            error=str(exc),
            degraded=True,
        )
    logger.debug("Pasted prompt into chat")
    return ChatOpenResult(success=True, method=ChatMethod.CLIPBOARD)


async def _clipboard_only(host: Host, prompt: str) -> ChatOpenResult:
    await host.clipboard.write_text(prompt)
    await host.window.show_information(OPEN_AND_PASTE_MESSAGE)
    return ChatOpenResult(success=True, method=ChatMethod.CLIPBOARD)


def _terminal_send(
    host: Host,
    strategy: TerminalSend,
    prompt: str,
    terminal: Terminal | None,
) -> ChatOpenResult:
    command = build_terminal_command(strategy.terminal_command, prompt)
    if terminal is None:
        terminal = host.window.create_terminal(f"InsForge - {strategy.terminal_command}")
    terminal.show()
    terminal.send_text(command)
    logger.debug("Sent to terminal %s: %s", terminal.name, command)
    return ChatOpenResult(success=True, method=ChatMethod.TERMINAL)


async def try_open_chat(
    host: Host,
    client_id: str,
    prompt: str = WELCOME_PROMPT,
    terminal: Terminal | None = None,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> ChatOpenResult:
    """Deliver ``prompt`` to the chat of ``client_id``. Never raises.

    Args:
        host: Host capabilities used to run commands, copy and open terminals.
        client_id: Registered client id (e.g. ``cursor``).
        prompt: Text to hand to the chat.
        terminal: Terminal to reuse for terminal-based agents so the command
            shows up next to the installer output.
    """
    client = find_client(client_id)
    if client is None:
        logger.debug("No chat config for %s, skipping", client_id)
        return ChatOpenResult(success=True, method=ChatMethod.NONE)

    strategy = client.strategy
    try:
        if isinstance(strategy, DirectInvoke):
            return await _direct_invoke(host, strategy, prompt)
        if isinstance(strategy, ClipboardPaste):
            return await _clipboard_paste(host, strategy, prompt, sleep)
        if isinstance(strategy, ClipboardOnly):
            return await _clipboard_only(host, prompt)
        if isinstance(strategy, TerminalSend):
            return _terminal_send(host, strategy, prompt, terminal)
        logger.debug("No chat integration for %s, skipping", client_id)
        return ChatOpenResult(success=True, method=ChatMethod.NONE)
    except Exception as exc:
        logger.error("Opening chat failed for %s: %s", client_id, exc)
        return ChatOpenResult(success=False, method=ChatMethod.NONE, error=str(exc))


def has_native_chat_support(client_id: str) -> bool:
    client = find_client(client_id)
    return client is not None and not isinstance(client.strategy, NoChat)


def get_chat_command(client_id: str) -> str | None:
    """Host command used to open the chat, if the client has one."""
    client = find_client(client_id)
    if client is None:
        return None
    if isinstance(client.strategy, (DirectInvoke, ClipboardPaste)):
        return client.strategy.command_name
    return None


def uses_terminal_chat(client_id: str) -> bool:
    client = find_client(client_id)
    return client is not None and isinstance(client.strategy, TerminalSend)
