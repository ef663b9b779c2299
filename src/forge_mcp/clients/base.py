from __future__ import annotations

from dataclasses import dataclass
from typing import Union

DEFAULT_PASTE_DELAY_MS = 150


def _require(value: str, field: str, variant: str) -> None:
    if not value or not value.strip():
        raise ValueError(f"{variant}.{field} cannot be empty")


@dataclass(frozen=True)
class DirectInvoke:
    """Pass the prompt as a structured argument to a host chat command."""

    command_name: str

    def __post_init__(self) -> None:
        _require(self.command_name, "command_name", "DirectInvoke")


@dataclass(frozen=True)
class ClipboardPaste:
    """Copy the prompt, open the chat surface, wait, then paste.

    When ``skip_probe_key`` is set and that context flag reads true, the chat
    surface is already open and the open command is skipped.
    """

    command_name: str
    paste_delay_ms: int = DEFAULT_PASTE_DELAY_MS
    skip_probe_key: str | None = None

    def __post_init__(self) -> None:
        _require(self.command_name, "command_name", "ClipboardPaste")
        if self.paste_delay_ms < 0:
            raise ValueError("ClipboardPaste.paste_delay_ms must be >= 0")
        if self.skip_probe_key is not None:
            _require(self.skip_probe_key, "skip_probe_key", "ClipboardPaste")


@dataclass(frozen=True)
class ClipboardOnly:
    """Copy the prompt and ask the user to paste it."""


@dataclass(frozen=True)
class TerminalSend:
    """Run ``<terminal_command> "<prompt>"`` in a terminal."""

    terminal_command: str

    def __post_init__(self) -> None:
        _require(self.terminal_command, "terminal_command", "TerminalSend")


@dataclass(frozen=True)
class NoChat:
    """Client without chat integration."""


InteractionStrategy = Union[DirectInvoke, ClipboardPaste, ClipboardOnly, TerminalSend, NoChat]


@dataclass(frozen=True)
class ClientProfile:
    """One supported MCP client."""

    id: str
    label: str
    description: str
    project_local: bool
    strategy: InteractionStrategy = NoChat()

    def __post_init__(self) -> None:
        _require(self.id, "id", "ClientProfile")
        _require(self.label, "label", "ClientProfile")
