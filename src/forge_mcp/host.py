"""Host UI capabilities the installer drives.

The orchestrator and chat opener only talk to these protocols. A concrete
binding (an editor extension bridge, the console host, a test fake)
supplies the implementation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol


class CommandNotFoundError(LookupError):
    """Raised by a host when asked to run a command it does not provide."""


@dataclass(frozen=True)
class WorkspaceFolder:
    name: str
    path: str


@dataclass(frozen=True)
class QuickPickItem:
    label: str
    description: str = ""
    value: Any = None


class Terminal(Protocol):
    """Terminal owned by the host. Input is fire-and-forget."""

    name: str

    def show(self) -> None: ...

    def send_text(self, text: str) -> None: ...


class Commands(Protocol):
    async def execute(self, name: str, *args: Any) -> Any:
        """Run a host command. Raises when the command fails or is unknown."""
        ...

    async def get_context(self, key: str) -> Any:
        """Read a UI-state context flag, None when unset."""
        ...


class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...


class Window(Protocol):
    def create_terminal(self, name: str, message: str | None = None) -> Terminal: ...

    async def show_information(self, message: str, *actions: str) -> str | None: ...

    async def show_warning(self, message: str, *actions: str) -> str | None: ...

    async def show_error(self, message: str, *actions: str) -> str | None: ...

    async def show_quick_pick(
        self,
        items: Sequence[QuickPickItem],
        placeholder: str = "",
        title: str = "",
    ) -> QuickPickItem | None: ...


class Host(Protocol):
    commands: Commands
    clipboard: Clipboard
    window: Window

    def workspace_folders(self) -> list[WorkspaceFolder]: ...
