from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from forge_mcp.host import CommandNotFoundError, QuickPickItem, WorkspaceFolder


class FakeCommands:
    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, Exception] = {}
        self.known: set[str] | None = None
        self.context: dict[str, Any] = {}
        self.context_reads: list[str] = []

    async def execute(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]
        if self.known is not None and name not in self.known:
            raise CommandNotFoundError(f"command '{name}' not found")
        return None

    async def get_context(self, key: str) -> Any:
        self.context_reads.append(key)
        return self.context.get(key)

    @property
    def names(self) -> list[str]:
        return [name for name, _args in self.calls]


class FakeClipboard:
    def __init__(self) -> None:
        self.text: str | None = None
        self.writes = 0
        self.error: Exception | None = None

    async def write_text(self, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.writes += 1
        self.text = text


class FakeTerminal:
    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self.message = message
        self.shown = 0
        self.sent: list[str] = []

    def show(self) -> None:
        self.shown += 1

    def send_text(self, text: str) -> None:
        self.sent.append(text)


class FakeWindow:
    """Records notifications; answers picks and actions from scripted queues."""

    def __init__(self) -> None:
        self.terminals: list[FakeTerminal] = []
        self.messages: list[tuple[str, str, tuple[str, ...]]] = []
        self.picks: list[tuple[str, list[QuickPickItem]]] = []
        self.pick_answers: list[str | None] = []
        self.action_answers: list[str | None] = []

    def create_terminal(self, name: str, message: str | None = None) -> FakeTerminal:
        terminal = FakeTerminal(name, message)
        self.terminals.append(terminal)
        return terminal

    async def _notify(self, level: str, message: str, actions: tuple[str, ...]) -> str | None:
        self.messages.append((level, message, actions))
        if actions and self.action_answers:
            return self.action_answers.pop(0)
        return None

    async def show_information(self, message: str, *actions: str) -> str | None:
        return await self._notify("info", message, actions)

    async def show_warning(self, message: str, *actions: str) -> str | None:
        return await self._notify("warning", message, actions)

    async def show_error(self, message: str, *actions: str) -> str | None:
        return await self._notify("error", message, actions)

    async def show_quick_pick(
        self,
        items: Sequence[QuickPickItem],
        placeholder: str = "",
        title: str = "",
    ) -> QuickPickItem | None:
        self.picks.append((placeholder, list(items)))
        if not self.pick_answers:
            return None
        answer = self.pick_answers.pop(0)
        if answer is None:
            return None
        for item in items:
            value = item.value
            if item.label == answer or getattr(value, "id", value) == answer:
                return item
        raise AssertionError(f"no quick pick item matches {answer!r}")

    def levels(self, level: str) -> list[str]:
        return [message for lvl, message, _actions in self.messages if lvl == level]


class FakeHost:
    def __init__(self, folders: Sequence[str] = ()) -> None:
        self.commands = FakeCommands()
        self.clipboard = FakeClipboard()
        self.window = FakeWindow()
        self.folders = [WorkspaceFolder(name=path.rsplit("/", 1)[-1], path=path) for path in folders]

    def workspace_folders(self) -> list[WorkspaceFolder]:
        return list(self.folders)


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def make_host() -> type[FakeHost]:
    return FakeHost


@pytest.fixture(name="no_sleep")
def no_sleep_fixture():
    return no_sleep
