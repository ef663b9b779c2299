"""Caller-supplied status hooks for installation and verification."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union

Hook = Callable[..., Union[None, Awaitable[None]]]


async def maybe_await(callback: Hook | None, *args: Any) -> None:
    """Invoke an optional sync or async callback."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


@dataclass(frozen=True)
class VerificationCallbacks:
    """Hooks reported by a single verification cycle."""

    on_verifying: Callable[[], Any] | None = None
    on_verified: Callable[[list[str]], Any] | None = None
    on_failed: Callable[[str], Any] | None = None


@dataclass(frozen=True)
class StatusCallbacks:
    """Per-project status hooks exposed by the orchestrator.

    ``on_installation_starting`` fires once a client pick is confirmed so the
    caller can reset stale status from an earlier install. ``on_failed`` may
    come from the installer, verification, chat opening or an unexpected
    error.
    """

    on_installation_starting: Callable[[], Any] | None = None
    on_verifying: Callable[[str], Any] | None = None
    on_verified: Callable[[str, list[str]], Any] | None = None
    on_failed: Callable[[str, str], Any] | None = None
