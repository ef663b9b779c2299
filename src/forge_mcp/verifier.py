"""Poll a freshly installed MCP server until it lists its tools.

The backend can take a few seconds to pick up a newly written client
configuration, so verification retries a fixed number of times with a
constant delay instead of failing on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from forge_mcp.callbacks import VerificationCallbacks, maybe_await
from forge_mcp.telemetry import set_span_attributes, trace_span

logger = logging.getLogger("forge_mcp.verifier")

MAX_ATTEMPTS = 3
DELAY_SECONDS = 2.0
DEFAULT_ATTEMPT_TIMEOUT = 60.0
SERVER_COMMAND = shlex.split(
    os.environ.get("FORGE_MCP_SERVER_COMMAND", "").strip() or "npx -y @insforge/mcp@latest"
)


def _parse_timeout(raw: str | None) -> float:
    """Seconds per verification attempt; bad or non-positive values use the default."""
    if raw is None or not raw.strip():
        return DEFAULT_ATTEMPT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning(
            "Invalid FORGE_MCP_VERIFY_TIMEOUT %r, using %gs", raw, DEFAULT_ATTEMPT_TIMEOUT
        )
        return DEFAULT_ATTEMPT_TIMEOUT
    if not value > 0:
        logger.warning(
            "FORGE_MCP_VERIFY_TIMEOUT must be positive, using %gs", DEFAULT_ATTEMPT_TIMEOUT
        )
        return DEFAULT_ATTEMPT_TIMEOUT
    return value


ATTEMPT_TIMEOUT = _parse_timeout(os.environ.get("FORGE_MCP_VERIFY_TIMEOUT"))

ListToolsFn = Callable[[str, str], Awaitable[list[str]]]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class VerificationOutcome:
    """Either a non-empty tool list or an error description."""

    tools: tuple[str, ...] = ()
    error: str | None = None

    def __post_init__(self) -> None:
        if bool(self.tools) == (self.error is not None):
            raise ValueError("VerificationOutcome needs exactly one of tools or error")

    @property
    def ok(self) -> bool:
        return bool(self.tools)


def _describe_error(exc: BaseException) -> str:
    # anyio task groups wrap the real failure.
    while isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return f"Timed out after {ATTEMPT_TIMEOUT:g}s waiting for the MCP server"
    return str(exc) or type(exc).__name__


async def fetch_tools(api_key: str, api_base_url: str) -> list[str]:
    """Start the MCP server with the given credentials and list its tools."""
    params = StdioServerParameters(
        command=SERVER_COMMAND[0],
        args=SERVER_COMMAND[1:],
        env={**os.environ, "API_KEY": api_key, "API_BASE_URL": api_base_url},
    )
    async with stdio_client(params) as (read_stream, write_stream):
        async with ClientSession(read_stream, write_stream) as session:
            await session.initialize()
            result = await session.list_tools()
    return [tool.name for tool in result.tools]


async def verify_installation(
    api_key: str,
    api_base_url: str,
    callbacks: VerificationCallbacks,
    *,
    list_tools: ListToolsFn | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> VerificationOutcome:
    """Try up to MAX_ATTEMPTS times to list the server's tools.

    ``on_verifying`` fires once before the first attempt. The first attempt
    returning a non-empty list fires ``on_verified`` and stops. When every
    attempt fails, ``on_failed`` fires once with the last error.
    """
    list_tools = list_tools or fetch_tools
    await maybe_await(callbacks.on_verifying)

    last_error = "MCP server verification failed"
    for attempt in range(1, MAX_ATTEMPTS + 1):
        with trace_span(f"verify/{attempt}", attributes={"forge_mcp.attempt": attempt}) as span:
            try:
                tools = await asyncio.wait_for(list_tools(api_key, api_base_url), ATTEMPT_TIMEOUT)
            except Exception as exc:
                last_error = _describe_error(exc)
                logger.debug("Verification attempt %d failed: %s", attempt, last_error)
            else:
                if tools:
                    set_span_attributes(span, {"forge_mcp.tool_count": len(tools)})
                    logger.info("MCP server verified with %d tools", len(tools))
                    outcome = VerificationOutcome(tools=tuple(tools))
                    await maybe_await(callbacks.on_verified, list(outcome.tools))
                    return outcome
                last_error = "MCP server returned no tools"
                logger.debug("Verification attempt %d returned no tools", attempt)
        if attempt < MAX_ATTEMPTS:
            await sleep(DELAY_SECONDS)

    logger.warning("MCP verification failed after %d attempts: %s", MAX_ATTEMPTS, last_error)
    await maybe_await(callbacks.on_failed, last_error)
    return VerificationOutcome(error=last_error)


async def retry_verification(
    api_key: str,
    api_base_url: str,
    callbacks: VerificationCallbacks,
    *,
    list_tools: ListToolsFn | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> VerificationOutcome:
    """User-triggered re-run of the full poll cycle, starting at attempt 1."""
    logger.debug("Retrying MCP verification")
    return await verify_installation(
        api_key,
        api_base_url,
        callbacks,
        list_tools=list_tools,
        sleep=sleep,
    )
