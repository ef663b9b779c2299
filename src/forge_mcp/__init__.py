"""Install, verify and greet the InsForge MCP server in AI coding assistants."""

from __future__ import annotations

__version__ = "0.1.0"

from .chat_opener import ChatMethod, ChatOpenResult, try_open_chat
from .cli import main
from .installer import InstallOutcome, run_installer
from .orchestrator import InstallationOrchestrator, InstallationReport, InstallState
from .verifier import VerificationOutcome, retry_verification, verify_installation

__all__ = [
    "__version__",
    "ChatMethod",
    "ChatOpenResult",
    "InstallOutcome",
    "InstallState",
    "InstallationOrchestrator",
    "InstallationReport",
    "VerificationOutcome",
    "main",
    "retry_verification",
    "run_installer",
    "try_open_chat",
    "verify_installation",
]
