"""Supported MCP clients and how each one receives the welcome prompt.

To add a client, find its "new chat" command id in the IDE keybindings
editor. If the command accepts ``{query, isPartialQuery}`` use
``DirectInvoke``; otherwise fall back to ``ClipboardPaste``.
"""

from .base import (
    ClientProfile,
    ClipboardOnly,
    ClipboardPaste,
    DirectInvoke,
    NoChat,
    TerminalSend,
)

CLIENTS: tuple[ClientProfile, ...] = (
    ClientProfile(
        id="cursor",
        label="Cursor",
        description="Cursor IDE (~/.cursor/mcp.json)",
        project_local=False,
        strategy=DirectInvoke("workbench.action.chat.open"),
    ),
    ClientProfile(
        id="claude-code",
        label="Claude Code",
        description="Project-local (.mcp.json in workspace)",
        project_local=True,
        strategy=TerminalSend("claude"),
    ),
    ClientProfile(
        id="antigravity",
        label="Google Antigravity",
        description="Google Antigravity (~/.gemini/antigravity/mcp_config.json)",
        project_local=False,
        strategy=ClipboardPaste("antigravity.prioritized.chat.open"),
    ),
    ClientProfile(
        id="windsurf",
        label="Windsurf",
        description="Windsurf IDE (~/.codeium/windsurf/mcp_config.json)",
        project_local=False,
        strategy=ClipboardPaste("windsurf.prioritized.chat.openNewConversation"),
    ),
    ClientProfile(
        id="cline",
        label="Cline",
        description="Cline VS Code Extension (VS Code globalStorage)",
        project_local=False,
        strategy=NoChat(),
    ),
    ClientProfile(
        id="roocode",
        label="Roo Code",
        description="Roo-Code VS Code Extension (VS Code globalStorage)",
        project_local=False,
        strategy=NoChat(),
    ),
    ClientProfile(
        id="copilot",
        label="GitHub Copilot",
        description="Project-local (.vscode/mcp.json)",
        project_local=True,
        strategy=DirectInvoke("workbench.action.chat.open"),
    ),
    ClientProfile(
        id="codex",
        label="Codex",
        description="OpenAI Codex CLI (managed via codex mcp add)",
        project_local=False,
        strategy=TerminalSend("codex"),
    ),
    ClientProfile(
        id="trae",
        label="Trae",
        description="Trae IDE (Trae/User/mcp.json)",
        project_local=False,
        strategy=ClipboardPaste("workbench.action.chat.icube.open"),
    ),
    ClientProfile(
        id="qoder",
        label="Qoder",
        description="Qoder IDE (Qoder/SharedClientCache/mcp.json)",
        project_local=False,
        # Chat command is unreliable in Qoder.
        strategy=ClipboardOnly(),
    ),
    ClientProfile(
        id="kiro",
        label="Kiro",
        description="Kiro IDE (~/.kiro/settings/mcp.json)",
        project_local=False,
        strategy=ClipboardPaste("kiroAgent.focusContinueInput", paste_delay_ms=1000),
    ),
)
