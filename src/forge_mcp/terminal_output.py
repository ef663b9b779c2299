"""Text shown in the installer terminal after a run."""

from __future__ import annotations

import re

from forge_mcp.installer import InstallOutcome, manual_install_hint

# CSI sequences plus two-byte escapes.
_ANSI_ESCAPE_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")

LINE = "━" * 55
DOCS_URL = "https://docs.insforge.dev/introduction"
DISCORD_URL = "https://discord.com/invite/MPxwj5xVvW"
GITHUB_URL = "https://github.com/insforge/insforge"

BANNER = r"""
 ___           _____
|_ _|_ __  ___|  ___|__  _ __ __ _  ___
 | || '_ \/ __| |_ / _ \| '__/ _` |/ _ \
 | || | | \__ \  _| (_) | | | (_| |  __/
|___|_| |_|___/_|  \___/|_|  \__, |\___|
                             |___/
"""


def strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE_RE.sub("", text)


def format_header(text: str) -> str:
    return f"\n{LINE}\n  {text}\n{LINE}\n"


def _success_lines() -> list[str]:
    return [
        format_header("Installation Complete!"),
        BANNER,
        "✓ InsForge MCP is now configured!",
        "",
        "Next steps:",
        "  1. Restart your coding agent to load InsForge",
        "  2. Try these commands in your agent:",
        "",
        '     "Create a posts table with title, content, and author"',
        "     (Sets up your database schema)",
        "",
        '     "Add image upload for user profiles"',
        "     (Creates storage bucket and handles file uploads)",
        "",
        "Learn more:",
        f"  Documentation: {DOCS_URL}",
        f"  Discord: {DISCORD_URL}",
        f"  GitHub: {GITHUB_URL}",
        "",
    ]


def _failure_lines(outcome: InstallOutcome, client_id: str) -> list[str]:
    lines = [format_header("Installation Failed"), ""]
    if outcome.error:
        lines.append(f"✗ Error: {outcome.error}")
    else:
        lines.append(f"✗ Installer exited with code: {outcome.exit_code}")
    lines.append("")

    # Installer output is forwarded verbatim apart from colour codes.
    if outcome.stdout.strip():
        lines.extend(["--- Installer Output ---", strip_ansi(outcome.stdout.strip()), ""])
    if outcome.stderr.strip():
        lines.extend(["--- Error Output ---", strip_ansi(outcome.stderr.strip()), ""])

    lines.extend(
        [
            LINE,
            "",
            "Troubleshooting:",
            "  • Make sure you have Node.js and npm installed",
            "  • Check your network connection",
            f"  • Try running manually: {manual_install_hint(client_id)}",
            "",
            "Need help?",
            f"  Discord: {DISCORD_URL}",
            f"  Docs: {DOCS_URL}",
            "",
        ]
    )
    return lines


def build_terminal_output(outcome: InstallOutcome, client_label: str, client_id: str) -> str:
    """Build the installer report for ``client_label`` from ``outcome``."""
    lines = [format_header("InsForge MCP Installer"), f"Target: {client_label} ({client_id})", ""]
    if outcome.success:
        lines.extend(_success_lines())
    else:
        lines.extend(_failure_lines(outcome, client_id))
    return "\n".join(lines)
