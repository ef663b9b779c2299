"""Project credentials consumed by the installer.

Token acquisition and secure storage live outside this package; the
orchestrator only needs an API key and a base URL per project.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol

API_DOMAIN = os.environ.get("FORGE_MCP_DOMAIN", "").strip() or "insforge.app"


@dataclass(frozen=True)
class Project:
    id: str
    appkey: str
    region: str
    name: str = ""


class CredentialProvider(Protocol):
    async def get_project_api_key(self, project_id: str) -> str | None:
        """Return the project's API key, or None when it cannot be retrieved."""
        ...


def build_api_base_url(project: Project, domain: str | None = None) -> str:
    """Return ``https://{appkey}.{region}.{domain}`` for ``project``."""
    return f"https://{project.appkey}.{project.region}.{domain or API_DOMAIN}"


class StaticCredentialProvider:
    """Serve one API key for every project, e.g. from FORGE_MCP_API_KEY."""

    def __init__(self, api_key: str | None) -> None:
        self._api_key = (api_key or "").strip() or None

    async def get_project_api_key(self, project_id: str) -> str | None:
        return self._api_key
