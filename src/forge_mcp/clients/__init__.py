from .base import (
    ClientProfile,
    ClipboardOnly,
    ClipboardPaste,
    DirectInvoke,
    InteractionStrategy,
    NoChat,
    TerminalSend,
)
from .catalog import CLIENTS

CLIENT_REGISTRY: dict[str, ClientProfile] = {client.id: client for client in CLIENTS}


def find_client(client_id: str) -> ClientProfile | None:
    """Return the profile for ``client_id`` or None when it is not registered."""
    return CLIENT_REGISTRY.get(client_id)


def get_client(client_id: str) -> ClientProfile:
    """Get client profile by id.

    Raises:
        ValueError: If the client id is not registered.
    """
    if client_id not in CLIENT_REGISTRY:
        available = ", ".join(sorted(CLIENT_REGISTRY))
        raise ValueError(f"Unknown client: {client_id}. Available: {available}")
    return CLIENT_REGISTRY[client_id]


def list_clients() -> list[ClientProfile]:
    """List registered clients in picker order."""
    return list(CLIENTS)


__all__ = [
    "CLIENT_REGISTRY",
    "ClientProfile",
    "ClipboardOnly",
    "ClipboardPaste",
    "DirectInvoke",
    "InteractionStrategy",
    "NoChat",
    "TerminalSend",
    "find_client",
    "get_client",
    "list_clients",
]
