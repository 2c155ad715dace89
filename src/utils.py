"""Utility functions for the sidecar terminator operator."""

import datetime
from typing import Any

from constants import KIND


def now_iso() -> str:
    """Return current UTC time as an RFC 3339 timestamp with second precision."""
    return (
        datetime.datetime.now(datetime.UTC)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def identity(namespace: str, name: str) -> str:
    """Return the work-queue key for a namespaced resource."""
    return f"{namespace}/{name}"


def sidecar_owner(
    owner_references: list[dict[str, Any]] | None, group: str
) -> str | None:
    """Return the name of the Sidecar owning an object, if any.

    Only owner references whose apiVersion belongs to ``group`` count.
    """
    for ref in owner_references or []:
        api_version = ref.get("apiVersion", "")
        if ref.get("kind") == KIND and api_version.split("/")[0] == group:
            return ref.get("name")
    return None
