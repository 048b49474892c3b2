"""Identifier helpers."""

from __future__ import annotations

import re
import uuid

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 string with optional prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


def storage_location(user_id: str, filename: str) -> str:
    """Object store key for an upload: ``<user>/<random>_<sanitized name>``."""
    safe_user = _UNSAFE_NAME_RE.sub("_", user_id).strip("._") or "anonymous"
    safe_name = _UNSAFE_NAME_RE.sub("_", filename).strip("._") or "document"
    return f"{safe_user}/{uuid.uuid4().hex[:12]}_{safe_name[:128]}"
