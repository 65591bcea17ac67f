"""Node identifier generation."""

from __future__ import annotations

import uuid


def generate_node_id() -> str:
    """Return a new globally unique node id."""
    return str(uuid.uuid4())
