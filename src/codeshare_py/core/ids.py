"""Short random identifiers for projects, clients and stored uploads."""

from __future__ import annotations

import secrets
import string
import time

ALPHABET = string.digits + string.ascii_lowercase

PROJECT_ID_LENGTH = 6
CLIENT_ID_LENGTH = 9


def random_token(length: int) -> str:
    """Return a random lowercase base36 token of the given length."""
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_project_id() -> str:
    """Generate a short project code."""
    return random_token(PROJECT_ID_LENGTH)


def generate_client_id() -> str:
    """Generate a client identifier for a WebSocket session.

    Only collision-resistant, not globally unique; the session registry
    checks it against the live members of the room it joins.
    """
    return random_token(CLIENT_ID_LENGTH)


def generate_upload_name(extension: str) -> str:
    """Generate a stored filename of the form ``{epoch_ms}-{token}.{ext}``."""
    return f"{int(time.time() * 1000)}-{random_token(13)}.{extension}"
