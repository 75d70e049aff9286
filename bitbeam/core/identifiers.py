"""Random identifiers for files and identity keys.

Every value carries 128 bits from :mod:`secrets` and is rendered as a
hyphenated UUID string. Collisions are treated as impossible and are
never checked against existing rows.
"""

from __future__ import annotations

import secrets
import uuid

IDENTIFIER_BITS = 128


def generate_identifier() -> str:
    return str(uuid.UUID(int=secrets.randbits(IDENTIFIER_BITS)))
