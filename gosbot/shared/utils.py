from __future__ import annotations
import re
import uuid
from typing import Optional

# ========================================
#           IDENTIFIER HELPERS
# ========================================
"""
Session ids and correlation ids share one textual shape: a canonical
UUID-v4 string. The service checks the shape, not the randomness.
"""

_UUID_V4_RE = re.compile(
    r'^[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-4[a-fA-F0-9]{3}-[89abAB][a-fA-F0-9]{3}-[a-fA-F0-9]{12}$'
)


def is_uuid_v4(s: Optional[str]) -> bool:
    """
    True for strings shaped 8-4-4-4-12 hex digits with the version nibble
    set to 4 and the variant nibble in 8..b. Upper case digits are accepted.
    """
    return isinstance(s, str) and bool(_UUID_V4_RE.fullmatch(s))


def generate_uuid_v4() -> str:
    """Generate a new UUID v4 for session and correlation ids"""
    return str(uuid.uuid4())


def ensure_uuid_v4(s: Optional[str]) -> str:
    """Return ``s`` unchanged when it is UUID-v4 shaped, otherwise a new id."""
    if is_uuid_v4(s):
        return s  # type: ignore[return-value]
    return generate_uuid_v4()
