"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any business rule that references a numeric constant should import it
from here instead of hardcoding.  This avoids drift between apps that use
the same value.
"""

# ── Complaint references ────────────────────────────────────────────
# Messages and logs refer to a complaint by the last N characters of its
# zero-padded id, e.g. ``#000042``.
SHORT_ID_LENGTH: int = 6

# ── Pagination ──────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100


def short_id(pk: int) -> str:
    return str(pk).zfill(SHORT_ID_LENGTH)[-SHORT_ID_LENGTH:]
