"""Error taxonomy shared by stores and services.

- RemoteUnavailable: the document store (or network) failed. Raised by
  stores, caught at the CatalogService boundary.
- ConfirmationRequired: a bulk-destructive call got the wrong token.
  Never swallowed.
- LocalStoreError: the client-local cache backend failed.
- InvalidScore: a vote outside the half-step score domain.
- ItemNotFound: a vote/favorite/update referenced an unknown item.
- InvariantViolation: a record, not an exception. Ordering/ledger
  inconsistencies are tolerated and reported, never raised.
"""

from dataclasses import dataclass, field
from typing import Any


class RemoteUnavailable(RuntimeError):
    """Document store or network failure."""


class ConfirmationRequired(ValueError):
    """Confirmation token did not match the expected string."""

    def __init__(self, expected: str, received: str | None):
        super().__init__(f"Confirmation mismatch: expected {expected!r}")
        self.expected = expected
        self.received = received


class LocalStoreError(RuntimeError):
    """Client-local cache backend failure (never fatal for reads)."""


class InvalidScore(ValueError):
    """Score is not a half step in [0.5, 10]."""


class ItemNotFound(LookupError):
    """Referenced catalog item does not exist."""


@dataclass(frozen=True)
class InvariantViolation:
    """Detected (and tolerated) inconsistency in remote state.

    Kinds:
    - DUPLICATE_ORDINAL: two or more items share an ordinal
    - TIER_ORDER: a regular item sorts at/after an elevated item
    - DUPLICATE_LEDGER: more than one ledger for one item
    - ORPHAN_LEDGER: ledger for an item that no longer exists
    """

    kind: str
    message: str
    item_ids: tuple[str, ...] = ()
    detail: dict[str, Any] = field(default_factory=dict)
