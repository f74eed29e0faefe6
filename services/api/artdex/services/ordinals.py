"""Ordinal allocation and repair.

Ordering invariant:
- ordinals are unique positive integers
- every REGULAR ordinal < every ELEVATED ordinal

next_ordinal():
- REGULAR: first free integer from 1 below the lowest ELEVATED ordinal.
  When every slot below that boundary is taken, the boundary itself is
  returned: an item placed there collides with the first ELEVATED item
  until a reorganize pass shifts the ELEVATED block up by one.
- ELEVATED: first free integer above the highest REGULAR ordinal.

reorganize():
- Stable-sort each tier by current ordinal, renumber REGULAR 1..R and
  ELEVATED R+1..R+E, write only the ordinals that changed.
- Writes run concurrently and are not atomic. Re-running is always safe.
"""

import asyncio
from dataclasses import dataclass, field
import logging
import math

from artdex.models import ItemTier
from artdex.services.errors import InvariantViolation
from artdex.stores.documents import CatalogStore, ItemRecord

logger = logging.getLogger("uvicorn.error")


@dataclass
class ReorganizeResult:
    """Outcome of a reorganize pass."""

    updated: list[str] = field(default_factory=list)
    unchanged: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def first_free_ordinal(used: set[int], start: int = 1, below: float = math.inf) -> int | None:
    """First integer >= start not in `used` and < `below` (None if none)."""
    candidate = start
    while candidate < below:
        if candidate not in used:
            return candidate
        candidate += 1
    return None


def plan_ordinals(items: list[ItemRecord]) -> dict[str, int]:
    """Target ordinal for every item after a reorganize pass.

    sorted() is stable, so items sharing an ordinal keep their read order.
    """
    regular = sorted((i for i in items if i.tier == ItemTier.REGULAR), key=lambda i: i.ordinal)
    elevated = sorted((i for i in items if i.tier == ItemTier.ELEVATED), key=lambda i: i.ordinal)
    return {item.item_id: position for position, item in enumerate(regular + elevated, start=1)}


class OrdinalAllocator:
    """Assigns and repairs catalog ordinals."""

    def __init__(self, catalog: CatalogStore):
        self._catalog = catalog

    async def next_ordinal(self, tier: ItemTier) -> int:
        """Next ordinal for a new item of `tier`.

        For REGULAR, a return value equal to the lowest ELEVATED ordinal
        means "reorganize before inserting" (see requires_reorganize()).
        """
        items = await self._catalog.list_items()
        used = {item.ordinal for item in items}

        if tier == ItemTier.ELEVATED:
            max_regular = max((i.ordinal for i in items if i.tier == ItemTier.REGULAR), default=0)
            # Unbounded scan always finds a slot.
            return first_free_ordinal(used, start=max_regular + 1)

        boundary = min((i.ordinal for i in items if i.tier == ItemTier.ELEVATED), default=math.inf)
        ordinal = first_free_ordinal(used, start=1, below=boundary)
        if ordinal is None:
            logger.info(f"No free regular ordinal below {boundary}, reorganize required")
            return int(boundary)
        return ordinal

    async def requires_reorganize(self, tier: ItemTier, ordinal: int) -> bool:
        """True when `ordinal` is already taken (the boundary sentinel case)."""
        if tier == ItemTier.ELEVATED:
            return False
        items = await self._catalog.list_items(tier=ItemTier.ELEVATED)
        return any(item.ordinal == ordinal for item in items)

    async def reorganize(self) -> ReorganizeResult:
        """Renumber all items densely, respecting tier order."""
        items = await self._catalog.list_items()
        targets = plan_ordinals(items)

        changes = [(item.item_id, targets[item.item_id]) for item in items if item.ordinal != targets[item.item_id]]
        result = ReorganizeResult(unchanged=len(items) - len(changes))
        if not changes:
            logger.info(f"Reorganize: {len(items)} items already in order")
            return result

        outcomes = await asyncio.gather(
            *(self._catalog.set_ordinal(item_id, ordinal) for item_id, ordinal in changes),
            return_exceptions=True,
        )
        for (item_id, ordinal), outcome in zip(changes, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Reorganize: failed to move {item_id} to #{ordinal}: {outcome}")
                result.failed.append(item_id)
            elif outcome:
                result.updated.append(item_id)
            else:
                # Deleted between read and write; nothing left to renumber.
                result.unchanged += 1

        logger.info(
            f"Reorganize: updated={len(result.updated)} unchanged={result.unchanged} failed={len(result.failed)}"
        )
        return result


def find_ordering_violations(items: list[ItemRecord]) -> list[InvariantViolation]:
    """Duplicate ordinals and regular/elevated overlaps (reported, never raised)."""
    violations: list[InvariantViolation] = []

    by_ordinal: dict[int, list[str]] = {}
    for item in items:
        by_ordinal.setdefault(item.ordinal, []).append(item.item_id)
    for ordinal, item_ids in sorted(by_ordinal.items()):
        if len(item_ids) > 1:
            violations.append(
                InvariantViolation(
                    kind="DUPLICATE_ORDINAL",
                    message=f"Ordinal {ordinal} is used by {len(item_ids)} items",
                    item_ids=tuple(item_ids),
                    detail={"ordinal": ordinal},
                )
            )

    elevated = [i for i in items if i.tier == ItemTier.ELEVATED]
    if elevated:
        boundary = min(i.ordinal for i in elevated)
        late = [i for i in items if i.tier == ItemTier.REGULAR and i.ordinal >= boundary]
        if late:
            violations.append(
                InvariantViolation(
                    kind="TIER_ORDER",
                    message=f"{len(late)} regular items at or after elevated ordinal {boundary}",
                    item_ids=tuple(i.item_id for i in late),
                    detail={"boundary": boundary},
                )
            )
    return violations
