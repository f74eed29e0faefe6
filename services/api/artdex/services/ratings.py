"""Rating aggregation service.

Ledger rules:
1. One ledger per item: voter id -> score (half steps in [0.5, 10])
2. Re-voting overwrites the voter's score (idempotent, never double-counts)
3. average_score / total_points / vote_count are recomputed from the full
   vote map on every mutation
4. A ledger whose last vote is withdrawn is deleted

Ranking:
1. Sort by average_score DESC
2. Then by total_points DESC (more/stronger votes break ties)
3. Ranks are positional 1..N (equal scores still get distinct ranks)

Create race: two clients casting the first vote for an item may both
create a ledger. The next vote on that item merges all vote maps into
the oldest ledger and deletes the others.
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
import logging

from artdex.services.cache import StalenessCache
from artdex.services.errors import ConfirmationRequired, InvalidScore, InvariantViolation, RemoteUnavailable
from artdex.services.markers import DOMAIN_RATINGS
from artdex.stores.documents import LedgerRecord, LedgerStore

logger = logging.getLogger("uvicorn.error")

# Score -> points. Super-linear so strong votes weigh more in tie-breaks.
POINTS_TABLE: dict[float, float] = {
    0.5: 5,
    1.0: 10,
    1.5: 12.5,
    2.0: 15,
    2.5: 18,
    3.0: 21,
    3.5: 24.5,
    4.0: 28,
    4.5: 32,
    5.0: 36,
    5.5: 40.5,
    6.0: 45,
    6.5: 50,
    7.0: 55,
    7.5: 60.5,
    8.0: 66,
    8.5: 72,
    9.0: 78,
    9.5: 84.5,
    10.0: 91,
}

SCORE_STEPS: tuple[float, ...] = tuple(sorted(POINTS_TABLE))

# Average score thresholds, best first
_RATING_TIERS = (
    (9.3, "SS"),
    (8.0, "S"),
    (7.0, "A"),
    (6.0, "B"),
    (5.0, "C"),
    (4.0, "D"),
)


def points_of(score: float) -> float:
    """Points for a score; anything outside the table is worth 0."""
    try:
        return POINTS_TABLE.get(float(score), 0)
    except (TypeError, ValueError):
        return 0


def is_valid_score(score: float) -> bool:
    try:
        return float(score) in POINTS_TABLE
    except (TypeError, ValueError):
        return False


def score_label(score: float) -> str:
    """Compact label for a score step ("0.5", "1", "10")."""
    return f"{float(score):g}"


def rating_tier(average_score: float) -> str:
    """Letter tier (SS..F) for an average score."""
    for threshold, tier in _RATING_TIERS:
        if average_score >= threshold:
            return tier
    return "F"


@dataclass(frozen=True)
class LedgerStats:
    average_score: float
    total_points: float
    vote_count: int


def compute_ledger_stats(votes: dict[str, float]) -> LedgerStats:
    """Derived ledger fields, always from the complete vote map."""
    if not votes:
        return LedgerStats(average_score=0.0, total_points=0.0, vote_count=0)
    scores = list(votes.values())
    return LedgerStats(
        average_score=sum(scores) / len(scores),
        total_points=float(sum(points_of(s) for s in scores)),
        vote_count=len(scores),
    )


def merge_vote_maps(ledgers: Iterable[LedgerRecord]) -> dict[str, float]:
    """Union of vote maps; later ledgers win for a voter present in several."""
    merged: dict[str, float] = {}
    for ledger in ledgers:
        merged.update(ledger.votes)
    return merged


@dataclass(frozen=True)
class RankedEntry:
    item_id: str
    rank: int
    average_score: float
    total_points: float
    vote_count: int
    tier: str


def rank_entries(entries: Iterable[tuple[str, LedgerStats]]) -> list[RankedEntry]:
    """Rank (item_id, stats) pairs; input order settles full ties."""
    ordered = sorted(entries, key=lambda e: (-e[1].average_score, -e[1].total_points))
    return [
        RankedEntry(
            item_id=item_id,
            rank=position,
            average_score=stats.average_score,
            total_points=stats.total_points,
            vote_count=stats.vote_count,
            tier=rating_tier(stats.average_score),
        )
        for position, (item_id, stats) in enumerate(ordered, start=1)
    ]


@dataclass
class VoterStats:
    voter_id: str
    average_score: float = 0.0
    total_ratings: int = 0
    total_unrated: int = 0
    distribution: dict[str, int] = field(default_factory=dict)


def summarize_voter(voter_id: str, ledgers: Iterable[LedgerRecord], item_ids: Iterable[str]) -> VoterStats:
    """A voter's scores over existing items (ledgers of deleted items ignored)."""
    existing = set(item_ids)
    distribution = {score_label(s): 0 for s in SCORE_STEPS}
    scores: list[float] = []
    rated: set[str] = set()
    for ledger in ledgers:
        if ledger.item_id not in existing or ledger.item_id in rated:
            continue
        score = ledger.votes.get(voter_id)
        if score is None:
            continue
        rated.add(ledger.item_id)
        scores.append(score)
        label = score_label(score)
        if label in distribution:
            distribution[label] += 1
    return VoterStats(
        voter_id=voter_id,
        average_score=sum(scores) / len(scores) if scores else 0.0,
        total_ratings=len(scores),
        total_unrated=len(existing) - len(rated),
        distribution=distribution,
    )


@dataclass
class LowVoteReport:
    max_votes: int
    voters: dict[str, int] = field(default_factory=dict)  # voter id -> vote count
    total_votes: int = 0

    @property
    def confirmation(self) -> str:
        return expected_confirmation(self.max_votes, len(self.voters))


def expected_confirmation(max_votes: int, voter_count: int) -> str:
    """Token a caller must echo back to run the low-vote cleanup."""
    return f"DELETE {voter_count} VOTERS WITH AT MOST {max_votes} VOTES"


@dataclass
class BulkWriteResult:
    updated: int = 0
    deleted: int = 0
    failed: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0


class RatingAggregator:
    """Maintains per-item ledgers and derives leaderboards."""

    def __init__(self, ledgers: LedgerStore, cache: StalenessCache):
        self._ledgers = ledgers
        self._cache = cache

    async def record_vote(self, item_id: str, voter_id: str, score: float) -> LedgerRecord:
        """Upsert `voter_id`'s score for `item_id`.

        Raises:
            InvalidScore: score is not a half step in [0.5, 10].
            RemoteUnavailable: store failure (nothing guaranteed written).
        """
        if not is_valid_score(score):
            raise InvalidScore(f"Invalid score {score!r}: expected a half step in [0.5, 10]")
        score = float(score)

        existing = await self._ledgers.find_ledgers(item_id)
        if not existing:
            votes = {voter_id: score}
            stats = compute_ledger_stats(votes)
            ledger = await self._ledgers.create_ledger(
                item_id, votes, stats.average_score, stats.total_points, stats.vote_count
            )
            await self._cache.record_write(DOMAIN_RATINGS)
            return ledger

        votes = merge_vote_maps(existing)
        votes[voter_id] = score
        try:
            return await self._save_merged(existing, votes)
        finally:
            await self._cache.record_write(DOMAIN_RATINGS)

    async def withdraw_vote(self, item_id: str, voter_id: str) -> bool:
        """Remove one voter's score for one item. False if there was none.

        Raises:
            RemoteUnavailable: a ledger write failed; the vote may still be stored.
        """
        existing = await self._ledgers.find_ledgers(item_id)
        votes = merge_vote_maps(existing)
        if voter_id not in votes:
            return False
        del votes[voter_id]

        try:
            if votes:
                await self._save_merged(existing, votes)
            else:
                await self._run_bulk([self._ledgers.delete_ledger(ledger.ledger_id) for ledger in existing])
        finally:
            await self._cache.record_write(DOMAIN_RATINGS)
        return True

    async def withdraw_voter(self, voter_id: str) -> BulkWriteResult:
        """Remove `voter_id` from every ledger (data-removal requests)."""
        return await self._remove_voters({voter_id})

    async def analyze_low_vote_voters(self, max_votes: int) -> LowVoteReport:
        """Voters who cast at most `max_votes` votes in total."""
        ledgers = await self._ledgers.list_ledgers()
        counts: Counter[str] = Counter()
        for ledger in ledgers:
            counts.update(ledger.votes.keys())
        voters = {voter: n for voter, n in sorted(counts.items()) if n <= max_votes}
        return LowVoteReport(max_votes=max_votes, voters=voters, total_votes=sum(voters.values()))

    async def cleanup_low_vote_voters(self, max_votes: int, confirmation: str | None) -> int:
        """Remove every vote of low-activity voters.

        The confirmation token must equal expected_confirmation() for the
        current state; on mismatch nothing is written.

        Returns:
            Number of voters removed.
        """
        report = await self.analyze_low_vote_voters(max_votes)
        expected = report.confirmation
        if confirmation != expected:
            raise ConfirmationRequired(expected=expected, received=confirmation)
        if not report.voters:
            return 0

        result = await self._remove_voters(set(report.voters))
        logger.warning(
            f"Low-vote cleanup: removed {len(report.voters)} voters "
            f"({report.total_votes} votes), ledgers updated={result.updated} "
            f"deleted={result.deleted} failed={result.failed}"
        )
        return len(report.voters)

    async def find_duplicate_ledgers(self) -> list[InvariantViolation]:
        """Items with more than one ledger (create race)."""
        ledgers = await self._ledgers.list_ledgers()
        per_item = Counter(ledger.item_id for ledger in ledgers)
        return [
            InvariantViolation(
                kind="DUPLICATE_LEDGER",
                message=f"Item {item_id} has {n} rating ledgers",
                item_ids=(item_id,),
                detail={"ledgers": n},
            )
            for item_id, n in sorted(per_item.items())
            if n > 1
        ]

    async def _save_merged(self, existing: list[LedgerRecord], votes: dict[str, float]) -> LedgerRecord:
        primary, duplicates = existing[0], existing[1:]
        stats = compute_ledger_stats(votes)
        saved = await self._ledgers.save_ledger(
            primary.ledger_id, votes, stats.average_score, stats.total_points, stats.vote_count
        )
        if not saved:
            # Deleted by another client after it was read.
            logger.warning(f"Ledger {primary.ledger_id} for item {primary.item_id} vanished, recreating")
            primary = await self._ledgers.create_ledger(
                primary.item_id, votes, stats.average_score, stats.total_points, stats.vote_count
            )
        if duplicates:
            logger.warning(f"Merging {len(duplicates)} duplicate ledgers for item {primary.item_id}")
            await self._run_bulk([self._ledgers.delete_ledger(d.ledger_id) for d in duplicates])
        return LedgerRecord(
            ledger_id=primary.ledger_id,
            item_id=primary.item_id,
            votes=dict(votes),
            average_score=stats.average_score,
            total_points=stats.total_points,
            vote_count=stats.vote_count,
            created_at=primary.created_at,
        )

    async def _remove_voters(self, voter_ids: set[str]) -> BulkWriteResult:
        ledgers = await self._ledgers.list_ledgers()
        result = BulkWriteResult()
        writes: list[Awaitable[bool]] = []
        kinds: list[str] = []
        for ledger in ledgers:
            if not voter_ids.intersection(ledger.votes):
                continue
            votes = {v: s for v, s in ledger.votes.items() if v not in voter_ids}
            if votes:
                stats = compute_ledger_stats(votes)
                writes.append(
                    self._ledgers.save_ledger(
                        ledger.ledger_id, votes, stats.average_score, stats.total_points, stats.vote_count
                    )
                )
                kinds.append("updated")
            else:
                writes.append(self._ledgers.delete_ledger(ledger.ledger_id))
                kinds.append("deleted")

        if not writes:
            return result

        outcomes = await asyncio.gather(*writes, return_exceptions=True)
        for kind, outcome in zip(kinds, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Voter removal write failed: {outcome}")
                result.failed += 1
            elif kind == "updated":
                result.updated += 1
            else:
                result.deleted += 1

        await self._cache.record_write(DOMAIN_RATINGS)
        return result

    async def _run_bulk(self, writes: list[Awaitable[bool]]) -> None:
        """Run independent writes concurrently; RemoteUnavailable if any failed."""
        outcomes = await asyncio.gather(*writes, return_exceptions=True)
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        for failure in failures:
            logger.error(f"Ledger write failed: {failure}")
        if failures:
            raise RemoteUnavailable(f"{len(failures)} of {len(outcomes)} ledger writes failed")
