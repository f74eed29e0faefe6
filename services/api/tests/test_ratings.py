import pytest

from artdex.services.errors import ConfirmationRequired, InvalidScore, RemoteUnavailable
from artdex.services.ratings import (
    POINTS_TABLE,
    LedgerStats,
    compute_ledger_stats,
    expected_confirmation,
    is_valid_score,
    points_of,
    rank_entries,
    rating_tier,
    score_label,
    summarize_voter,
)
from artdex.stores.documents import LedgerRecord


def test_points_table_exact_values():
    assert points_of(0.5) == 5
    assert points_of(1) == 10
    assert points_of(5) == 36
    assert points_of(7.5) == 60.5
    assert points_of(10) == 91
    assert len(POINTS_TABLE) == 20


def test_points_outside_table_are_zero():
    assert points_of(0) == 0
    assert points_of(10.5) == 0
    assert points_of(3.3) == 0
    assert points_of("nope") == 0  # type: ignore[arg-type]


def test_score_validation_half_steps_only():
    assert is_valid_score(0.5)
    assert is_valid_score(10)
    assert is_valid_score("7.5")  # type: ignore[arg-type]
    assert not is_valid_score(0)
    assert not is_valid_score(7.25)
    assert not is_valid_score(11)
    assert not is_valid_score(None)  # type: ignore[arg-type]


def test_score_label():
    assert score_label(0.5) == "0.5"
    assert score_label(10.0) == "10"
    assert score_label(7) == "7"


@pytest.mark.parametrize(
    ("average", "tier"),
    [(9.3, "SS"), (9.29, "S"), (8.0, "S"), (7.0, "A"), (6.5, "B"), (5.0, "C"), (4.0, "D"), (3.99, "F"), (0, "F")],
)
def test_rating_tier_thresholds(average, tier):
    assert rating_tier(average) == tier


def test_compute_ledger_stats():
    stats = compute_ledger_stats({"a": 10.0, "b": 5.0})
    assert stats.average_score == 7.5
    assert stats.total_points == 91 + 36
    assert stats.vote_count == 2


def test_compute_ledger_stats_empty():
    assert compute_ledger_stats({}) == LedgerStats(average_score=0.0, total_points=0.0, vote_count=0)


def test_rank_entries_breaks_ties_on_points():
    ranked = rank_entries(
        [
            ("few", compute_ledger_stats({"a": 8.0})),
            ("many", compute_ledger_stats({"a": 8.0, "b": 8.0})),
            ("top", compute_ledger_stats({"a": 9.5})),
        ]
    )
    assert [r.item_id for r in ranked] == ["top", "many", "few"]
    assert [r.rank for r in ranked] == [1, 2, 3]
    assert ranked[0].tier == "SS"


def test_rank_entries_full_tie_keeps_input_order():
    stats = compute_ledger_stats({"a": 6.0})
    ranked = rank_entries([("x", stats), ("y", stats)])
    assert [r.item_id for r in ranked] == ["x", "y"]
    assert [r.rank for r in ranked] == [1, 2]


def test_summarize_voter_ignores_deleted_items():
    ledgers = [
        LedgerRecord(ledger_id=1, item_id="a", votes={"v1": 8.0, "v2": 3.0}),
        LedgerRecord(ledger_id=2, item_id="gone", votes={"v1": 1.0}),
        LedgerRecord(ledger_id=3, item_id="b", votes={"v2": 5.0}),
    ]
    stats = summarize_voter("v1", ledgers, ["a", "b", "c"])
    assert stats.total_ratings == 1
    assert stats.total_unrated == 2
    assert stats.average_score == 8.0
    assert stats.distribution["8"] == 1
    assert sum(stats.distribution.values()) == 1
    assert len(stats.distribution) == 20


def test_expected_confirmation_format():
    assert expected_confirmation(2, 5) == "DELETE 5 VOTERS WITH AT MOST 2 VOTES"

# ============================================================
# RatingAggregator (through the service's wiring)
# ============================================================


@pytest.mark.asyncio
async def test_revote_overwrites_instead_of_counting_twice(service, backend):
    await service.ratings.record_vote("a", "v1", 4.0)
    await service.ratings.record_vote("a", "v1", 9.0)

    (ledger,) = backend.ledgers.for_item("a")
    assert ledger.votes == {"v1": 9.0}
    assert ledger.vote_count == 1
    assert ledger.average_score == 9.0
    assert ledger.total_points == 78


@pytest.mark.asyncio
async def test_record_vote_rejects_invalid_score(service, backend):
    with pytest.raises(InvalidScore):
        await service.ratings.record_vote("a", "v1", 7.3)
    assert backend.ledgers.ledgers == {}


@pytest.mark.asyncio
async def test_stats_recomputed_from_full_vote_map(service, backend):
    await service.ratings.record_vote("a", "v1", 10.0)
    await service.ratings.record_vote("a", "v2", 6.0)
    await service.ratings.record_vote("a", "v3", 2.0)

    (ledger,) = backend.ledgers.for_item("a")
    assert ledger.vote_count == 3
    assert ledger.average_score == 6.0
    assert ledger.total_points == 91 + 45 + 15


@pytest.mark.asyncio
async def test_duplicate_ledgers_merge_on_next_vote(service, backend):
    # Two clients both created the first ledger
    await backend.ledgers.create_ledger("a", {"v1": 8.0}, 8.0, 66, 1)
    await backend.ledgers.create_ledger("a", {"v2": 4.0}, 4.0, 28, 1)
    assert len(await service.ratings.find_duplicate_ledgers()) == 1

    await service.ratings.record_vote("a", "v3", 6.0)

    ledgers = backend.ledgers.for_item("a")
    assert len(ledgers) == 1
    assert ledgers[0].ledger_id == 1
    assert ledgers[0].votes == {"v1": 8.0, "v2": 4.0, "v3": 6.0}
    assert ledgers[0].vote_count == 3
    assert await service.ratings.find_duplicate_ledgers() == []


@pytest.mark.asyncio
async def test_withdraw_last_vote_deletes_ledger(service, backend):
    await service.ratings.record_vote("a", "v1", 5.0)
    assert await service.ratings.withdraw_vote("a", "v1") is True
    assert backend.ledgers.for_item("a") == []
    assert await service.ratings.withdraw_vote("a", "v1") is False


@pytest.mark.asyncio
async def test_failed_ledger_delete_is_reported(service, backend, monkeypatch: pytest.MonkeyPatch):
    await service.ratings.record_vote("a", "v1", 5.0)

    async def broken_delete(ledger_id):
        raise RemoteUnavailable("connection reset")

    monkeypatch.setattr(backend.ledgers, "delete_ledger", broken_delete)

    with pytest.raises(RemoteUnavailable):
        await service.ratings.withdraw_vote("a", "v1")
    assert backend.ledgers.for_item("a")[0].votes == {"v1": 5.0}
    assert await service.withdraw_vote("a", "v1") is None


@pytest.mark.asyncio
async def test_failed_duplicate_delete_is_reported(service, backend, monkeypatch: pytest.MonkeyPatch):
    await backend.ledgers.create_ledger("a", {"v1": 8.0}, 8.0, 66, 1)
    await backend.ledgers.create_ledger("a", {"v2": 4.0}, 4.0, 28, 1)

    async def broken_delete(ledger_id):
        raise RemoteUnavailable("connection reset")

    monkeypatch.setattr(backend.ledgers, "delete_ledger", broken_delete)

    # v2 survives in the duplicate, so the withdrawal must not look done
    with pytest.raises(RemoteUnavailable):
        await service.ratings.withdraw_vote("a", "v2")
    assert len(backend.ledgers.for_item("a")) == 2


@pytest.mark.asyncio
async def test_vote_recreates_ledger_deleted_after_read(service, backend, monkeypatch: pytest.MonkeyPatch):
    await service.ratings.record_vote("a", "v1", 5.0)
    find_ledgers = backend.ledgers.find_ledgers

    async def find_then_lose(item_id):
        found = await find_ledgers(item_id)
        # Another client removes the ledger before our update lands
        backend.ledgers.ledgers.clear()
        return found

    monkeypatch.setattr(backend.ledgers, "find_ledgers", find_then_lose)

    ledger = await service.ratings.record_vote("a", "v2", 9.0)

    (stored,) = backend.ledgers.for_item("a")
    assert stored.ledger_id == ledger.ledger_id
    assert stored.votes == {"v1": 5.0, "v2": 9.0}
    assert stored.vote_count == 2


@pytest.mark.asyncio
async def test_withdraw_voter_updates_and_deletes(service, backend):
    await service.ratings.record_vote("a", "v1", 5.0)
    await service.ratings.record_vote("a", "v2", 7.0)
    await service.ratings.record_vote("b", "v1", 9.0)

    result = await service.ratings.withdraw_voter("v1")

    assert result.ok
    assert (result.updated, result.deleted) == (1, 1)
    (ledger,) = backend.ledgers.for_item("a")
    assert ledger.votes == {"v2": 7.0}
    assert ledger.average_score == 7.0
    assert backend.ledgers.for_item("b") == []


@pytest.mark.asyncio
async def test_low_vote_cleanup_requires_exact_confirmation(service, backend):
    await service.ratings.record_vote("a", "casual", 5.0)
    await service.ratings.record_vote("a", "regular", 6.0)
    await service.ratings.record_vote("b", "regular", 7.0)

    report = await service.ratings.analyze_low_vote_voters(1)
    assert report.voters == {"casual": 1}
    assert report.confirmation == "DELETE 1 VOTERS WITH AT MOST 1 VOTES"

    with pytest.raises(ConfirmationRequired) as exc_info:
        await service.ratings.cleanup_low_vote_voters(1, "delete 1 voters with at most 1 votes")
    assert exc_info.value.expected == report.confirmation
    # Nothing was written
    assert "casual" in backend.ledgers.for_item("a")[0].votes

    removed = await service.ratings.cleanup_low_vote_voters(1, report.confirmation)
    assert removed == 1
    assert backend.ledgers.for_item("a")[0].votes == {"regular": 6.0}


@pytest.mark.asyncio
async def test_low_vote_cleanup_with_no_candidates(service):
    await service.ratings.record_vote("a", "v1", 5.0)
    await service.ratings.record_vote("b", "v1", 5.0)
    token = (await service.ratings.analyze_low_vote_voters(1)).confirmation
    assert token == "DELETE 0 VOTERS WITH AT MOST 1 VOTES"
    assert await service.ratings.cleanup_low_vote_voters(1, token) == 0
