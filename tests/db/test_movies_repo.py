"""Tests for RankedCollectionStore CRUD and rank maintenance."""
from __future__ import annotations

import pytest
from sqlalchemy import event

from moviepoa.db.engine import get_engine, get_scoped_session, init_engine_once, reset_for_tests
from moviepoa.db.repositories import (
    MAX_RANK,
    MovieNotFoundError,
    MovieValidationError,
    RankConflictError,
    RankedCollectionStore,
    StorageFaultError,
    users_repo,
)
from moviepoa.db.repositories import movies_repo


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("DATABASE_FILE", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def store():
    return RankedCollectionStore(get_scoped_session())


@pytest.fixture
def owner():
    return users_repo.create_user("owner@example.com", "hash").id


def _ranked(store, owner_id):
    return {m.title: m.rank for m in store.list_ranked(owner_id)}


def _assert_invariants(store, owner_id):
    ranks = [m.rank for m in store.list(owner_id) if m.rank is not None]
    assert len(ranks) == len(set(ranks))
    assert all(1 <= r <= MAX_RANK for r in ranks)


def test_create_without_rank_is_unranked(store, owner):
    movie = store.create(owner, {"title": "  Heat  ", "release_year": 1995})

    assert movie.id is not None
    assert movie.title == "Heat"
    assert movie.rank is None
    assert movie.created_at is not None
    assert store.list_ranked(owner) == []


def test_create_requires_title(store, owner):
    with pytest.raises(MovieValidationError) as excinfo:
        store.create(owner, {"title": "   "})
    assert excinfo.value.errors == ["title_required"]
    assert store.count(owner) == 0


def test_create_rejects_out_of_range_rank(store, owner):
    with pytest.raises(MovieValidationError):
        store.create(owner, {"title": "Alien", "rank": MAX_RANK + 1})


def test_create_at_taken_rank_shifts_existing(store, owner):
    for rank in (3, 4, 5):
        store.create(owner, {"title": f"m{rank}", "rank": rank})

    store.create(owner, {"title": "new", "rank": 4})

    assert _ranked(store, owner) == {"m3": 3, "new": 4, "m4": 5, "m5": 6}


def test_create_at_rank_one_truncates_rank_hundred(store, owner):
    store.create(owner, {"title": "tail", "rank": MAX_RANK})
    store.create(owner, {"title": "mid", "rank": 50})

    store.create(owner, {"title": "head", "rank": 1})

    assert _ranked(store, owner) == {"head": 1, "mid": 51}
    assert store.count(owner) == 3
    _assert_invariants(store, owner)


def test_list_orders_ranked_then_unranked_by_title(store, owner):
    store.create(owner, {"title": "Zodiac"})
    store.create(owner, {"title": "Brazil", "rank": 2})
    store.create(owner, {"title": "Amelie"})
    store.create(owner, {"title": "Ran", "rank": 1})

    titles = [m.title for m in store.list(owner)]

    assert titles == ["Ran", "Brazil", "Amelie", "Zodiac"]


def test_get_is_scoped_to_owner(store, owner):
    other = users_repo.create_user("other@example.com", "hash").id
    theirs = store.create(other, {"title": "Theirs"})

    with pytest.raises(MovieNotFoundError):
        store.get(owner, theirs.id)
    with pytest.raises(MovieNotFoundError):
        store.update(owner, theirs.id, {"title": "Mine now"})
    with pytest.raises(MovieNotFoundError):
        store.set_rank(owner, theirs.id, 1)
    with pytest.raises(MovieNotFoundError):
        store.delete(owner, theirs.id)
    assert store.get(other, theirs.id).title == "Theirs"


def test_writes_never_touch_other_owner(store, owner):
    other = users_repo.create_user("other@example.com", "hash").id
    for rank in (1, 2, 3):
        store.create(other, {"title": f"o{rank}", "rank": rank})

    for rank in (1, 1, 2):
        store.create(owner, {"title": f"x{rank}", "rank": rank})

    assert _ranked(store, other) == {"o1": 1, "o2": 2, "o3": 3}


def test_update_merges_supplied_fields(store, owner):
    movie = store.create(owner, {"title": "Solaris", "release_year": 1972, "overview": "Space.", "rank": 3})

    updated = store.update(owner, movie.id, {"overview": "Ocean planet."})

    assert updated.title == "Solaris"
    assert updated.release_year == 1972
    assert updated.overview == "Ocean planet."
    assert updated.rank == 3


def test_update_moves_rank_up_and_shifts_others(store, owner):
    a = store.create(owner, {"title": "a", "rank": 4})
    store.create(owner, {"title": "b", "rank": 5})
    x = store.create(owner, {"title": "x", "rank": 6})

    store.update(owner, x.id, {"rank": 4})

    assert _ranked(store, owner) == {"x": 4, "a": 5, "b": 6}
    assert store.get(owner, a.id).rank == 5
    _assert_invariants(store, owner)


def test_update_moves_rank_down_leaves_gap(store, owner):
    x = store.create(owner, {"title": "x", "rank": 2})
    store.create(owner, {"title": "a", "rank": 5})

    store.update(owner, x.id, {"rank": 5})

    assert _ranked(store, owner) == {"x": 5, "a": 6}


def test_update_rank_none_unranks(store, owner):
    movie = store.create(owner, {"title": "Ran", "rank": 1})

    updated = store.update(owner, movie.id, {"rank": None})

    assert updated.rank is None
    assert store.list_ranked(owner) == []


def test_set_rank_same_rank_changes_nothing(store, owner):
    x = store.create(owner, {"title": "x", "rank": 4})
    store.create(owner, {"title": "y", "rank": 5})
    before = {m.id: m.updated_at for m in store.list(owner)}

    result = store.set_rank(owner, x.id, 4)

    assert result.rank == 4
    assert {m.id: m.updated_at for m in store.list(owner)} == before
    assert _ranked(store, owner) == {"x": 4, "y": 5}


def test_set_rank_assigns_unranked_movie(store, owner):
    store.create(owner, {"title": "a", "rank": 1})
    x = store.create(owner, {"title": "x"})

    store.set_rank(owner, x.id, 1)

    assert _ranked(store, owner) == {"x": 1, "a": 2}


def test_delete_does_not_compact(store, owner):
    ids = {}
    for rank in (3, 4, 5, 7):
        ids[rank] = store.create(owner, {"title": f"m{rank}", "rank": rank}).id

    assert store.delete(owner, ids[5]) is True

    assert sorted(_ranked(store, owner).values()) == [3, 4, 7]


def test_reorder_assigns_dense_ranks_and_unranks_rest(store, owner):
    a = store.create(owner, {"title": "a", "rank": 1})
    b = store.create(owner, {"title": "b", "rank": 2})
    c = store.create(owner, {"title": "c", "rank": 9})
    d = store.create(owner, {"title": "d"})

    ranked = store.reorder(owner, [d.id, b.id, a.id])

    assert [m.id for m in ranked] == [d.id, b.id, a.id]
    assert [m.rank for m in ranked] == [1, 2, 3]
    assert store.get(owner, c.id).rank is None


def test_reorder_rejects_unknown_ids(store, owner):
    a = store.create(owner, {"title": "a", "rank": 1})

    with pytest.raises(MovieNotFoundError):
        store.reorder(owner, [a.id, 9999])
    assert store.get(owner, a.id).rank == 1


def test_reorder_rejects_duplicates(store, owner):
    a = store.create(owner, {"title": "a"})
    with pytest.raises(MovieValidationError):
        store.reorder(owner, [a.id, a.id])


def test_unique_index_violation_surfaces_as_conflict(store, owner, monkeypatch):
    store.create(owner, {"title": "a", "rank": 1})
    monkeypatch.setattr(movies_repo, "make_rank_available", lambda *args, **kwargs: 0)

    with pytest.raises(RankConflictError):
        store.create(owner, {"title": "b", "rank": 1})
    assert store.count(owner) == 1


def test_repeated_inserts_at_top_keep_exactly_hundred_ranked(store, owner):
    a = store.create(owner, {"title": "A", "rank": 1})
    b = store.create(owner, {"title": "B", "rank": 1})
    assert store.get(owner, a.id).rank == 2
    assert store.get(owner, b.id).rank == 1

    for i in range(99):
        store.create(owner, {"title": f"M{i:03d}", "rank": 1})

    ranked = store.list_ranked(owner)
    assert [m.rank for m in ranked] == list(range(1, MAX_RANK + 1))
    assert store.get(owner, a.id).rank is None
    assert store.get(owner, b.id).rank == MAX_RANK
    assert store.count(owner) == 101
    _assert_invariants(store, owner)


def test_unknown_owner_is_storage_fault_not_rank_conflict(store):
    with pytest.raises(StorageFaultError) as excinfo:
        store.create(999, {"title": "Orphan"})

    assert "integrity" in str(excinfo.value)


def test_failure_after_cascade_rolls_back_shift(store, owner, monkeypatch):
    a = store.create(owner, {"title": "a", "rank": 1})
    b = store.create(owner, {"title": "b", "rank": 2})

    def broken_clock():
        raise RuntimeError("clock unavailable")

    monkeypatch.setattr(movies_repo, "utcnow", broken_clock)

    with pytest.raises(RuntimeError):
        store.create(owner, {"title": "new", "rank": 1})

    assert store.get(owner, a.id).rank == 1
    assert store.get(owner, b.id).rank == 2
    assert store.count(owner) == 2


@pytest.fixture
def begin_statements():
    seen = []

    def _capture(conn, cursor, statement, parameters, context, executemany):
        text = statement.strip().upper()
        if text.startswith("BEGIN"):
            seen.append(text)

    engine = get_engine()
    event.listen(engine, "before_cursor_execute", _capture)
    yield seen
    event.remove(engine, "before_cursor_execute", _capture)


def test_reads_use_deferred_begin_and_writes_take_write_lock(store, owner, begin_statements):
    movie = store.create(owner, {"title": "Ran", "rank": 1})
    assert begin_statements == ["BEGIN IMMEDIATE"]

    begin_statements.clear()
    store.list(owner)
    store.list_ranked(owner)
    store.get(owner, movie.id)
    store.count(owner)

    assert begin_statements == ["BEGIN"] * 4
