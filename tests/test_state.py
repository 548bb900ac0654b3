import json
import logging
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import NOW, make_candidate, make_record
from devto_feed import state as state_module
from devto_feed.errors import StoreReadError, StoreWriteError
from devto_feed.models import Author
from devto_feed.state import StateStore, parse_tag_list, parse_timestamp, record_key


# --- Identity ---


def test_record_key_prefers_numeric_id() -> None:
    candidate = make_candidate(id=42, canonical_url="https://dev.to/x")
    assert record_key(candidate) == "42"


def test_record_key_falls_back_to_canonical_url() -> None:
    candidate = make_candidate(id=None, canonical_url="https://dev.to/alice/post")
    assert record_key(candidate) == "https://dev.to/alice/post"


def test_record_key_none_without_id_or_canonical_url() -> None:
    candidate = make_candidate(id=None, canonical_url=None, url="https://dev.to/direct")
    assert record_key(candidate) is None


def test_record_key_zero_id_is_still_an_identity() -> None:
    assert record_key(make_candidate(id=0)) == "0"


# --- Merge ---


def test_merge_builds_stored_record_from_candidate() -> None:
    store = StateStore()
    merged = store.merge([make_candidate(id=7, tag_list=" python ,, webdev,python ,")], NOW)

    assert merged == 1
    record = store.items["7"]
    assert record.tag_list == ["python", "webdev", "python"]
    assert record.user_name == "Alice"
    assert record.user_username == "alice"
    assert record.last_seen == "2024-05-10T12:00:00+00:00"


def test_merge_defaults_missing_counters_and_author() -> None:
    store = StateStore()
    store.merge(
        [make_candidate(public_reactions_count=None, positive_reactions_count=None, user=None, tag_list=None)],
        NOW,
    )
    record = store.items["1"]
    assert record.public_reactions_count == 0
    assert record.positive_reactions_count == 0
    assert record.user_name is None and record.user_username is None
    assert record.tag_list == []


def test_merge_skips_candidates_without_identity(caplog: pytest.LogCaptureFixture) -> None:
    store = StateStore()
    merged = store.merge(
        [make_candidate(id=None, canonical_url=None, title="Orphan"), make_candidate(id=2)],
        NOW,
    )
    assert merged == 1
    assert list(store.items) == ["2"]
    assert "Orphan" in caplog.text


def test_merge_uses_injected_logger(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.injected")
    store = StateStore(logger=logger)
    with caplog.at_level(logging.WARNING, logger="tests.injected"):
        store.merge([make_candidate(id=None, canonical_url=None)], NOW)
    assert [r.name for r in caplog.records] == ["tests.injected"]


def test_merge_overwrites_existing_record_entirely() -> None:
    store = StateStore()
    store.merge([make_candidate(id=5, description="old", user=Author(name="A", username="a"))], NOW)
    store.merge([make_candidate(id=5, description=None, user=None, public_reactions_count=300)], NOW)

    record = store.items["5"]
    assert record.description is None
    assert record.user_name is None
    assert record.public_reactions_count == 300


def test_merge_later_duplicate_in_batch_wins() -> None:
    store = StateStore()
    merged = store.merge([make_candidate(id=9, title="first"), make_candidate(id=9, title="second")], NOW)
    assert merged == 2
    assert len(store) == 1
    assert store.items["9"].title == "second"


def test_merge_is_idempotent_for_same_now() -> None:
    candidates = [make_candidate(id=1), make_candidate(id=2, canonical_url=None)]
    store = StateStore()
    store.merge(candidates, NOW)
    snapshot = {key: record.to_dict() for key, record in store.items.items()}

    store.merge(candidates, NOW)
    assert {key: record.to_dict() for key, record in store.items.items()} == snapshot


def test_remerge_with_later_now_only_changes_last_seen() -> None:
    candidates = [make_candidate(id=1), make_candidate(id=None, canonical_url="https://dev.to/c")]
    store = StateStore()
    store.merge(candidates, NOW)
    before = {key: record.to_dict() for key, record in store.items.items()}

    later = NOW + timedelta(hours=6)
    store.merge(candidates, later)
    for key, record in store.items.items():
        after = record.to_dict()
        assert after.pop("last_seen") == later.isoformat()
        expected = dict(before[key])
        expected.pop("last_seen")
        assert after == expected


def test_merge_empty_batch_is_noop() -> None:
    store = StateStore({"1": make_record(last_seen="2024-05-01T00:00:00+00:00")})
    assert store.merge([], NOW) == 0
    assert store.items["1"].last_seen == "2024-05-01T00:00:00+00:00"


def test_parse_tag_list() -> None:
    assert parse_tag_list(None) == []
    assert parse_tag_list("") == []
    assert parse_tag_list(" a, b ,,c ") == ["a", "b", "c"]


def test_parse_timestamp_requires_offset() -> None:
    assert parse_timestamp("2024-05-10T12:00:00Z") == NOW
    assert parse_timestamp("2024-05-10T14:00:00+02:00") == NOW
    assert parse_timestamp("2024-05-10T12:00:00") is None
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None


# --- Retention ---


def _seen(delta: timedelta) -> str:
    return (NOW - delta).isoformat()


def test_prune_drops_records_older_than_max_days() -> None:
    store = StateStore(
        {
            "old": make_record(key="old", last_seen=_seen(timedelta(days=8))),
            "recent": make_record(key="recent", last_seen=_seen(timedelta(days=6))),
        }
    )
    removed = store.prune(NOW, max_days=7, max_items=100)
    assert removed == 1
    assert list(store.items) == ["recent"]


def test_prune_keeps_record_exactly_at_cutoff() -> None:
    store = StateStore({"edge": make_record(key="edge", last_seen=_seen(timedelta(days=7)))})
    store.prune(NOW, max_days=7, max_items=100)
    assert "edge" in store.items


def test_prune_treats_unparsable_last_seen_as_expired() -> None:
    # Unparsable timestamps never survive the age cutoff, even with room under the cap.
    store = StateStore(
        {
            "broken": make_record(key="broken", last_seen="yesterday"),
            "naive": make_record(key="naive", last_seen="2024-05-10T11:00:00"),
            "ok": make_record(key="ok", last_seen=_seen(timedelta(hours=1))),
        }
    )
    store.prune(NOW, max_days=7, max_items=100)
    assert list(store.items) == ["ok"]


def test_prune_cap_evicts_least_recently_seen() -> None:
    store = StateStore(
        {
            "a": make_record(key="a", last_seen=_seen(timedelta(days=3))),
            "b": make_record(key="b", last_seen=_seen(timedelta(days=2))),
            "c": make_record(key="c", last_seen=_seen(timedelta(days=1))),
        }
    )
    removed = store.prune(NOW, max_days=7, max_items=2)
    assert removed == 1
    assert sorted(store.items) == ["b", "c"]


def test_prune_cap_zero_empties_store() -> None:
    store = StateStore({"a": make_record(key="a")})
    store.prune(NOW, max_days=7, max_items=0)
    assert len(store) == 0


def test_prune_applies_age_cutoff_before_cap() -> None:
    store = StateStore(
        {
            "expired": make_record(key="expired", last_seen=_seen(timedelta(days=30))),
            "a": make_record(key="a", last_seen=_seen(timedelta(days=2))),
            "b": make_record(key="b", last_seen=_seen(timedelta(days=1))),
        }
    )
    store.prune(NOW, max_days=7, max_items=2)
    assert sorted(store.items) == ["a", "b"]


# --- Durable store ---


def test_load_missing_file_returns_empty_store(tmp_path: Path) -> None:
    store = StateStore.load(tmp_path / "missing.json")
    assert len(store) == 0


def test_save_then_load_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "dir" / "state.json"
    store = StateStore()
    store.merge(
        [
            make_candidate(id=10),
            make_candidate(id=9, edited_at="2024-05-09T00:00:00Z", description=None),
            make_candidate(id=None, canonical_url="https://dev.to/zed/post", user=Author(name="Zed")),
        ],
        NOW,
    )
    store.save(path)

    loaded = StateStore.load(path)
    assert loaded.items == store.items


def test_save_writes_items_sorted_by_key(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    store = StateStore(
        {
            "https://dev.to/a": make_record(key="https://dev.to/a", id=None),
            "9": make_record(key="9", id=9),
            "10": make_record(key="10", id=10),
        }
    )
    store.save(path)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert [item["key"] for item in payload["items"]] == ["10", "9", "https://dev.to/a"]
    assert payload["items"][0]["last_seen"] == NOW.isoformat()
    assert set(payload["items"][0]) == {
        "key",
        "id",
        "canonical_url",
        "url",
        "title",
        "description",
        "published_timestamp",
        "published_at",
        "edited_at",
        "public_reactions_count",
        "positive_reactions_count",
        "tag_list",
        "user_name",
        "user_username",
        "last_seen",
    }


def test_save_uses_load_path_by_default(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    store = StateStore.load(path)
    store.merge([make_candidate()], NOW)
    store.save()
    assert path.exists()


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        '{"items": {}}',
        '{"items": [{"key": "1", "title": "t"}]}',
        '{"items": [{"key": "1", "title": "t", "last_seen": "x", "public_reactions_count": "3",'
        ' "positive_reactions_count": 1, "tag_list": []}]}',
    ],
)
def test_load_rejects_corrupt_state(tmp_path: Path, content: str) -> None:
    path = tmp_path / "state.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(StoreReadError):
        StateStore.load(path)


def test_load_accepts_missing_optional_fields(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps(
            {
                "items": [
                    {
                        "key": "https://dev.to/x",
                        "title": "t",
                        "last_seen": NOW.isoformat(),
                        "public_reactions_count": 3,
                        "positive_reactions_count": 1,
                        "tag_list": ["a"],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    record = StateStore.load(path).items["https://dev.to/x"]
    assert record.id is None
    assert record.canonical_url is None


def test_save_failure_raises_store_write_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = StateStore({"1": make_record()})
    with pytest.raises(StoreWriteError):
        store.save(blocker / "state.json")


def test_failed_replace_leaves_previous_state_intact(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "state.json"
    StateStore({"1": make_record()}).save(path)
    original = path.read_text(encoding="utf-8")

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(state_module.os, "replace", boom)
    with pytest.raises(StoreWriteError):
        StateStore({"2": make_record(key="2", id=2)}).save(path)

    assert path.read_text(encoding="utf-8") == original
    assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]
