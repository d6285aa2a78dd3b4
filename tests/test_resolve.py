from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from chatcrawl import resolve as resolve_module
from chatcrawl.aggregate import AggregateRecord, Metadata, rank_records
from chatcrawl.cache.directory import get_cached_metadata, store_metadata
from chatcrawl.errors import DirectoryLookupError
from chatcrawl.references import InviteHash, Mention, PublicName
from chatcrawl.resolve import resolve


class _FakeDirectory:
    def __init__(self, entries=None, failures=None):
        self.entries = dict(entries or {})
        self.failures = {key: list(value) for key, value in (failures or {}).items()}
        self.calls: list[str] = []

    async def lookup(self, identifier: str):
        self.calls.append(identifier)
        pending = self.failures.get(identifier)
        if pending:
            raise pending.pop(0)
        return self.entries.get(identifier)


@pytest.fixture(autouse=True)
def _no_retry_wait(monkeypatch):
    monkeypatch.setattr(resolve_module, "_retry_wait", lambda exc, attempt: 0.0)


def _records():
    return rank_records(
        [
            AggregateRecord(PublicName("alpha"), count=7),
            AggregateRecord(InviteHash("abc123"), count=9),
            AggregateRecord(Mention("bob"), count=3),
            AggregateRecord(PublicName("ghost"), count=5),
        ]
    )


def test_resolves_found_records_in_ranked_order() -> None:
    directory = _FakeDirectory(
        {
            "alpha": Metadata("Alpha News", "Channel"),
            "bob": Metadata("Bob", "User"),
        }
    )
    records = _records()
    resolved = asyncio.run(resolve(records, directory))

    assert [r.key for r in resolved] == ["alpha", "bob"]
    assert resolved[0].metadata == Metadata("Alpha News", "Channel")
    assert [r.count for r in resolved] == [7, 3]
    assert directory.calls == ["alpha", "ghost", "bob"]


def test_invite_hashes_are_never_looked_up() -> None:
    directory = _FakeDirectory({"abc123": Metadata("Secret", "Group")})
    resolved = asyncio.run(resolve(_records(), directory))

    assert "abc123" not in directory.calls
    assert all(r.reference.resolvable for r in resolved)


def test_not_found_record_is_dropped_but_keeps_its_count() -> None:
    records = _records()
    resolved = asyncio.run(resolve(records, _FakeDirectory()))

    assert resolved == []
    ghost = next(r for r in records if r.key == "ghost")
    assert ghost.count == 5
    assert ghost.metadata is None


def test_failed_lookup_does_not_abort_the_batch() -> None:
    directory = _FakeDirectory(
        {"bob": Metadata("Bob", "User")},
        failures={"alpha": [DirectoryLookupError("rpc_error", identifier="alpha")]},
    )
    resolved = asyncio.run(resolve(_records(), directory, jobs=3))

    assert [r.key for r in resolved] == ["bob"]


def test_transient_failure_is_retried_when_allowed() -> None:
    directory = _FakeDirectory(
        {"alpha": Metadata("Alpha", "Group")},
        failures={
            "alpha": [DirectoryLookupError("flood_wait", retry_after=2)],
        },
    )
    records = [AggregateRecord(PublicName("alpha"), count=1)]

    assert asyncio.run(resolve(records, directory, retries=0)) == []
    assert directory.calls == ["alpha"]

    records = [AggregateRecord(PublicName("alpha"), count=1)]
    directory.failures["alpha"] = [DirectoryLookupError("network")]
    resolved = asyncio.run(resolve(records, directory, retries=2))
    assert [r.key for r in resolved] == ["alpha"]
    assert directory.calls == ["alpha", "alpha", "alpha"]


def test_permanent_failure_is_not_retried() -> None:
    directory = _FakeDirectory(
        {"alpha": Metadata("Alpha", "Group")},
        failures={"alpha": [DirectoryLookupError("rpc_error")]},
    )
    records = [AggregateRecord(PublicName("alpha"), count=1)]
    assert asyncio.run(resolve(records, directory, retries=3)) == []
    assert directory.calls == ["alpha"]


def test_parallel_lookups_keep_ranked_order() -> None:
    class _SlowFirst(_FakeDirectory):
        async def lookup(self, identifier):
            if identifier == "alpha":
                await asyncio.sleep(0.05)
            return await super().lookup(identifier)

    directory = _SlowFirst(
        {
            "alpha": Metadata("Alpha", "Channel"),
            "bob": Metadata("Bob", "User"),
            "ghost": Metadata("Ghost", "Group"),
        }
    )
    resolved = asyncio.run(resolve(_records(), directory, jobs=4))
    assert [r.key for r in resolved] == ["alpha", "ghost", "bob"]


def test_cache_short_circuits_lookups(tmp_path) -> None:
    store_metadata("alpha", Metadata("Cached Alpha", "Channel"), root=tmp_path)
    directory = _FakeDirectory({"bob": Metadata("Bob", "User")})
    records = [
        AggregateRecord(PublicName("alpha"), count=2),
        AggregateRecord(Mention("bob"), count=1),
        AggregateRecord(PublicName("ghost"), count=1),
    ]
    resolved = asyncio.run(
        resolve(records, directory, use_cache=True, cache_root=tmp_path)
    )

    assert [r.metadata.name for r in resolved] == ["Cached Alpha", "Bob"]
    assert directory.calls == ["bob", "ghost"]
    assert get_cached_metadata("bob", root=tmp_path) == Metadata("Bob", "User")
    assert get_cached_metadata("ghost", root=tmp_path) is None


def test_refresh_cache_bypasses_cached_entries(tmp_path) -> None:
    store_metadata("alpha", Metadata("Old", "Channel"), root=tmp_path)
    directory = _FakeDirectory({"alpha": Metadata("New", "Channel")})
    records = [AggregateRecord(PublicName("alpha"), count=1)]
    resolved = asyncio.run(
        resolve(
            records,
            directory,
            use_cache=True,
            refresh_cache=True,
            cache_root=tmp_path,
        )
    )

    assert resolved[0].metadata.name == "New"
    assert get_cached_metadata("alpha", root=tmp_path).name == "New"
    assert (
        get_cached_metadata("alpha", ttl=timedelta(0), root=tmp_path) is None
    )


def test_unexpected_lookup_error_only_drops_that_record() -> None:
    directory = _FakeDirectory(
        {"alpha": Metadata("Alpha", "Channel"), "beta": Metadata("Beta", "Group")},
        failures={"alpha": [ConnectionResetError("connection reset by peer")]},
    )
    records = [
        AggregateRecord(PublicName("alpha"), count=2),
        AggregateRecord(PublicName("beta"), count=1),
    ]

    resolved = asyncio.run(resolve(records, directory, jobs=2, retries=2))

    assert [r.key for r in resolved] == ["beta"]
    assert sorted(directory.calls) == ["alpha", "beta"]


def test_unusable_cache_root_falls_back_to_lookups(tmp_path) -> None:
    cache_root = tmp_path / "blocked"
    cache_root.write_text("not a directory", encoding="utf-8")
    directory = _FakeDirectory(
        {"alpha": Metadata("Alpha", "Channel"), "beta": Metadata("Beta", "Group")}
    )
    records = [
        AggregateRecord(PublicName("alpha"), count=2),
        AggregateRecord(PublicName("beta"), count=1),
    ]

    resolved = asyncio.run(
        resolve(records, directory, jobs=2, use_cache=True, cache_root=cache_root)
    )

    assert [r.key for r in resolved] == ["alpha", "beta"]
    assert cache_root.read_text(encoding="utf-8") == "not a directory"
