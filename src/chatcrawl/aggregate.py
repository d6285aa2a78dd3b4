from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .references import LinkReference

ENTITY_KINDS = frozenset({"User", "Group", "Channel"})


@dataclass(frozen=True)
class Metadata:
    name: str
    kind: str

    def __post_init__(self) -> None:
        if self.kind not in ENTITY_KINDS:
            raise ValueError(f"Unknown entity kind: {self.kind}")

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.kind}


@dataclass
class AggregateRecord:
    reference: LinkReference
    count: int = 1
    metadata: Metadata | None = None

    @property
    def key(self) -> str:
        return self.reference.identifier.lower()

    def to_dict(self) -> dict:
        return {
            "reference": self.reference.to_dict(),
            "count": self.count,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


class Aggregator:
    """
    Counts references by lowercased identifier.

    Link-derived and mention-derived references with the same identifier share
    one record; the variant seen first is the one kept.
    """

    def __init__(self) -> None:
        self._records: dict[str, AggregateRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def record(self, reference: LinkReference) -> AggregateRecord:
        normalized = reference.normalized()
        existing = self._records.get(normalized.identifier)
        if existing is not None:
            existing.count += 1
            return existing
        created = AggregateRecord(reference=normalized)
        self._records[normalized.identifier] = created
        return created

    def snapshot(self) -> list[AggregateRecord]:
        return list(self._records.values())


def _rank_key(record: AggregateRecord) -> tuple[int, str]:
    return (-record.count, record.key)


def rank_records(records: Iterable[AggregateRecord]) -> list[AggregateRecord]:
    return sorted(records, key=_rank_key)
