"""In-memory working set of the records shown on the current page."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Optional, Tuple

from .models import Record


class WorkingSet:
    """Holds the current page of records and merges confirmed changes into it."""

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._records: Tuple[Record, ...] = tuple(records)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    def replace_all(self, records: Iterable[Record]) -> None:
        self._records = tuple(records)

    def get(self, record_id: str) -> Optional[Record]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def patch_one(self, record_id: str, **fields: Any) -> bool:
        """Merge ``fields`` into the record with ``record_id``.

        Returns False when the record is no longer part of the working set.
        """

        unknown = set(fields) - set(Record.model_fields)
        if unknown:
            raise ValueError(f"Unknown record fields: {', '.join(sorted(unknown))}")

        for index, record in enumerate(self._records):
            if record.id != record_id:
                continue
            patched = record.model_copy(update=fields)
            self._records = self._records[:index] + (patched,) + self._records[index + 1 :]
            return True
        return False

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["WorkingSet"]
