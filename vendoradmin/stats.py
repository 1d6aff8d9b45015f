"""Summary counts displayed above the record grid."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import Record, Role


@dataclass(frozen=True)
class ConsoleStats:
    total_on_server: int
    vendor_count: int
    frozen_count: int


def derive_stats(records: Iterable[Record], total_on_server: int) -> ConsoleStats:
    """Count vendors and frozen records on the loaded page.

    ``total_on_server`` comes from the pagination state since the working set
    only ever holds a single page.
    """

    vendor_count = frozen_count = 0
    for record in records:
        if record.role is Role.VENDOR:
            vendor_count += 1
        if record.is_frozen:
            frozen_count += 1
    return ConsoleStats(
        total_on_server=total_on_server,
        vendor_count=vendor_count,
        frozen_count=frozen_count,
    )


__all__ = ["ConsoleStats", "derive_stats"]
