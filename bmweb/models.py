"""Records handed between the data layer and the request handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, runtime_checkable


@dataclass
class Data:
    """One row of traffic: bytes down/up over ``dr`` seconds ending at ``ts``."""

    ts: int = 0
    dr: int = 0
    dl: int = 0
    ul: int = 0
    ad: Optional[str] = None
    hs: Optional[str] = None

    def combined(self) -> int:
        """Total traffic in both directions."""
        return self.dl + self.ul


@dataclass
class Summary:
    """Traffic totals for the current day, month, year and all time."""

    today: Data = field(default_factory=Data)
    month: Data = field(default_factory=Data)
    year: Data = field(default_factory=Data)
    total: Data = field(default_factory=Data)
    host_names: Optional[list[str]] = None
    ts_min: int = 0


@runtime_checkable
class DataSource(Protocol):
    """Where the request handlers get their traffic figures from."""

    def get_monitor_values(
        self, ts: int, host: Optional[str], adapter: Optional[str]
    ) -> list[Data]:
        """Rows with a timestamp at or after ``ts``, newest first."""
        ...

    def get_query_values(
        self,
        start: int,
        end: int,
        group: int,
        host: Optional[str],
        adapter: Optional[str],
    ) -> list[Data]:
        """Rows between ``start`` and ``end`` grouped as ``group`` asks."""
        ...

    def get_sync_values(self, ts: int) -> list[Data]:
        """Local rows newer than ``ts``, for another machine to copy."""
        ...

    def get_summary_values(
        self, host: Optional[str], adapter: Optional[str]
    ) -> Summary:
        """Day, month, year and all-time totals."""
        ...

    def get_dump_values(self) -> Iterable[Data]:
        """Every stored row, for export."""
        ...