"""Records passed between the funding reader, orchestrator and report."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from ..errors import FundingError

CSV_SOURCE = "CSV"


class EntryStatus(str, Enum):
    PENDING = "pending"
    PLANNED = "planned"
    SKIPPED = "skipped"
    SENT = "sent"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class FundingEntry:
    address: str
    amount_wei: int
    source: str = CSV_SOURCE

    def __post_init__(self) -> None:
        if self.amount_wei < 0:
            raise ValueError("amount_wei must not be negative")

    @property
    def source_label(self) -> str:
        return f"[from {self.source}]"


@dataclass(frozen=True)
class FundingData:
    csv_data: tuple[FundingEntry, ...] = ()
    wallet_data: tuple[FundingEntry, ...] = ()

    @property
    def all_data(self) -> tuple[FundingEntry, ...]:
        return self.csv_data + self.wallet_data


@dataclass(frozen=True)
class PendingTransaction:
    tx_hash: str
    address: str
    amount_wei: int
    source_label: str
    index: int


@dataclass
class EntryOutcome:
    index: int
    address: str
    amount_wei: int
    source: str
    status: EntryStatus = EntryStatus.PENDING
    balance_before_wei: int | None = None
    tx_hash: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class FundingSummary:
    total: int = 0
    sent: int = 0
    skipped: int = 0
    confirmed: int = 0
    failed_to_send: int = 0
    failed_to_confirm: int = 0
    planned: int = 0
    outcomes: list[EntryOutcome] = field(default_factory=list)

    @property
    def successful(self) -> int:
        # a dry run counts planned transfers so the tally still covers every entry
        return self.confirmed + self.skipped + self.planned

    @property
    def failed(self) -> int:
        return self.failed_to_send + self.failed_to_confirm

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "sent": self.sent,
            "skipped": self.skipped,
            "confirmed": self.confirmed,
            "failed_to_send": self.failed_to_send,
            "failed_to_confirm": self.failed_to_confirm,
            "planned": self.planned,
        }


@dataclass
class RunResult:
    """Outcome of a top-level run: a summary, or the fatal error that stopped it."""

    summary: FundingSummary | None = None
    error: FundingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.summary is not None and self.summary.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
