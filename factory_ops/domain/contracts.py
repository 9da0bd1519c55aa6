from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class RequestLineInput:
    material_id: int
    quantity: int


@dataclass(frozen=True)
class PurchaseRequestCreateInput:
    description: str
    requester_id: int
    lines: List[RequestLineInput] = field(default_factory=list)


@dataclass(frozen=True)
class BudgetLineInput:
    material_id: int
    quantity: int
    unit_price: float
    lead_time_days: int | None = None


@dataclass(frozen=True)
class NotificationResult:
    sent: bool
    error: str | None = None

    @classmethod
    def skipped(cls, reason: str) -> "NotificationResult":
        return cls(sent=False, error=reason)


@dataclass(frozen=True)
class DispatchResult:
    quotation_id: int
    token: str
    notification: NotificationResult


@dataclass(frozen=True)
class ReceiptResult:
    note_id: int
    state: str
    notification: NotificationResult | None = None
