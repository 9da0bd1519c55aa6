from .budget_repository import BudgetRepository
from .delivery_note_repository import DeliveryNoteRepository
from .purchase_request_repository import PurchaseRequestRepository
from .quotation_repository import QuotationRepository
from .reference_repository import ReferenceRepository
from .status_event_repository import StatusEventRepository

__all__ = [
    "BudgetRepository",
    "DeliveryNoteRepository",
    "PurchaseRequestRepository",
    "QuotationRepository",
    "ReferenceRepository",
    "StatusEventRepository",
]
