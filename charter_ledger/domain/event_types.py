"""
Event type catalogue.

Responsibility:
    The closed set of accounting event types, with display metadata, the
    source document types each one is raised from, and whether it touches
    more than one company's books.

Architecture position:
    Ledger > Domain -- pure, no I/O.  The posting rule registry refuses to
    build unless every member of ``EventType`` has a rule.

Failure modes:
    - UnknownEventTypeError from ``parse_event_type`` for any other string.
"""

from dataclasses import dataclass
from enum import Enum

from charter_ledger.exceptions import UnknownEventTypeError


class EventType(str, Enum):
    OPENING_BALANCE = "OPENING_BALANCE"
    RECEIPT_ISSUED = "RECEIPT_ISSUED"
    RECEIPT_ISSUED_INTERCOMPANY = "RECEIPT_ISSUED_INTERCOMPANY"
    PROJECT_SERVICE_COMPLETED = "PROJECT_SERVICE_COMPLETED"
    EXPENSE_APPROVED = "EXPENSE_APPROVED"
    EXPENSE_PAID = "EXPENSE_PAID"
    EXPENSE_PAID_INTERCOMPANY = "EXPENSE_PAID_INTERCOMPANY"
    CAPEX_INCURRED = "CAPEX_INCURRED"
    INVENTORY_PURCHASE_RECORDED = "INVENTORY_PURCHASE_RECORDED"
    INVENTORY_CONSUMED = "INVENTORY_CONSUMED"
    MANAGEMENT_FEE_RECOGNIZED = "MANAGEMENT_FEE_RECOGNIZED"
    INTERCOMPANY_SETTLEMENT = "INTERCOMPANY_SETTLEMENT"
    PARTNER_PROFIT_ALLOCATION = "PARTNER_PROFIT_ALLOCATION"
    PARTNER_PAYMENT = "PARTNER_PAYMENT"


@dataclass(frozen=True)
class EventTypeMetadata:
    label: str
    description: str
    source_document_types: tuple[str, ...]
    is_multi_company: bool


EVENT_TYPE_METADATA: dict[EventType, EventTypeMetadata] = {
    EventType.OPENING_BALANCE: EventTypeMetadata(
        "Opening Balance", "Initial balances for a new fiscal year", (), False
    ),
    EventType.RECEIPT_ISSUED: EventTypeMetadata(
        "Receipt Issued", "Customer receipt with cash/bank inflow", ("receipt",), False
    ),
    EventType.RECEIPT_ISSUED_INTERCOMPANY: EventTypeMetadata(
        "Intercompany Receipt",
        "Customer paid into another company's bank account",
        ("receipt",),
        True,
    ),
    EventType.PROJECT_SERVICE_COMPLETED: EventTypeMetadata(
        "Service Completed",
        "Revenue recognition when the service is delivered",
        ("invoice", "project"),
        False,
    ),
    EventType.EXPENSE_APPROVED: EventTypeMetadata(
        "Expense Approved", "Accrual recognition when an expense is approved", ("expense",), False
    ),
    EventType.EXPENSE_PAID: EventTypeMetadata(
        "Expense Paid", "Cash outflow when an expense is paid", ("expense_payment",), False
    ),
    EventType.EXPENSE_PAID_INTERCOMPANY: EventTypeMetadata(
        "Intercompany Expense Payment",
        "Expense paid from another company's bank account",
        ("expense_payment",),
        True,
    ),
    EventType.CAPEX_INCURRED: EventTypeMetadata(
        "Capital Expenditure", "Asset acquisition and capitalization", ("expense",), False
    ),
    EventType.INVENTORY_PURCHASE_RECORDED: EventTypeMetadata(
        "Inventory Purchase",
        "Stock bought and paid from bank, cash or petty cash",
        ("inventory_purchase",),
        False,
    ),
    EventType.INVENTORY_CONSUMED: EventTypeMetadata(
        "Inventory Consumed",
        "Stock used on projects moved to expense",
        ("inventory_consumption",),
        False,
    ),
    EventType.MANAGEMENT_FEE_RECOGNIZED: EventTypeMetadata(
        "Management Fee", "Intercompany management fee recognition", (), True
    ),
    EventType.INTERCOMPANY_SETTLEMENT: EventTypeMetadata(
        "Intercompany Settlement", "Settlement of intercompany balances", (), True
    ),
    EventType.PARTNER_PROFIT_ALLOCATION: EventTypeMetadata(
        "Profit Allocation", "Allocation of profits to partners by ownership", (), False
    ),
    EventType.PARTNER_PAYMENT: EventTypeMetadata(
        "Partner Payment", "Distribution of allocated profits to partners", (), False
    ),
}


def parse_event_type(value: "EventType | str") -> EventType:
    """Return the catalogue member for ``value`` or raise UnknownEventTypeError."""
    if isinstance(value, EventType):
        return value
    try:
        return EventType(value)
    except ValueError:
        raise UnknownEventTypeError(str(value)) from None
