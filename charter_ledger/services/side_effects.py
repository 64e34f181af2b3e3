"""
Post-processing side effects.

Handlers run after an event's journals are committed to the savepoint and
the event is ``processed``.  They are fire-and-forget: each runs in its own
SAVEPOINT, and a failing handler is rolled back and logged at WARNING
without touching the event or its journals.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.orm import Session

from charter_ledger.db.types import ZERO, round_money
from charter_ledger.domain.collaborators import WhtCertificateIssuer, WhtCertificateRequest
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import (
    EventPayload,
    ExpensePaidData,
    ExpensePaidIntercompanyData,
)
from charter_ledger.logging_config import get_logger
from charter_ledger.models.accounting_event import AccountingEvent

logger = get_logger("services.side_effects")

DEFAULT_WHT_RATE = Decimal("3")
DEFAULT_INCOME_DESCRIPTION = "Service fee"


@runtime_checkable
class SideEffectHandler(Protocol):
    name: str

    def applies_to(self, event: AccountingEvent, payload: EventPayload) -> bool:
        ...

    def handle(
        self,
        event: AccountingEvent,
        payload: EventPayload,
        journal_entry_ids: list[UUID],
    ) -> None:
        ...


class SideEffectDispatcher:
    """Runs every applicable handler; never raises on handler failure."""

    def __init__(self, session: Session, handlers: Iterable[SideEffectHandler] = ()):
        self.session = session
        self._handlers = list(handlers)

    def register(self, handler: SideEffectHandler) -> None:
        self._handlers.append(handler)

    def dispatch(
        self,
        event: AccountingEvent,
        payload: EventPayload,
        journal_entry_ids: list[UUID],
    ) -> list[str]:
        """Returns the names of handlers that failed."""
        failed = []
        for handler in self._handlers:
            try:
                if not handler.applies_to(event, payload):
                    continue
                with self.session.begin_nested():
                    handler.handle(event, payload, journal_entry_ids)
            except Exception:
                failed.append(handler.name)
                logger.warning(
                    "side_effect_failed",
                    extra={"handler": handler.name, "event_id": str(event.id)},
                    exc_info=True,
                )
        return failed


def wht_form_type(payee_tax_id: str | None) -> str:
    """``pnd53`` for juristic payees, ``pnd3`` for individuals."""
    if payee_tax_id and (payee_tax_id.startswith("0") or len(payee_tax_id) == 13):
        return "pnd53"
    return "pnd3"


class WhtCertificateSideEffect:
    """
    Issues a withholding tax certificate for an expense payment that
    withheld tax.  The journals are unaffected by the withholding.
    """

    name = "wht_certificate"

    def __init__(self, issuer: WhtCertificateIssuer):
        self._issuer = issuer

    def applies_to(self, event: AccountingEvent, payload: EventPayload) -> bool:
        if not isinstance(payload, (ExpensePaidData, ExpensePaidIntercompanyData)):
            return False
        withholding = payload.withholding
        return withholding is not None and withholding.wht_amount > ZERO

    def build_request(
        self, event: AccountingEvent, payload: ExpensePaidData | ExpensePaidIntercompanyData
    ) -> WhtCertificateRequest:
        withholding = payload.withholding
        if event.event_type == EventType.EXPENSE_PAID_INTERCOMPANY.value:
            company_id = payload.receiving_company_id
        else:
            company_id = event.affected_companies[0]

        payment_date = payload.payment_date or event.event_date
        amount_paid = withholding.amount_paid
        if amount_paid is None:
            amount_paid = payload.payment_amount + withholding.wht_amount

        return WhtCertificateRequest(
            company_id=company_id,
            expense_id=payload.expense_id,
            expense_number=payload.expense_number,
            payment_id=payload.payment_id,
            payee_name=withholding.payee_name or payload.vendor_name,
            payee_tax_id=withholding.payee_tax_id,
            form_type=wht_form_type(withholding.payee_tax_id),
            tax_period=payment_date.strftime("%Y-%m"),
            payment_date=payment_date,
            amount_paid=round_money(amount_paid),
            wht_rate=withholding.wht_rate or DEFAULT_WHT_RATE,
            wht_amount=round_money(withholding.wht_amount),
            income_description=withholding.income_description or DEFAULT_INCOME_DESCRIPTION,
        )

    def handle(
        self,
        event: AccountingEvent,
        payload: EventPayload,
        journal_entry_ids: list[UUID],
    ) -> None:
        request = self.build_request(event, payload)
        certificate_id = self._issuer.issue(request)
        logger.info(
            "wht_certificate_issued",
            extra={
                "event_id": str(event.id),
                "certificate_id": certificate_id,
                "form_type": request.form_type,
                "tax_period": request.tax_period,
                "wht_amount": str(request.wht_amount),
            },
        )
