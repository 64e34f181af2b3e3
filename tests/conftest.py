"""
Pytest fixtures for the charter ledger test suite.

Provides:
- A database session per test, rolled back at teardown
- A deterministic clock and the bundled configuration
- Processor wiring with an in-memory WHT certificate issuer
- Payload builders for the common event types
- Captured structured logs

Environment Variables:
- DATABASE_URL: SQLAlchemy URL.  Defaults to an in-memory SQLite database;
  point it at PostgreSQL to run the same suite against production storage.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from charter_config import get_active_config
from charter_ledger.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from charter_ledger.domain.clock import DeterministicClock
from charter_ledger.domain.collaborators import BankAccountInfo
from charter_ledger.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from charter_ledger.services.event_processor import EventProcessor
from charter_ledger.services.side_effects import (
    SideEffectDispatcher,
    WhtCertificateSideEffect,
)

COMPANY_A = "company-a"
COMPANY_B = "company-b"
EVENT_DATE = date(2024, 3, 15)


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", "sqlite://")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture charter_ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, processor):
            ...
            logs = captured_logs()
            assert any(r["message"] == "event_processed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("charter_ledger")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    eng = init_engine_from_url(get_database_url(), echo=False)
    drop_tables(eng)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """
    Session joined to an outer transaction that is rolled back at teardown.

    ``session.commit()`` inside a test releases a savepoint; nothing a test
    writes survives it.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(
        bind=conn,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture(scope="session")
def config():
    return get_active_config()


class RecordingWhtIssuer:
    """WHT certificate issuer that remembers what it was asked to issue."""

    def __init__(self):
        self.requests = []
        self.fail_with: Exception | None = None

    def issue(self, request) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.requests.append(request)
        return f"WHT-{len(self.requests):04d}"


class InMemoryBankAccounts:
    def __init__(self, accounts: dict[str, BankAccountInfo] | None = None):
        self.accounts = dict(accounts or {})

    def resolve(self, bank_account_id: str) -> BankAccountInfo | None:
        return self.accounts.get(bank_account_id)


class InMemoryCompanies:
    def __init__(self, names: dict[str, str] | None = None):
        self.names = dict(names or {})

    def get_name(self, company_id: str) -> str | None:
        return self.names.get(company_id)


@pytest.fixture
def wht_issuer() -> RecordingWhtIssuer:
    return RecordingWhtIssuer()


@pytest.fixture
def bank_accounts() -> InMemoryBankAccounts:
    return InMemoryBankAccounts(
        {
            "bank-a": BankAccountInfo("bank-a", COMPANY_A, "1010"),
            "bank-b": BankAccountInfo("bank-b", COMPANY_B, "1020"),
            "bank-a-nogl": BankAccountInfo("bank-a-nogl", COMPANY_A, None),
        }
    )


@pytest.fixture
def companies() -> InMemoryCompanies:
    return InMemoryCompanies({COMPANY_A: "Alpha Charters", COMPANY_B: "Bravo Marine"})


@pytest.fixture
def processor(session, clock, config, wht_issuer) -> EventProcessor:
    dispatcher = SideEffectDispatcher(session, [WhtCertificateSideEffect(wht_issuer)])
    return EventProcessor(
        session,
        clock,
        config=config,
        side_effects=dispatcher,
        sleep=lambda seconds: None,
    )


# =============================================================================
# Payload builders
# =============================================================================


@pytest.fixture
def expense_approved_data():
    """Builder for EXPENSE_APPROVED payloads (1000 + 70 VAT by default)."""

    def _build(
        expense_id: str = "exp-001",
        line_items=None,
        total_vat_amount: str = "70.00",
        total_amount: str = "1070.00",
        **overrides,
    ) -> dict:
        data = {
            "expense_id": expense_id,
            "expense_number": f"EXP-{expense_id}",
            "vendor_name": "Harbour Supplies",
            "line_items": line_items
            if line_items is not None
            else [{"description": "Fuel", "account_code": "6000", "amount": "1000.00"}],
            "total_subtotal": "1000.00",
            "total_vat_amount": total_vat_amount,
            "total_amount": total_amount,
            "currency": "THB",
        }
        data.update(overrides)
        return data

    return _build


@pytest.fixture
def expense_paid_data():
    def _build(payment_id: str = "pay-001", amount: str = "1070.00", **overrides) -> dict:
        data = {
            "expense_id": "exp-001",
            "expense_number": "EXP-001",
            "payment_id": payment_id,
            "vendor_name": "Harbour Supplies",
            "payment_amount": amount,
            "paid_from": "bank-a",
            "bank_account_id": "bank-a",
            "bank_account_gl_code": "1010",
            "currency": "THB",
        }
        data.update(overrides)
        return data

    return _build


@pytest.fixture
def intercompany_paid_data():
    """Company B's bank pays company A's expense."""

    def _build(amount: str = "1000.00", **overrides) -> dict:
        data = {
            "expense_id": "exp-001",
            "expense_number": "EXP-001",
            "payment_id": "pay-ic-001",
            "paying_company_id": COMPANY_B,
            "paying_company_name": "Bravo Marine",
            "bank_account_id": "bank-b",
            "bank_account_gl_code": "1020",
            "receiving_company_id": COMPANY_A,
            "receiving_company_name": "Alpha Charters",
            "payment_amount": amount,
            "currency": "THB",
        }
        data.update(overrides)
        return data

    return _build


@pytest.fixture
def approve_expense(processor, expense_approved_data):
    """Create and process an EXPENSE_APPROVED event for company A."""

    def _approve(expense_id: str = "exp-001", **overrides):
        return processor.create_and_process(
            "EXPENSE_APPROVED",
            EVENT_DATE,
            [COMPANY_A],
            expense_approved_data(expense_id=expense_id, **overrides),
            source_document_type="expense",
            source_document_id=expense_id,
        )

    return _approve


@pytest.fixture
def unbalanced_expense(processor, expense_approved_data):
    """A pending-then-failed EXPENSE_APPROVED event (total off by 5.00)."""

    def _create(expense_id: str = "exp-bad"):
        return processor.create_and_process(
            "EXPENSE_APPROVED",
            EVENT_DATE,
            [COMPANY_A],
            expense_approved_data(expense_id=expense_id, total_amount="1075.00"),
            source_document_type="expense",
            source_document_id=expense_id,
        )

    return _create
