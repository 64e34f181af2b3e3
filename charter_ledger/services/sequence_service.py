"""
SequenceService -- journal reference numbers from locked counter rows.

Responsibility:
    Allocates strictly increasing values per named sequence and formats
    journal reference numbers ``JE-<year>-<nnnn>``, one sequence per company
    and entry-date year.

Invariants enforced:
    - The locked counter row is the sole source of the next value; the
      aggregate-max-plus-one pattern is never used.
    - The increment is part of the caller's transaction: rolled back with it.

Failure modes:
    - IntegrityError on concurrent counter creation, handled with a savepoint
      rollback and a locked re-read.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from charter_ledger.logging_config import get_logger
from charter_ledger.models.sequence_counter import SequenceCounter
from charter_ledger.services.base import BaseService

logger = get_logger("services.sequence")

JOURNAL_REFERENCE_PREFIX = "JE"


def journal_sequence_name(company_id: str, year: int) -> str:
    return f"journal_entry:{company_id}:{year}"


def format_journal_reference(year: int, value: int) -> str:
    return f"{JOURNAL_REFERENCE_PREFIX}-{year}-{value:04d}"


class SequenceService(BaseService[SequenceCounter]):
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next value.  The increment is
        only visible once the caller's transaction commits.

    Guarantees:
        - ``SELECT ... FOR UPDATE`` serializes allocations of one sequence.
        - Values start at 1 and never repeat within a committed history.

    Non-goals:
        - Gap-free numbering: a reference consumed by a failed posting
          attempt inside a committed transaction is skipped.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock (or create) the counter row, increment it and return the value.

        Postconditions:
            - Returns an integer > 0, greater than every value previously
              returned for ``sequence_name`` in committed transactions.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            try:
                with self.session.begin_nested():
                    counter = SequenceCounter(name=sequence_name, current_value=1)
                    self.session.add(counter)
                    self.session.flush()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                # Created concurrently; fall through to the locked increment
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        counter = self.session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def next_journal_reference(self, company_id: str, entry_date: date) -> str:
        """Next ``JE-<year>-<nnnn>`` reference for ``company_id``."""
        year = entry_date.year
        value = self.next_value(journal_sequence_name(company_id, year))
        return format_journal_reference(year, value)
