"""
Centralized rounding for computed journals.

Rules build lines from payload amounts that may carry more precision than the
ledger posts (per-line VAT splits, percentage allocations).  Each line is
rounded with ``round_money`` and any residual cent difference against the
fixed side is pushed onto the largest line of the adjustable side.  Ties go
to the line that comes first.

A residual larger than the tolerance is left in place so that the balance
check rejects the journal instead of hiding a real discrepancy.
"""

from decimal import Decimal
from typing import Sequence

from charter_ledger.db.types import ONE_CENT, ZERO, round_money
from charter_ledger.domain.posting_plan import EntrySide, PlannedLine


def _largest_index(lines: Sequence[PlannedLine], side: EntrySide) -> int | None:
    best: int | None = None
    for index, line in enumerate(lines):
        if line.side != side:
            continue
        # strict comparison keeps the earliest line on ties
        if best is None or line.amount > lines[best].amount:
            best = index
    return best


def reconcile_rounding(
    lines: Sequence[PlannedLine],
    adjust_side: EntrySide,
    tolerance_per_line: Decimal = ONE_CENT,
) -> tuple[PlannedLine, ...]:
    """
    Round every line and absorb the residual on ``adjust_side``.

    Args:
        lines: Unrounded planned lines.
        adjust_side: Side whose largest line absorbs the difference.
        tolerance_per_line: Largest residual accepted per line on the
            adjusted side.

    Returns:
        Rounded lines in the original order.  Balanced when the residual
        was within tolerance.
    """
    rounded = [line.with_amount(round_money(line.amount)) for line in lines]

    adjusted = sum((l.amount for l in rounded if l.side == adjust_side), ZERO)
    fixed = sum((l.amount for l in rounded if l.side != adjust_side), ZERO)
    residual = fixed - adjusted
    if residual == ZERO:
        return tuple(rounded)

    target = _largest_index(rounded, adjust_side)
    if target is None:
        return tuple(rounded)

    count = sum(1 for l in rounded if l.side == adjust_side)
    if abs(residual) > tolerance_per_line * count:
        return tuple(rounded)

    new_amount = rounded[target].amount + residual
    if new_amount <= ZERO:
        return tuple(rounded)
    rounded[target] = rounded[target].with_amount(new_amount)
    return tuple(rounded)
