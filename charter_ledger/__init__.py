"""
charter_ledger -- event-driven journal posting for multi-company charter accounting.

Business actions (expense approved, expense paid, receipt issued, ...) are
recorded as AccountingEvents and converted into balanced double-entry
journals, one per affected company, in a single atomic write.

Entry points:
    services.event_processor.EventProcessor       -- create/process/retry/cancel
    services.idempotency_guard.IdempotencyGuard   -- duplicate detection
    posting_rules.registry.compute_journals       -- pure rule evaluation
    selectors.journal_selector.JournalSelector    -- read side
"""
