"""
schemashift Transactions — transaction_scope() async context manager.

Opens one transaction on a ``Database`` and guarantees it is finished
exactly once: committed when the body completes, rolled back otherwise.
Rollback failures are never dropped; they are joined with the fault that
caused the rollback.

Usage:
    from schemashift.transactions import transaction_scope
    from schemashift.db import IsolationLevel

    async with transaction_scope(db, isolation=IsolationLevel.SERIALIZABLE) as txn:
        await txn.execute_script(migration.up_script)
        await ledger.record(txn, migration.version, migration.name)
        # Committed together

    # Any exception in the body rolls both statements back:
    async with transaction_scope(db) as txn:
        await txn.execute("DELETE FROM schema_migration WHERE version = ?", [3])
        raise ValueError("oops")  # -> TransactionFault, rolled back
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, TYPE_CHECKING

from .db.backends.base import IsolationLevel
from .faults.core import Fault, join_faults
from .faults.domains import TransactionFault

if TYPE_CHECKING:
    from .db.engine import Database, Transaction

logger = logging.getLogger("schemashift.transactions")

__all__ = ["transaction_scope"]


async def _rollback(txn: Transaction) -> Optional[Fault]:
    """Roll back ``txn`` and return the rollback fault instead of raising it."""
    try:
        await txn.rollback()
    except Fault as exc:
        logger.error(f"Rollback failed: {exc}")
        return exc
    logger.debug("Rolled back transaction")
    return None


@asynccontextmanager
async def transaction_scope(
    db: Database,
    *,
    isolation: Optional[IsolationLevel] = None,
) -> AsyncIterator[Transaction]:
    """
    Run the body inside one transaction.

    Outcomes:
    - body completes: commit; a failed commit is followed by a rollback
      attempt and raised joined with any rollback fault
    - body raises a ``Fault``: rollback, then re-raise it joined with
      any rollback fault
    - body raises another ``Exception``: it becomes a ``TransactionFault``
      (original kept as ``__cause__``), then rollback as above
    - body is interrupted (cancellation, ``KeyboardInterrupt``): rollback
      is attempted and the interruption propagates unchanged

    Args:
        db: Database to open the transaction on
        isolation: Isolation level; None for the backend default

    Raises:
        TransactionFault: When BEGIN fails or another transaction is open
    """
    txn = await db.begin(isolation)
    try:
        yield txn
    except Fault as fault:
        rollback_fault = await _rollback(txn)
        if rollback_fault is None:
            raise
        raise join_faults(fault, rollback_fault) from fault
    except Exception as exc:
        wrapped = TransactionFault(
            operation="body",
            reason=f"{type(exc).__name__}: {exc}",
        )
        wrapped.__cause__ = exc
        rollback_fault = await _rollback(txn)
        raise join_faults(wrapped, rollback_fault) from exc
    except BaseException:
        rollback_fault = await _rollback(txn)
        if rollback_fault is not None:
            logger.error(f"Transaction interrupted and rollback failed: {rollback_fault}")
        raise

    try:
        await txn.commit()
    except Fault as commit_fault:
        rollback_fault = await _rollback(txn)
        if rollback_fault is None:
            raise
        raise join_faults(commit_fault, rollback_fault) from commit_fault
