"""
SequenceService -- gap-tolerant, strictly increasing document numbers.

Responsibility:
    Hands out journal entry numbers (``JE-0001``) and purchase order numbers
    (``PO-0001``) from one counter row per document kind.

Architecture position:
    Kernel > Services.  Used by JournalService and PurchaseOrderService
    inside their own write transactions.

Invariants enforced:
    - The next number is read from the counter row under ``FOR UPDATE``;
      it is never derived from the documents already stored.
    - A rolled-back transaction gives its number back, so a rejected entry
      never burns one.

Failure modes:
    - Two first uses of the same counter race on the UNIQUE name; the loser
      rolls back its savepoint and increments the winner's row instead.
    - ConcurrentModificationError if the counter row disappears mid-allocation.
"""

from sqlalchemy import String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.domain.numbering import (
    JOURNAL_ENTRY_FORMAT,
    PURCHASE_ORDER_FORMAT,
    NumberFormat,
)
from ledger_kernel.exceptions import ConcurrentModificationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """Last number issued for one document kind."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), unique=True)
    current_value: Mapped[int] = mapped_column(default=0)


class SequenceService:
    """Never commits; numbers become permanent with the caller's commit."""

    JOURNAL_ENTRY = "journal_entry"
    PURCHASE_ORDER = "purchase_order"

    def __init__(
        self,
        session: Session,
        journal_entry_format: NumberFormat = JOURNAL_ENTRY_FORMAT,
        purchase_order_format: NumberFormat = PURCHASE_ORDER_FORMAT,
    ):
        self._session = session
        self._formats = {
            self.JOURNAL_ENTRY: journal_entry_format,
            self.PURCHASE_ORDER: purchase_order_format,
        }

    def _counter(self, kind: str, *, lock: bool) -> SequenceCounter | None:
        stmt = select(SequenceCounter).where(SequenceCounter.name == kind)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self._session.scalars(stmt).one_or_none()

    def _start_counter(self, kind: str) -> SequenceCounter | None:
        """Insert a fresh counter at zero; None if another writer got there first."""
        try:
            with self._session.begin_nested():
                counter = SequenceCounter(name=kind, current_value=0)
                self._session.add(counter)
        except IntegrityError:
            logger.debug("sequence_counter_race_retry", extra={"sequence_name": kind})
            return None
        return counter

    def next_value(self, sequence_name: str) -> int:
        """Increment the named counter and return the new value (first is 1)."""
        counter = (
            self._counter(sequence_name, lock=True)
            or self._start_counter(sequence_name)
            or self._counter(sequence_name, lock=True)
        )
        if counter is None:
            # Row deleted between our failed insert and the re-read
            raise ConcurrentModificationError("SequenceCounter", sequence_name, "present")
        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def allocate(self, sequence_name: str) -> tuple[int, str]:
        """
        Next value and its rendered number, e.g. ``(42, "JE-0042")``.

        Documents store both; the integer orders them, since the rendered
        form widens past its padding (``JE-9999`` then ``JE-10000``).
        """
        value = self.next_value(sequence_name)
        return value, self._formats[sequence_name].format(value)

    def current_value(self, sequence_name: str) -> int | None:
        """Last value issued, or None if the sequence was never used."""
        counter = self._counter(sequence_name, lock=False)
        return None if counter is None else counter.current_value
