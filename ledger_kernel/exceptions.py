"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the kernel (UI handlers, import jobs, tests) must react to
failures precisely: an unbalanced entry is corrected by the user, a
concurrent modification is reloaded and retried, an unavailable store is
reported as an outage.  Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        journal_service.create_entry(header, lines, actor)
    except UnbalancedEntryError as e:
        show_error(f"Out of balance by {e.imbalance}")
    except ClosedPeriodError as e:
        show_error(f"Period {e.period_name} is locked")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerKernelError:

    LedgerKernelError (base)
    |
    +-- ValidationError                 (caller corrects input and retries)
    |   +-- InsufficientLinesError
    |   +-- InvalidLineError
    |   |   +-- HeaderAccountPostingError
    |   |   +-- InvalidAmountError
    |   +-- UnbalancedEntryError
    |   +-- ClosedPeriodError
    |   +-- InvalidPeriodError
    |   +-- InvalidPurchaseOrderError
    |   +-- InvalidProjectError
    |   +-- MissingRejectionReasonError
    |
    +-- StructuralError                 (surfaced, never auto-corrected)
    |   +-- AccountCycleError
    |   +-- AccountNotFoundError
    |   +-- AccountTypeNotFoundError
    |   +-- JournalEntryNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- PeriodNotFoundError
    |   +-- ProjectNotFoundError
    |   +-- LedgerIntegrityError
    |
    +-- InvalidTransitionError          (purchase order state machine misuse)
    |   +-- UnauthorizedApproverError
    +-- NotEditableError
    |
    +-- ConcurrentModificationError     (retryable after reload)
    |
    +-- ConstraintViolationError
    |   +-- AccountInUseError
    |   +-- AccountHasChildrenError
    |   +-- DuplicateAccountCodeError
    |   +-- DuplicateAccountTypeError
    |   +-- SystemAccountTypeError
    |   +-- AccountTypeInUseError
    |   +-- PeriodOverlapError
    |   +-- EntryAlreadyReversedError
    |   +-- ReversalEntryImmutableError
    |   +-- DuplicateProjectError
    |   +-- ProjectInUseError
    |
    +-- CodeGenerationError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedActorError
    |   +-- UnknownActorError
    |
    +-- StoreError                      (propagated unchanged, never retried)
        +-- StoreUnavailableError
        +-- StoreTimeoutError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INSUFFICIENT_LINES          | Entry has fewer than two lines
                | INVALID_LINE                | Line references unusable account
                | HEADER_ACCOUNT_POSTING      | Line targets a header account
                | INVALID_AMOUNT              | Zero, negative or two-sided amount
                | UNBALANCED_ENTRY            | Debits != Credits
                | CLOSED_PERIOD               | Entry date inside a locked period
----------------|-----------------------------|-----------------------------------------
Structural      | ACCOUNT_CYCLE               | Parent chain revisits an ancestor
                | ACCOUNT_NOT_FOUND           | Referenced account does not exist
                | LEDGER_INTEGRITY            | Trial balance or entry totals broken
----------------|-----------------------------|-----------------------------------------
Purchase order  | INVALID_TRANSITION          | Edge outside the transition table
                | UNAUTHORIZED_APPROVER       | Capability / separation of duties
                | NOT_EDITABLE                | Edit/delete outside PENDING
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENT_MODIFICATION     | Conditional update matched no row
----------------|-----------------------------|-----------------------------------------
Constraint      | ACCOUNT_IN_USE              | Delete blocked by posted lines
                | ACCOUNT_HAS_CHILDREN        | Delete blocked by child accounts
                | DUPLICATE_ACCOUNT_CODE      | Code already persisted
                | PROJECT_IN_USE              | Project delete blocked by lines
----------------|-----------------------------|-----------------------------------------
Store           | STORE_UNAVAILABLE           | Connection refused / dropped
                | STORE_TIMEOUT               | Pool or statement timeout

===============================================================================
"""

from decimal import Decimal


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation exceptions


class ValidationError(LedgerKernelError):
    """Base exception for input that the caller can correct locally."""

    code: str = "VALIDATION_ERROR"


class InsufficientLinesError(ValidationError):
    """A journal entry needs at least two lines."""

    code: str = "INSUFFICIENT_LINES"

    def __init__(self, line_count: int, minimum: int = 2):
        self.line_count = line_count
        self.minimum = minimum
        super().__init__(
            f"Journal entry needs at least {minimum} lines, got {line_count}"
        )


class InvalidLineError(ValidationError):
    """A journal line cannot be posted as given."""

    code: str = "INVALID_LINE"

    def __init__(self, line_number: int, account_id: str | None, reason: str):
        self.line_number = line_number
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Line {line_number} (account {account_id}): {reason}")


class HeaderAccountPostingError(InvalidLineError):
    """A journal line targets a header (grouping-only) account."""

    code: str = "HEADER_ACCOUNT_POSTING"

    def __init__(self, line_number: int, account_id: str, account_code: str):
        self.account_code = account_code
        super().__init__(
            line_number,
            account_id,
            f"header account {account_code} cannot receive postings",
        )


class InvalidAmountError(InvalidLineError):
    """A journal line must carry a positive amount on exactly one side."""

    code: str = "INVALID_AMOUNT"

    def __init__(
        self,
        line_number: int,
        account_id: str | None,
        debit_amount: Decimal,
        credit_amount: Decimal,
    ):
        self.debit_amount = debit_amount
        self.credit_amount = credit_amount
        super().__init__(
            line_number,
            account_id,
            f"needs a positive amount on exactly one side "
            f"(debit={debit_amount}, credit={credit_amount})",
        )


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: Decimal, credits: Decimal):
        self.debits = debits
        self.credits = credits
        self.imbalance = debits - credits
        super().__init__(
            f"Unbalanced entry: debits={debits}, credits={credits}, "
            f"imbalance={self.imbalance}"
        )


class ClosedPeriodError(ValidationError):
    """The entry date falls inside a locked accounting period."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, period_name: str, entry_date: str):
        self.period_name = period_name
        self.entry_date = entry_date
        super().__init__(
            f"Accounting period {period_name} is locked; "
            f"cannot post or change entries dated {entry_date}"
        )


class InvalidPeriodError(ValidationError):
    """Accounting period definition is malformed."""

    code: str = "INVALID_PERIOD"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid accounting period: {reason}")


class InvalidPurchaseOrderError(ValidationError):
    """Purchase order payload is invalid (e.g. non-positive amount)."""

    code: str = "INVALID_PURCHASE_ORDER"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid purchase order: {reason}")


class InvalidProjectError(ValidationError):
    """Project payload is invalid (e.g. blank name)."""

    code: str = "INVALID_PROJECT"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid project: {reason}")


class MissingRejectionReasonError(ValidationError):
    """A rejection must state a non-empty reason."""

    code: str = "MISSING_REJECTION_REASON"

    def __init__(self, purchase_order_id: str):
        self.purchase_order_id = purchase_order_id
        super().__init__(
            f"Rejecting purchase order {purchase_order_id} requires a reason"
        )


# Structural exceptions


class StructuralError(LedgerKernelError):
    """Base exception for broken references and hierarchy defects."""

    code: str = "STRUCTURAL_ERROR"


class AccountCycleError(StructuralError):
    """The parent chain of an account revisits one of its ancestors."""

    code: str = "ACCOUNT_CYCLE"

    def __init__(self, account_id: str, cycle: list[str]):
        self.account_id = account_id
        self.cycle = cycle
        super().__init__(
            f"Account {account_id} is part of a parent cycle: "
            + " -> ".join(cycle)
        )


class AccountNotFoundError(StructuralError):
    """Account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class AccountTypeNotFoundError(StructuralError):
    """Account type with given ID was not found."""

    code: str = "ACCOUNT_TYPE_NOT_FOUND"

    def __init__(self, account_type_id: str):
        self.account_type_id = account_type_id
        super().__init__(f"Account type not found: {account_type_id}")


class JournalEntryNotFoundError(StructuralError):
    """Journal entry with given ID was not found."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, journal_entry_id: str):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Journal entry not found: {journal_entry_id}")


class PurchaseOrderNotFoundError(StructuralError):
    """Purchase order with given ID was not found."""

    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, purchase_order_id: str):
        self.purchase_order_id = purchase_order_id
        super().__init__(f"Purchase order not found: {purchase_order_id}")


class PeriodNotFoundError(StructuralError):
    """Accounting period with given ID was not found."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Accounting period not found: {period_id}")


class ProjectNotFoundError(StructuralError):
    """Project with given ID was not found."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class LedgerIntegrityError(StructuralError):
    """
    A derived double-entry property does not hold.

    Raised when trial balance grand totals or a stored entry's lines do not
    balance.  This indicates corrupted data, never bad user input.
    """

    code: str = "LEDGER_INTEGRITY"

    def __init__(self, subject: str, debits: Decimal, credits: Decimal):
        self.subject = subject
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Ledger integrity violated for {subject}: "
            f"debits={debits}, credits={credits}"
        )


# Purchase order state machine exceptions


class InvalidTransitionError(LedgerKernelError):
    """Attempted purchase order transition is not permitted."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        purchase_order_id: str,
        attempted: str,
        current_status: str,
        reason: str = "",
    ):
        self.purchase_order_id = purchase_order_id
        self.attempted = attempted
        self.current_status = current_status
        self.reason = reason
        message = (
            f"Cannot {attempted} purchase order {purchase_order_id} "
            f"in status {current_status}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnauthorizedApproverError(InvalidTransitionError):
    """The actor lacks the capability required for this transition."""

    code: str = "UNAUTHORIZED_APPROVER"

    def __init__(
        self,
        purchase_order_id: str,
        attempted: str,
        current_status: str,
        actor_id: str,
        required_capability: str,
    ):
        self.actor_id = actor_id
        self.required_capability = required_capability
        super().__init__(
            purchase_order_id,
            attempted,
            current_status,
            reason=f"actor {actor_id} does not satisfy {required_capability}",
        )


class NotEditableError(LedgerKernelError):
    """Purchase order can only be edited or deleted while pending."""

    code: str = "NOT_EDITABLE"

    def __init__(self, purchase_order_id: str, attempted: str, current_status: str):
        self.purchase_order_id = purchase_order_id
        self.attempted = attempted
        self.current_status = current_status
        super().__init__(
            f"Cannot {attempted} purchase order {purchase_order_id}: "
            f"status is {current_status}, only pending orders are editable"
        )


# Concurrency exceptions


class ConcurrentModificationError(LedgerKernelError):
    """
    A conditional update found the row in an unexpected state.

    Retryable: the caller must reload the current state before retrying.
    """

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str, expected_status: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_status = expected_status
        super().__init__(
            f"{entity_type} {entity_id} was modified concurrently "
            f"(expected status {expected_status}); reload and retry"
        )


# Constraint exceptions


class ConstraintViolationError(LedgerKernelError):
    """Base exception for mutations blocked by existing data."""

    code: str = "CONSTRAINT_VIOLATION"


class AccountInUseError(ConstraintViolationError):
    """Account is referenced by journal lines and cannot be deleted."""

    code: str = "ACCOUNT_IN_USE"

    def __init__(self, account_id: str, reason: str = "has posted journal lines"):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Account {account_id} {reason}")


class AccountHasChildrenError(ConstraintViolationError):
    """Account has child accounts and cannot be deleted."""

    code: str = "ACCOUNT_HAS_CHILDREN"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account {account_id} has child accounts")


class DuplicateAccountCodeError(ConstraintViolationError):
    """Account code is already in use."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class DuplicateAccountTypeError(ConstraintViolationError):
    """Account type name is already in use."""

    code: str = "DUPLICATE_ACCOUNT_TYPE"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Account type already exists: {name}")


class SystemAccountTypeError(ConstraintViolationError):
    """System-defined account types cannot be changed or deleted."""

    code: str = "SYSTEM_ACCOUNT_TYPE"

    def __init__(self, account_type_id: str, attempted: str):
        self.account_type_id = account_type_id
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} system account type {account_type_id}"
        )


class AccountTypeInUseError(ConstraintViolationError):
    """Account type is referenced by accounts and cannot be deleted."""

    code: str = "ACCOUNT_TYPE_IN_USE"

    def __init__(self, account_type_id: str):
        self.account_type_id = account_type_id
        super().__init__(f"Account type {account_type_id} is used by accounts")


class PeriodOverlapError(ConstraintViolationError):
    """New accounting period overlaps an existing one."""

    code: str = "PERIOD_OVERLAP"

    def __init__(self, new_period: str, existing_period: str):
        self.new_period = new_period
        self.existing_period = existing_period
        super().__init__(
            f"Accounting period {new_period} overlaps {existing_period}"
        )


class EntryAlreadyReversedError(ConstraintViolationError):
    """Journal entry already has a reversal entry."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, journal_entry_id: str):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Journal entry {journal_entry_id} is already reversed")


class ReversalEntryImmutableError(ConstraintViolationError):
    """A reversal entry cannot be edited, deleted or reversed itself."""

    code: str = "REVERSAL_ENTRY_IMMUTABLE"

    def __init__(self, journal_entry_id: str, reversal_of_id: str):
        self.journal_entry_id = journal_entry_id
        self.reversal_of_id = reversal_of_id
        super().__init__(
            f"Journal entry {journal_entry_id} reverses {reversal_of_id} and is frozen"
        )


class DuplicateProjectError(ConstraintViolationError):
    """Project name is already in use."""

    code: str = "DUPLICATE_PROJECT"

    def __init__(self, project_name: str):
        self.project_name = project_name
        super().__init__(f"Project already exists: {project_name}")


class ProjectInUseError(ConstraintViolationError):
    """Project is referenced by journal lines and cannot be deleted."""

    code: str = "PROJECT_IN_USE"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project {project_id} is referenced by journal lines")


# Code generation exceptions


class CodeGenerationError(LedgerKernelError):
    """No collision-free account code could be derived deterministically."""

    code: str = "CODE_GENERATION_FAILED"

    def __init__(self, base_code: str, reason: str):
        self.base_code = base_code
        self.reason = reason
        super().__init__(f"Cannot generate account code under {base_code}: {reason}")


# Authorization exceptions


class AuthorizationError(LedgerKernelError):
    """Base exception for actor capability failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedActorError(AuthorizationError):
    """Actor lacks the capability for the requested operation."""

    code: str = "UNAUTHORIZED_ACTOR"

    def __init__(self, actor_id: str, capability: str, operation: str):
        self.actor_id = actor_id
        self.capability = capability
        self.operation = operation
        super().__init__(
            f"Actor {actor_id} lacks capability {capability} for {operation}"
        )


class UnknownActorError(AuthorizationError):
    """Actor cannot be resolved to an active user."""

    code: str = "UNKNOWN_ACTOR"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Unknown or inactive user: {user_id}")


# Store exceptions


class StoreError(LedgerKernelError):
    """Base exception for failures of the external relational store."""

    code: str = "STORE_ERROR"


class StoreUnavailableError(StoreError):
    """The store could not be reached or aborted the transaction."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Store unavailable: {detail}")


class StoreTimeoutError(StoreError):
    """The store did not answer within its timeout."""

    code: str = "STORE_TIMEOUT"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Store timeout: {detail}")
