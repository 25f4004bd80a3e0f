"""Translation of store failures at the service/selector boundary."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from ledger_kernel.db.engine import store_errors, translate_store_errors
from ledger_kernel.exceptions import (
    LedgerKernelError,
    StoreTimeoutError,
    StoreUnavailableError,
    ValidationError,
)


def _operational(detail: str) -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception(detail))


def test_connection_loss_is_unavailable():
    with pytest.raises(StoreUnavailableError) as exc_info:
        with store_errors():
            raise _operational("could not connect to server")

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert not isinstance(exc_info.value, ValidationError)


def test_statement_timeout_is_timeout():
    with pytest.raises(StoreTimeoutError):
        with store_errors():
            raise _operational("canceling statement due to statement timeout")


def test_pool_exhaustion_is_timeout():
    with pytest.raises(StoreTimeoutError):
        with store_errors():
            raise PoolTimeoutError("QueuePool limit of size 20 overflow 10 reached")


def test_integrity_errors_pass_through():
    with pytest.raises(IntegrityError):
        with store_errors():
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))


def test_decorator_keeps_kernel_errors_and_metadata():
    calls = []

    @translate_store_errors
    def load(flag):
        """Load something."""
        calls.append(flag)
        if flag == "down":
            raise _operational("server closed the connection unexpectedly")
        raise LedgerKernelError("domain failure")

    with pytest.raises(StoreUnavailableError):
        load("down")
    with pytest.raises(LedgerKernelError) as exc_info:
        load("domain")

    assert type(exc_info.value) is LedgerKernelError
    assert load.__name__ == "load"
    assert load.__doc__ == "Load something."
    assert calls == ["down", "domain"]
