"""Context variables for structured logging."""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Optional

_operation: ContextVar[str] = ContextVar("operation", default="")
_client_request_id: ContextVar[str] = ContextVar("client_request_id", default="")
_message_id: ContextVar[str] = ContextVar("message_id", default="")

_VARS = {
    "operation": _operation,
    "client_request_id": _client_request_id,
    "message_id": _message_id,
}


def set_log_context(
    operation: Optional[str] = None,
    client_request_id: Optional[str] = None,
    message_id: Optional[str] = None,
) -> None:
    if operation is not None:
        _operation.set(operation)
    if client_request_id is not None:
        _client_request_id.set(client_request_id)
    if message_id is not None:
        _message_id.set(message_id)


def get_log_context() -> Dict[str, str]:
    return {name: var.get() for name, var in _VARS.items()}


def clear_log_context() -> None:
    for var in _VARS.values():
        var.set("")


@contextmanager
def operation_context(
    operation: Optional[str] = None,
    client_request_id: Optional[str] = None,
    message_id: Optional[str] = None,
) -> Iterator[None]:
    """
    Temporarily set log context; previous values are restored on exit.

    Usage:
        with operation_context(operation="send_email", client_request_id=rid):
            # All logs in this block carry operation and client_request_id
            ...
    """
    values = {
        "operation": operation,
        "client_request_id": client_request_id,
        "message_id": message_id,
    }
    tokens = [
        (_VARS[name], _VARS[name].set(value))
        for name, value in values.items()
        if value is not None
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
