"""Map commerce errors to HTTP responses.

Every body has the shape ``{"error": {"code", "message", "details"}}`` so a
client can show the message next to the control that caused it.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from commerce.exceptions import ConflictingUpdate, InsufficientStock, InvalidTransition, LedgerInconsistency, NotFound

logger = structlog.get_logger(__name__)


def _error(status_code, code, message, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
    )


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for errors in messages.values():
            if errors:
                return errors[0] if isinstance(errors, list) else str(errors)
    return str(messages)


def _message_of(exc) -> str:
    if exc.args:
        return _first_message(exc.args[0])
    return type(exc).__name__


async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(400, "validation_error", _first_message(exc.messages), exc.messages)


async def insufficient_stock_handler(request: Request, exc: InsufficientStock):
    return _error(409, "insufficient_stock", _first_message(exc.messages), {"shortages": exc.shortages})


async def not_found_handler(request: Request, exc: ObjectNotFoundError):
    details = {}
    if isinstance(exc, NotFound):
        details = {"kind": exc.kind, "identifier": str(exc.identifier)}
    return _error(404, "not_found", _message_of(exc), details)


async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return _error(409, "invalid_transition", _message_of(exc), {"current": exc.current, "target": exc.target})


async def conflicting_update_handler(request: Request, exc: ConflictingUpdate):
    return _error(409, "conflicting_update", _message_of(exc))


async def invalid_operation_handler(request: Request, exc: InvalidOperationError):
    return _error(409, "invalid_operation", _message_of(exc))


async def ledger_inconsistency_handler(request: Request, exc: LedgerInconsistency):
    logger.error(
        "ledger_inconsistency_surfaced",
        token=exc.token,
        path=request.url.path,
        method=request.method,
    )
    return _error(500, "ledger_inconsistency", "Inventory ledger is inconsistent; the operation was not applied")


def register_error_handlers(app: FastAPI) -> None:
    """Install the framework's handlers, then the commerce-specific ones on top."""
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(InsufficientStock, insufficient_stock_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
    app.add_exception_handler(ConflictingUpdate, conflicting_update_handler)
    app.add_exception_handler(InvalidOperationError, invalid_operation_handler)
    app.add_exception_handler(LedgerInconsistency, ledger_inconsistency_handler)
