from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class RequestNotFoundError(AppError):
    """The leave request does not exist (or was cancelled)."""

    def __init__(self, message: str = "Leave request not found") -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class NotAuthorizedError(AppError):
    """The caller may not perform this operation on the request."""

    def __init__(self, message: str = "Not authorized to modify this leave request") -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class NoApproversSelectedError(AppError):
    """Submission named no group and no approver, or the groups were empty."""

    def __init__(self, message: str = "Select at least one approval group or approver") -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class DuplicateDateRequestError(AppError):
    """The requester already has a non-rejected request for that date."""

    def __init__(self, message: str = "A leave request already exists for this date") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class NoPendingSlotForApproverError(AppError):
    """The approver has no undecided slot on the request (stale client state)."""

    def __init__(self, message: str = "This approver has already decided or is not an approver of the request") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ProxyNotAuthorizedError(AppError):
    """Someone other than the approver tried to decide without the leave-manager capability."""

    def __init__(
        self, message: str = "Only a leave manager or an administrator can decide on behalf of another approver"
    ) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class RequestAlreadyTerminalError(AppError):
    """The request is already approved or rejected."""

    def __init__(self, message: str = "The approval workflow for this request has already concluded") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class InvalidListFilterError(AppError):
    """A list filter was given without the filter it depends on."""

    def __init__(self, message: str = "awaiting_decision requires approver_id") -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class ConcurrentModificationError(AppError):
    """The request changed between read and write (version check failed)."""

    def __init__(self, message: str = "The leave request was modified concurrently, please retry") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
