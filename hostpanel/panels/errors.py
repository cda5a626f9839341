"""
Error taxonomy and failure normalization for hosting panel adapters.

Adapters raise the ``PanelError`` subclasses below internally; the
``panel_operation`` and ``list_operation`` guards convert them (and anything
unexpected) into canonical results at the method boundary, so no exception
ever crosses the public contract.

Example:
    >>> class MyAdapter(HostingPanel):
    ...     @panel_operation(AccountUpdateResult)
    ...     async def delete_web_hosting_account(self, account_id):
    ...         ...
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from hostpanel.panels.types import AccountInfoResult, ErrorCode, ErrorKind, PanelResult

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=PanelResult)

# Cap on how much of a raw response body ends up in a message
_MAX_BODY_IN_MESSAGE = 500


class PanelConfigError(ValueError):
    """Raised at construction time when an adapter is misconfigured."""


class PanelError(Exception):
    """Base for failures recovered at the adapter boundary."""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    default_code: str = ErrorCode.UNEXPECTED_ERROR

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = str(code or self.default_code)


class PanelValidationError(PanelError):
    kind = ErrorKind.VALIDATION


class PanelNetworkError(PanelError):
    kind = ErrorKind.NETWORK
    default_code = ErrorCode.NETWORK_ERROR


class PanelParseError(PanelError):
    kind = ErrorKind.PARSE
    default_code = ErrorCode.JSON_PARSE_ERROR


class PanelVendorError(PanelError):
    """The panel itself reported a failure; message and code kept verbatim."""

    kind = ErrorKind.VENDOR


class PanelHttpError(PanelVendorError):
    """Non-2xx HTTP response."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"HTTP {status_code}: {truncate(body) or 'empty response body'}",
            code=str(status_code),
        )


class PanelSessionExpiredError(PanelVendorError):
    default_code = ErrorCode.SESSION_EXPIRED


class PanelNotSupportedError(PanelError):
    kind = ErrorKind.NOT_SUPPORTED
    default_code = ErrorCode.NOT_SUPPORTED

    def __init__(self, provider: str, operation: str) -> None:
        super().__init__(f"{operation} is not supported by {provider}")


class PanelNotFoundError(PanelError):
    kind = ErrorKind.NOT_FOUND
    default_code = ErrorCode.NOT_FOUND


def truncate(text: str, limit: int = _MAX_BODY_IN_MESSAGE) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def failure(
    result_type: type[R],
    message: str,
    code: str | None = None,
    kind: ErrorKind = ErrorKind.UNEXPECTED,
) -> R:
    """Build a failed result of the given type."""
    message = message or "Operation failed"
    return result_type(
        success=False,
        message=message,
        error_code=str(code) if code is not None else None,
        error_kind=kind,
        errors=[message],
    )


def failure_from_error(result_type: type[R], error: PanelError) -> R:
    return failure(result_type, error.message, error.code, error.kind)


def panel_operation(
    result_type: type[R],
) -> Callable[[Callable[..., Awaitable[R]]], Callable[..., Awaitable[R]]]:
    """Convert every failure of the wrapped coroutine into a ``result_type``."""

    def decorator(func: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> R:
            provider = getattr(self, "PROVIDER", type(self).__name__)
            try:
                return await func(self, *args, **kwargs)
            except PanelError as e:
                level = logging.INFO if e.kind is ErrorKind.VALIDATION else logging.WARNING
                logger.log(
                    level,
                    f"{provider} {func.__name__} failed: {e.message}",
                    extra={
                        "provider": provider,
                        "operation": func.__name__,
                        "error_code": e.code,
                        "error_kind": str(e.kind),
                    },
                )
                return failure_from_error(result_type, e)
            except Exception as e:
                logger.exception(
                    f"Unexpected error in {provider} {func.__name__}",
                    extra={"provider": provider, "operation": func.__name__},
                )
                return failure(
                    result_type,
                    f"Unexpected error: {e}",
                    ErrorCode.UNEXPECTED_ERROR,
                    ErrorKind.UNEXPECTED,
                )

        return wrapper

    return decorator


def list_operation(
    func: Callable[..., Awaitable[list[AccountInfoResult]]],
) -> Callable[..., Awaitable[list[AccountInfoResult]]]:
    """Degrade any failure of a list call to an empty list.

    An empty list is therefore not proof that nothing exists; the failure is
    logged at WARNING so operators can tell the two apart.
    """

    @functools.wraps(func)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> list[AccountInfoResult]:
        provider = getattr(self, "PROVIDER", type(self).__name__)
        try:
            return await func(self, *args, **kwargs)
        except PanelError as e:
            logger.warning(
                f"{provider} {func.__name__} failed, returning empty list: {e.message}",
                extra={
                    "provider": provider,
                    "operation": func.__name__,
                    "error_code": e.code,
                    "error_kind": str(e.kind),
                },
            )
        except Exception:
            logger.exception(
                f"Unexpected error in {provider} {func.__name__}, returning empty list",
                extra={"provider": provider, "operation": func.__name__},
            )
        return []

    return wrapper
