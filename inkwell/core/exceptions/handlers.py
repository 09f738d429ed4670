from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from inkwell.core.config import request_logger
from inkwell.core.exceptions.types import (
    AppException,
    CooldownException,
    RateLimitExceededException,
    StoreBackendException,
)
from inkwell.core.services.auth.outcome import InterruptException


async def interrupt_exception_handler(
    request: Request, exc: InterruptException
) -> RedirectResponse:
    """
    Turns a redirect interrupt into the redirect response it describes.

    Args:
        request: The request object.
        exc (InterruptException): The interrupt raised by a guard.

    Returns:
        RedirectResponse: A redirect carrying every Set-Cookie header of the interrupt.
    """
    request_logger.debug(
        f"Interrupt on {request.url.path}: redirect to {exc.interrupt.redirect_to}"
    )
    return exc.interrupt.to_response()


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handles typed application exceptions by returning their message and status.

    Args:
        request: The request object.
        exc (AppException): The exception instance.

    Returns:
        JSONResponse: ``{"detail": message}`` with the exception's status code.
    """
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        request_logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    else:
        request_logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def store_backend_exception_handler(
    request: Request, exc: StoreBackendException
) -> JSONResponse:
    request_logger.error(f"StoreBackendException on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": "Service temporarily unavailable, please try again."},
    )


async def rate_limit_exception_handler(
    request: Request, exc: RateLimitExceededException
) -> JSONResponse:
    """
    Handles rate limit exceptions, exposing the retry delay when known.

    Args:
        request: The request object.
        exc (RateLimitExceededException): The rate limit exception instance.

    Returns:
        JSONResponse: A 429 response with a Retry-After header when available.
    """
    request_logger.warning(f"RateLimitExceededException: {exc}")
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def cooldown_exception_handler(
    request: Request, exc: CooldownException
) -> JSONResponse:
    request_logger.info(f"CooldownException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers={"Retry-After": str(exc.seconds_remaining)},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    # Starlette resolves handlers by walking the exception MRO, so the
    # specific subclasses win over AppException.
    app.add_exception_handler(InterruptException, interrupt_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StoreBackendException, store_backend_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceededException, rate_limit_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(CooldownException, cooldown_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)


__all__ = [
    "interrupt_exception_handler",
    "app_exception_handler",
    "store_backend_exception_handler",
    "rate_limit_exception_handler",
    "cooldown_exception_handler",
    "general_exception_handler",
    "register_exception_handlers",
]
