"""OpenTelemetry tracing decorators."""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

F = TypeVar("F", bound=Callable[..., Any])

SERVICE_NAME = "menu-admin"


def _record_outcome(span: Span, args: tuple[Any, ...], result: Any) -> None:
    # Managers and forms report expected failures as False/None plus an `error`
    # attribute on themselves rather than raising
    owner = args[0] if args else None
    failed = result is False or (result is None and getattr(owner, "error", None) is not None)
    span.set_attribute("success", not failed)
    if not failed:
        return

    error_kind = getattr(owner, "error_kind", None)
    if error_kind is not None:
        span.set_attribute("error.kind", getattr(error_kind, "value", str(error_kind)))
    message = getattr(owner, "error", None)
    if message:
        span.set_attribute("error.message", message)


def _record_exception(span: Span, exc: Exception) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(exc).__name__)
    span.set_attribute("error.message", str(exc))
    span.record_exception(exc)


def traced(span_name: str | None = None, service_name: str = SERVICE_NAME) -> Callable[[F], F]:
    """Decorator to add OpenTelemetry tracing to a function.

    The span's `success` attribute follows the operation's outcome: an
    exception, a False return, or a None return that left an `error` on the
    instance all count as failures. For manager methods the failure's kind
    and message are attached too.

    Args:
        span_name: Name for the span (defaults to function name if not provided)
        service_name: Service name for span attributes

    Returns:
        Decorated function with tracing

    Example:
        @traced("category_manager.add_category")
        async def add_category(self, name: str | None = None) -> bool:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)
        attributes = {"service.name": service_name, "function.name": func.__qualname__}

        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with tracer.start_as_current_span(name, attributes=attributes) as span:
                    try:
                        result = await func(*args, **kwargs)
                    except Exception as e:
                        _record_exception(span, e)
                        raise
                    _record_outcome(span, args, result)
                    return result

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name, attributes=attributes) as span:
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_exception(span, e)
                    raise
                _record_outcome(span, args, result)
                return result

        return sync_wrapper  # type: ignore

    return decorator
