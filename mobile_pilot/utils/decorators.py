import asyncio
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


def wrap_with_callbacks(
    before: Callable[[], None] | None = None,
    on_success: Callable[[Any], None] | None = None,
    on_failure: Callable[[Exception], None] | None = None,
) -> Callable[[F], F]:
    """
    Run callbacks around a (sync or async) function call.

    `on_failure` is called with the raised exception, which is then re-raised.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            if before:
                before()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                if on_failure:
                    on_failure(e)
                raise
            if on_success:
                on_success(result)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            if before:
                before()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if on_failure:
                    on_failure(e)
                raise
            if on_success:
                on_success(result)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
