"""Optimistic-lock guard for versioned writes."""

from typing import Any, Awaitable, Callable, Optional, TypeVar

from assetsync.core.exceptions import VersionConflictError

T = TypeVar("T")


def _result_version(result: Any) -> Optional[int]:
    if result is None:
        return None
    if isinstance(result, dict):
        return result.get("version")
    return getattr(result, "version", None)


async def with_optimistic_lock(
    operation: Callable[[], Awaitable[T]],
    expected_version: Optional[int] = None,
) -> T:
    """
    Run ``operation`` and check the version it reports.

    The caller read version N and the write must have produced exactly N + 1.
    Results without a ``version`` are passed through unchecked, as is every
    result when ``expected_version`` is None.
    """
    result = await operation()

    if expected_version is not None:
        version = _result_version(result)
        if version is not None and version != expected_version + 1:
            raise VersionConflictError(
                expected_version=expected_version + 1,
                actual_version=version,
            )

    return result
