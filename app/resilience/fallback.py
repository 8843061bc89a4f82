"""Pulseboard — Three-Tier Fallback Policy.

One policy for every entity accessor: remote API first, then the in-process
database service, then the local cache. Tiers run strictly in sequence, each
under a bounded timeout. Every failed tier is logged; only when all of them
fail does the caller see an error, and then it is a single
``AllTiersFailedError``.

Domain errors (bad input, missing record, duplicate) are not connectivity
problems and are re-raised immediately instead of falling through.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar

from app.config import settings
from app.core.errors import (
    AllTiersFailedError,
    DuplicateEntityError,
    InvalidIdError,
    InvalidTransitionError,
    NotFoundError,
    RemoteAPIError,
    ValidationError,
)
from app.core.logging import get_logger
from app.storage.local_cache import USER_ID_KEY, LocalCache

logger = get_logger("resilience.fallback")

T = TypeVar("T")

# Surfaced to the caller from any tier
SURFACED_ERRORS = (ValidationError, NotFoundError, DuplicateEntityError, InvalidIdError)

# Remote answers that mean "your input is wrong", not "the server is down"
CLIENT_ERROR_STATUSES = frozenset({400, 409, 422})


def _client_error(error: RemoteAPIError) -> Exception:
    """The local error a backend 4xx stands for, so every tier raises the same type."""
    if error.status_code == 409:
        return DuplicateEntityError(error.detail or str(error))
    return InvalidTransitionError.from_message(error.detail) or ValidationError(str(error))


class Tier(str, Enum):
    REMOTE = "remote"
    DATABASE = "database"
    CACHE = "cache"


@dataclass
class FallbackResult(Generic[T]):
    """The value plus the tier that produced it."""

    value: T
    tier: Tier

    @property
    def degraded(self) -> bool:
        return self.tier != Tier.REMOTE


class _Failed:
    pass


_FAILED = _Failed()


def _record(operation: str, tier: Tier, error: BaseException, errors: List[Tuple[str, BaseException]]) -> None:
    errors.append((tier.value, error))
    logger.warning(
        f"{operation}: {tier.value} tier failed — {type(error).__name__}: {error}",
        extra={"operation": operation, "tier": tier.value},
    )


async def _attempt(
    operation: str,
    tier: Tier,
    call: Callable[[], Awaitable[T]],
    timeout: float,
    errors: List[Tuple[str, BaseException]],
):
    start = time.monotonic()
    try:
        value = await asyncio.wait_for(call(), timeout=timeout)
    except SURFACED_ERRORS:
        raise
    except RemoteAPIError as e:
        if e.status_code in CLIENT_ERROR_STATUSES:
            raise _client_error(e) from e
        _record(operation, tier, e, errors)
        return _FAILED
    except asyncio.TimeoutError as e:
        _record(operation, tier, TimeoutError(f"no answer within {timeout:g}s"), errors)
        return _FAILED
    except Exception as e:
        _record(operation, tier, e, errors)
        return _FAILED

    logger.debug(
        f"{operation} served by {tier.value} tier",
        extra={
            "operation": operation,
            "tier": tier.value,
            "duration_ms": round((time.monotonic() - start) * 1000, 1),
        },
    )
    return value


async def run_with_fallback(
    operation: str,
    remote: Callable[[], Awaitable[T]],
    direct: Optional[Callable[[str], Awaitable[T]]],
    cache_fallback: Callable[[], T],
    *,
    cache: LocalCache,
    write_through: Optional[Callable[[T], None]] = None,
    timeout: Optional[float] = None,
) -> FallbackResult[T]:
    """Resolve ``operation`` through remote → database → cache.

    ``direct`` receives the user id stored in the cache under ``userId`` and
    is skipped when there is none. ``write_through`` mirrors a tier-1 or
    tier-2 result into the cache. A failing write-through is logged and
    leaves the result untouched. ``cache_fallback`` reads or mutates the
    cached collection itself.
    """
    timeout = timeout or settings.tier_timeout_seconds
    errors: List[Tuple[str, BaseException]] = []

    value = await _attempt(operation, Tier.REMOTE, remote, timeout, errors)
    tier = Tier.REMOTE

    if value is _FAILED and direct is not None:
        user_id = cache.get_json(USER_ID_KEY)
        if user_id:
            value = await _attempt(operation, Tier.DATABASE, lambda: direct(user_id), timeout, errors)
            tier = Tier.DATABASE
        else:
            logger.info(
                f"{operation}: no cached user id, skipping database tier",
                extra={"operation": operation, "tier": Tier.DATABASE.value},
            )

    if value is not _FAILED:
        if write_through is not None:
            try:
                write_through(value)
            except Exception as e:
                # the answer is already committed; a stale cache must not undo it
                logger.warning(
                    f"{operation}: cache write-through failed — {type(e).__name__}: {e}",
                    extra={"operation": operation, "tier": tier.value},
                )
        return FallbackResult(value=value, tier=tier)

    try:
        value = cache_fallback()
    except SURFACED_ERRORS:
        raise
    except Exception as e:
        _record(operation, Tier.CACHE, e, errors)
        logger.error(
            f"{operation}: all tiers failed",
            extra={"operation": operation},
        )
        raise AllTiersFailedError(operation, errors) from e

    if errors:
        logger.info(
            f"{operation} served from local cache after {len(errors)} failed tier(s)",
            extra={"operation": operation, "tier": Tier.CACHE.value},
        )
    return FallbackResult(value=value, tier=Tier.CACHE)
