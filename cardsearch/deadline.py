"""Deadline enforcement for collaborator calls."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from .config import settings
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_deadline(call: Awaitable[T], operation: str, timeout: float | None = None) -> T:
    """Await ``call`` and turn deadline expiry into :class:`UpstreamFailure`.

    Errors raised by the collaborator itself propagate unchanged.
    """
    limit = settings.backend_timeout_seconds if timeout is None else timeout
    try:
        return await asyncio.wait_for(call, timeout=limit)
    except asyncio.TimeoutError as exc:
        logger.warning("%s timed out after %.2fs", operation, limit)
        raise UpstreamFailure(f"{operation} timed out after {limit:.2f}s") from exc
