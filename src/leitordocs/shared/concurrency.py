"""Worker threads for upload preparation.

Validating and SHA-256 hashing an upload of up to 20 MB would block the event
loop, so the analysis service hands it to the default threadpool. At most
``UPLOAD_WORKER_LIMIT`` uploads are prepared at once; further requests wait
for a free slot.
"""

import asyncio
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from leitordocs.config import get_settings

P = ParamSpec("P")
T = TypeVar("T")

_upload_slots: asyncio.Semaphore | None = None


def _slots() -> asyncio.Semaphore:
    global _upload_slots
    if _upload_slots is None:
        _upload_slots = asyncio.Semaphore(max(1, get_settings().upload_worker_limit))
    return _upload_slots


def reset_upload_slots() -> None:
    """Drop the semaphore so the next call re-reads the limit (tests)."""
    global _upload_slots
    _upload_slots = None


async def run_in_upload_worker(func: Callable[P, T], /, *args: P.args, **kwargs: P.kwargs) -> T:
    async with _slots():
        return await asyncio.to_thread(func, *args, **kwargs)
