"""Unit tests for the upload worker threads."""

import asyncio
import threading
import time
from types import SimpleNamespace

import pytest

from leitordocs.shared import concurrency
from leitordocs.shared.concurrency import reset_upload_slots, run_in_upload_worker


@pytest.fixture(autouse=True)
def fresh_slots():
    reset_upload_slots()
    yield
    reset_upload_slots()


class TestRunInUploadWorker:
    @pytest.mark.asyncio
    async def test_returns_result_from_thread(self):
        main_thread = threading.get_ident()

        result, thread = await run_in_upload_worker(lambda x: (x * 2, threading.get_ident()), 21)

        assert result == 42
        assert thread != main_thread

    @pytest.mark.asyncio
    async def test_propagates_errors(self):
        def fail():
            raise ValueError("bad upload")

        with pytest.raises(ValueError, match="bad upload"):
            await run_in_upload_worker(fail)

    @pytest.mark.asyncio
    async def test_limits_parallel_uploads(self):
        concurrency._upload_slots = asyncio.Semaphore(2)
        lock = threading.Lock()
        running = 0
        peak = 0

        def work():
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.02)
            with lock:
                running -= 1

        await asyncio.gather(*(run_in_upload_worker(work) for _ in range(6)))

        assert peak <= 2

    def test_limit_comes_from_settings(self, monkeypatch):
        monkeypatch.setattr(concurrency, "get_settings", lambda: SimpleNamespace(upload_worker_limit=3))

        assert concurrency._slots()._value == 3
