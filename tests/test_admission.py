"""Tests for the AdmissionController permit pool."""

from __future__ import annotations

import asyncio

import pytest

from phpsandbox import AdmissionController, ConfigurationError


class TestAdmissionCapacity:
    """Tests for permit accounting."""

    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ConfigurationError):
            AdmissionController(0)

    async def test_acquire_and_release(self) -> None:
        """Acquire and release should be reflected in occupancy."""
        admission = AdmissionController(3)
        await admission.acquire()
        assert admission.in_use == 1
        assert admission.available == 2
        admission.release()
        assert admission.in_use == 0

    async def test_release_without_acquire_raises(self) -> None:
        """Over-releasing is a bug and must not grow the pool."""
        admission = AdmissionController(1)
        with pytest.raises(RuntimeError, match="without a matching acquire"):
            admission.release()
        assert admission.available == 1

    async def test_permit_released_on_exception(self) -> None:
        """The context manager releases on every exit path."""
        admission = AdmissionController(1)
        with pytest.raises(KeyError):
            async with admission.permit():
                assert admission.in_use == 1
                raise KeyError("boom")
        assert admission.in_use == 0

    async def test_bounds_concurrency(self) -> None:
        """Never more than capacity holders at once."""
        admission = AdmissionController(2)
        peak = 0
        active = 0

        async def worker() -> None:
            nonlocal peak, active
            async with admission.permit():
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(worker() for _ in range(6)))
        assert peak == 2
        assert admission.in_use == 0


class TestAdmissionFairness:
    """Tests for waiter ordering and cancellation."""

    async def test_waiters_are_served_in_arrival_order(self) -> None:
        """Permits go to waiters first-in, first-out."""
        admission = AdmissionController(1)
        await admission.acquire()
        order: list[int] = []

        async def waiter(index: int) -> None:
            async with admission.permit():
                order.append(index)

        tasks = []
        for index in range(4):
            tasks.append(asyncio.create_task(waiter(index)))
            await asyncio.sleep(0)

        admission.release()
        await asyncio.gather(*tasks)
        assert order == [0, 1, 2, 3]

    async def test_cancelled_waiter_does_not_leak_permit(self) -> None:
        """Cancelling a waiter leaves occupancy untouched."""
        admission = AdmissionController(1)
        await admission.acquire()

        task = asyncio.create_task(admission.acquire())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert admission.in_use == 1
        admission.release()
        assert admission.in_use == 0
        await asyncio.wait_for(admission.acquire(), timeout=1.0)
        admission.release()
