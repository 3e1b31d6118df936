"""Unit tests for the bounded-concurrency batch runner."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from field_exporter.discovery.batch import BatchRunner, FetchResult


class TestBatchRunner:
    """Tests for BatchRunner."""

    @pytest.mark.asyncio
    async def test_failing_item_does_not_affect_siblings(self) -> None:
        """Item 3 of 5 fails; the rest succeed and three batches run."""

        async def worker(item: int) -> int:
            if item == 3:
                raise RuntimeError("boom")
            return item * 10

        runner = BatchRunner(width=2, pause=0)
        results = await runner.run([1, 2, 3, 4, 5], worker)

        assert [r.value for r in results] == [10, 20, None, 40, 50]
        assert [r.ok for r in results] == [True, True, False, True, True]
        assert results[2].error == "boom"
        assert runner.batches_completed == 3

    @pytest.mark.asyncio
    async def test_concurrency_never_exceeds_width(self) -> None:
        """No more than `width` items are pending at once."""
        in_flight = 0
        peak = 0

        async def worker(item: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return item

        runner = BatchRunner(width=3, pause=0)
        await runner.run(list(range(10)), worker)

        assert peak == 3
        assert runner.batches_completed == 4

    @pytest.mark.asyncio
    async def test_batch_settles_before_next_starts(self) -> None:
        """A slow item holds back the following batch."""
        events: list[str] = []

        async def worker(item: str) -> str:
            events.append(f"start:{item}")
            if item == "a":
                await asyncio.sleep(0.01)
            events.append(f"end:{item}")
            return item

        runner = BatchRunner(width=2, pause=0)
        await runner.run(["a", "b", "c"], worker)

        assert events.index("end:a") < events.index("start:c")

    @pytest.mark.asyncio
    async def test_pause_between_batches_not_after_last(self) -> None:
        """Pause is inserted between batches only."""

        async def worker(item: int) -> int:
            return item

        runner = BatchRunner(width=2, pause=0.2)
        with patch("field_exporter.discovery.batch.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await runner.run([1, 2, 3, 4, 5], worker)

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.2)

    @pytest.mark.asyncio
    async def test_on_batch_reports_progress(self) -> None:
        """Callback receives items done and total after each batch."""
        seen: list[tuple[int, int]] = []

        async def worker(item: int) -> int:
            return item

        runner = BatchRunner(width=2, pause=0)
        await runner.run([1, 2, 3], worker, on_batch=lambda done, total: seen.append((done, total)))

        assert seen == [(2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        """No items means no batches."""
        runner = BatchRunner(width=5, pause=0)
        results = await runner.run([], AsyncMock())

        assert results == []
        assert runner.batches_completed == 0

    def test_invalid_width(self) -> None:
        """Width below one is rejected."""
        with pytest.raises(ValueError, match="width"):
            BatchRunner(width=0)

    def test_fetch_result_absent_has_reason(self) -> None:
        """Absent results always carry a reason."""
        result = FetchResult.absent("")
        assert not result.ok
        assert result.error == "unknown error"
