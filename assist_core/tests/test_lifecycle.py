import asyncio
import threading

import pytest

from assist_core.domain.exceptions import RequestCancelled
from assist_core.flows.lifecycle import CancelToken, RequestRegistry, run_in_slot


def test_only_latest_generation_finishes():
    registry = RequestRegistry()
    cancel_counts = {}
    generations = []
    for _ in range(5):
        generation, token = registry.start("quick-answer")
        cancel_counts[generation] = 0

        def _count(g=generation):
            cancel_counts[g] += 1

        token.add_callback(_count)
        generations.append(generation)

    assert generations == sorted(set(generations))
    for stale in generations[:-1]:
        assert registry.finish("quick-answer", stale) is False
        assert cancel_counts[stale] == 1
    assert cancel_counts[generations[-1]] == 0
    assert registry.finish("quick-answer", generations[-1]) is True
    assert registry.current("quick-answer") is None


def test_generations_unique_across_slots():
    registry = RequestRegistry()
    g1, _ = registry.start("quick-answer")
    g2, _ = registry.start("translate")
    g3, _ = registry.start("quick-answer")
    assert g1 < g2 < g3
    assert registry.current("translate") == g2


def test_cancel_returns_generation_and_clears():
    registry = RequestRegistry()
    generation, token = registry.start("translate")
    assert registry.cancel("translate") == generation
    assert token.cancelled
    assert registry.current("translate") is None
    # 已取消的请求再 finish 是 no-op
    assert registry.finish("translate", generation) is False


def test_cancel_idle_slot_is_noop():
    registry = RequestRegistry()
    assert registry.cancel("quick-answer") is None
    assert registry.cancel("never-used") is None
    assert registry.current("quick-answer") is None


def test_finish_after_supersede_keeps_new_request():
    registry = RequestRegistry()
    old, old_token = registry.start("quick-answer")
    new, _ = registry.start("quick-answer")
    assert old_token.cancelled
    registry.finish("quick-answer", old)
    assert registry.current("quick-answer") == new


def test_cancel_token_callbacks_run_once():
    token = CancelToken()
    calls = []
    token.add_callback(lambda: calls.append("a"))
    assert token.cancel() is True
    assert token.cancel() is False
    token.add_callback(lambda: calls.append("late"))
    assert calls == ["a", "late"]
    with pytest.raises(RequestCancelled):
        token.raise_if_cancelled()


def test_concurrent_starts_leave_single_occupant():
    registry = RequestRegistry()
    tokens = []
    lock = threading.Lock()

    def _worker():
        for _ in range(50):
            generation, token = registry.start("quick-answer")
            with lock:
                tokens.append((generation, token))

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    current = registry.current("quick-answer")
    live = [g for g, token in tokens if not token.cancelled]
    assert live == [current]
    assert len({g for g, _ in tokens}) == 200


def test_run_in_slot_returns_result_and_releases():
    registry = RequestRegistry()

    async def _work(token):
        await asyncio.sleep(0)
        return "ok"

    assert asyncio.run(run_in_slot(registry, "quick-answer", _work)) == "ok"
    assert registry.current("quick-answer") is None


def test_run_in_slot_releases_on_error():
    registry = RequestRegistry()

    async def _work(token):
        raise ValueError("boom")

    with pytest.raises(ValueError):
        asyncio.run(run_in_slot(registry, "translate", _work))
    assert registry.current("translate") is None


def test_superseded_request_raises_cancelled():
    async def scenario():
        registry = RequestRegistry()
        started = asyncio.Event()

        async def _slow(token):
            started.set()
            await asyncio.sleep(10)
            return "late"

        async def _fast(token):
            return "fresh"

        first = asyncio.ensure_future(run_in_slot(registry, "quick-answer", _slow))
        await started.wait()
        second = await run_in_slot(registry, "quick-answer", _fast)
        with pytest.raises(RequestCancelled):
            await first
        return second, registry.current("quick-answer")

    second, current = asyncio.run(scenario())
    assert second == "fresh"
    assert current is None


def test_explicit_cancel_interrupts_work():
    async def scenario():
        registry = RequestRegistry()
        started = asyncio.Event()

        async def _slow(token):
            started.set()
            await asyncio.sleep(10)

        pending = asyncio.ensure_future(run_in_slot(registry, "translate", _slow))
        await started.wait()
        cancelled = registry.cancel("translate")
        with pytest.raises(RequestCancelled):
            await pending
        return cancelled

    assert asyncio.run(scenario()) is not None


def test_interleaved_start_keeps_newest_generation():
    class InterleavingRegistry(RequestRegistry):
        """第一次分配 generation 时，让另一个线程对同一 slot 发起 start。"""

        def __init__(self):
            super().__init__()
            self.other = None
            self.other_result = []

        def _next_generation(self):
            generation = super()._next_generation()
            if self.other is None:
                self.other = threading.Thread(
                    target=lambda: self.other_result.append(self.start("quick-answer"))
                )
                self.other.start()
                self.other.join(timeout=0.2)
            return generation

    registry = InterleavingRegistry()
    first_generation, first_token = registry.start("quick-answer")
    registry.other.join()
    second_generation, second_token = registry.other_result[0]

    assert first_generation < second_generation
    assert registry.current("quick-answer") == second_generation
    assert first_token.cancelled
    assert not second_token.cancelled
    assert registry.finish("quick-answer", first_generation) is False
    assert registry.finish("quick-answer", second_generation) is True
