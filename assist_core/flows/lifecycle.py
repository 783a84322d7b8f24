"""请求生命周期登记表。

每个操作类型（slot，如 "quick-answer"、"translate"）同一时刻最多只有一个
进行中的请求。启动新请求会先取消旧请求再登记新请求；结束或取消时用
generation 比较来判断请求是否仍是当前占用者，过期的 finish/cancel 不做任何事。

取消是协作式的：CancelToken 只发出信号，由 run_in_slot 把信号转成
对应 asyncio 任务的 cancel()，任务在下一个 await 处退出。
"""

import asyncio
import itertools
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from assist_core.domain.exceptions import RequestCancelled
from assist_core.infrastructure.logging.logger import logger


T = TypeVar("T")

QUICK_ANSWER = "quick-answer"
TRANSLATE = "translate"
CHAT_STREAM = "chat-stream"
DEFAULT_SLOTS = (QUICK_ANSWER, TRANSLATE, CHAT_STREAM)


class CancelToken:
    """线程安全的协作式取消信号。"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """发出取消信号；只有第一次调用返回 True 并触发回调。"""

        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        return True

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return
        callback()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled()


@dataclass(frozen=True)
class InFlightRequest:
    generation: int
    token: CancelToken


class _Slot:
    __slots__ = ("lock", "current")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.current: Optional[InFlightRequest] = None


class RequestRegistry:
    """按 slot 管理进行中请求；每个 slot 一把锁，不同 slot 互不竞争。"""

    def __init__(self, slots: Iterable[str] = DEFAULT_SLOTS):
        self._counter = itertools.count(1)
        self._counter_lock = threading.Lock()
        self._slots: Dict[str, _Slot] = {name: _Slot() for name in slots}
        self._slots_lock = threading.Lock()

    def _slot(self, name: str) -> _Slot:
        slot = self._slots.get(name)
        if slot is None:
            with self._slots_lock:
                slot = self._slots.setdefault(name, _Slot())
        return slot

    def _next_generation(self) -> int:
        with self._counter_lock:
            return next(self._counter)

    def start(self, slot_name: str) -> Tuple[int, CancelToken]:
        """登记新请求；若 slot 已被占用，同步取消旧请求（不等待其真正停止）。"""

        token = CancelToken()
        slot = self._slot(slot_name)
        # 分配与登记在同一把 slot 锁内完成，保证 slot 内 generation 单调递增
        with slot.lock:
            generation = self._next_generation()
            previous, slot.current = slot.current, InFlightRequest(generation, token)
        if previous is not None:
            previous.token.cancel()
            logger.info(
                "Request superseded",
                extra={"extra": {"slot": slot_name, "generation": previous.generation, "by": generation}},
            )
        return generation, token

    def finish(self, slot_name: str, generation: int) -> bool:
        """generation 与当前占用者一致时清空 slot，否则什么也不做。"""

        slot = self._slot(slot_name)
        with slot.lock:
            if slot.current is not None and slot.current.generation == generation:
                slot.current = None
                return True
        return False

    def cancel(self, slot_name: str) -> Optional[int]:
        """取消并清空当前占用者，返回被取消的 generation；空闲时返回 None。"""

        slot = self._slot(slot_name)
        with slot.lock:
            previous, slot.current = slot.current, None
        if previous is None:
            return None
        previous.token.cancel()
        return previous.generation

    def current(self, slot_name: str) -> Optional[int]:
        slot = self._slot(slot_name)
        with slot.lock:
            return slot.current.generation if slot.current is not None else None


async def run_in_slot(
    registry: RequestRegistry,
    slot_name: str,
    work: Callable[[CancelToken], Awaitable[T]],
    log_name: Optional[str] = None,
) -> T:
    """在 slot 中运行 work，被取代或被取消时抛出 RequestCancelled。

    无论成功、失败还是取消，退出时都会调用一次 registry.finish。
    """

    name = log_name or slot_name
    generation, token = registry.start(slot_name)
    logger.info(f"[{name}][id={generation}] started", extra={"extra": {"slot": slot_name, "generation": generation}})
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(work(token))

    def _cancel_task() -> None:
        loop.call_soon_threadsafe(task.cancel)

    token.add_callback(_cancel_task)
    try:
        result = await task
    except asyncio.CancelledError:
        if token.cancelled and not _current_task_cancelling():
            logger.info(f"[{name}][id={generation}] canceled")
            raise RequestCancelled(slot=slot_name, generation=generation)
        # 外层调用方被取消：连同内部任务一起退出
        task.cancel()
        raise
    except RequestCancelled:
        logger.info(f"[{name}][id={generation}] canceled")
        raise
    except Exception as exc:
        logger.info(f"[{name}][id={generation}] ended error: {exc}")
        raise
    finally:
        registry.finish(slot_name, generation)
    logger.info(f"[{name}][id={generation}] ended ok")
    return result


def _current_task_cancelling() -> bool:
    task = asyncio.current_task()
    cancelling = getattr(task, "cancelling", None)
    return bool(cancelling and cancelling())
