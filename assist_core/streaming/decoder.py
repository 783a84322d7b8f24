"""按行分隔的 JSON 流解码器。

Ollama 的流式响应每行是一个独立的 JSON 文档，但网络层交付的字节块
可能在任意位置切断一行。本模块把“切行”和“解析”拆开：

- split_lines: 纯函数，(缓冲区, 新字节) -> (完整行列表, 剩余缓冲区)。
- parse_line: 把一行解析为零个或多个 StreamEvent，格式错误的行直接跳过。
- LineDecoder: 组合以上两者的有状态包装，保证终止事件恰好出现一次。
- decode_stream: 基于 LineDecoder 的异步生成器，读到 done 行即停止。
"""

import json
from typing import AsyncIterable, AsyncIterator, List, Tuple

from assist_core.domain.models import StreamEvent
from assist_core.infrastructure.logging.logger import logger


NEWLINE = b"\n"


def split_lines(buffer: bytes, chunk: bytes) -> Tuple[List[bytes], bytes]:
    """追加 chunk 后取出所有以换行结尾的完整行（含换行符）。"""

    data = buffer + chunk
    lines: List[bytes] = []
    start = 0
    while True:
        pos = data.find(NEWLINE, start)
        if pos < 0:
            break
        lines.append(data[start:pos + 1])
        start = pos + 1
    return lines, data[start:]


def parse_line(line: bytes) -> List[StreamEvent]:
    if len(line) <= 1:
        return []
    try:
        data = json.loads(line)
    except (ValueError, UnicodeDecodeError) as exc:
        logger.debug("Skipping malformed stream line", extra={"extra": {"error": str(exc)}})
        return []
    if not isinstance(data, dict):
        logger.debug("Skipping non-object stream line")
        return []

    message = data.get("message")
    done = data.get("done", False)
    if (message is not None and not isinstance(message, dict)) or not isinstance(done, bool):
        logger.debug("Skipping stream line with unexpected shape")
        return []

    events: List[StreamEvent] = []
    content = (message or {}).get("content")
    if isinstance(content, str) and content:
        events.append(StreamEvent(content_fragment=content))
    if done:
        events.append(StreamEvent(content_fragment="", is_final=True))
    return events


class LineDecoder:
    """增量解码器；同一份字节无论如何切块，产出的事件序列都相同。"""

    def __init__(self) -> None:
        self._buffer = b""
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        if self._finished:
            return []
        lines, self._buffer = split_lines(self._buffer, chunk)
        events: List[StreamEvent] = []
        for line in lines:
            for event in parse_line(line):
                events.append(event)
                if event.is_final:
                    self._finished = True
                    self._buffer = b""
                    return events
        return events

    def close(self) -> List[StreamEvent]:
        """上游结束时调用；若从未见到 done 行，补发一个终止事件。

        缓冲区中残留的不完整行被丢弃。
        """

        if self._finished:
            return []
        self._finished = True
        if self._buffer.strip():
            logger.debug("Discarding unterminated stream tail", extra={"extra": {"bytes": len(self._buffer)}})
        self._buffer = b""
        return [StreamEvent(content_fragment="", is_final=True)]


async def decode_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    decoder = LineDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.finished:
            return
    for event in decoder.close():
        yield event
