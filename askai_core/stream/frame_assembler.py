"""SSE 组帧器。

把传输层按到达顺序交来的原始字节块重新拼成一帧一帧的事件文本：

1. 用增量 UTF-8 解码器解码（多字节字符被块边界切开时会等待后续字节）。
2. 追加到内部缓冲区。
3. 反复查找分隔符 ``"\\n\\n"``，每找到一次就切出一帧，直到缓冲区里不再有完整帧。

组帧器只持有 Session 私有的缓冲状态，不做任何加锁；同一个实例不能被并发调用。
"""

import codecs
from typing import List

from askai_core.domain.exceptions import MalformedEncodingError
from askai_core.infrastructure.logging.logger import logger


FRAME_DELIMITER = "\n\n"


class FrameAssembler:
    """把字节流拼装成 SSE 帧。"""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._buffer = ""

    @property
    def buffered(self) -> str:
        """尚未凑成完整帧的剩余文本。"""

        return self._buffer

    def feed(self, chunk: bytes) -> List[str]:
        """喂入一个字节块，返回本次凑齐的全部帧（按完成顺序）。

        非法 UTF-8 会抛出 MalformedEncodingError，并且该块被整体丢弃：
        缓冲区与解码器状态都保持在调用前的样子。
        上一块末尾残留的多字节前缀如果与本块拼不成合法字符，
        丢弃的是那段前缀，本块单独重新解码。
        """

        state = self._decoder.getstate()
        try:
            text = self._decoder.decode(bytes(chunk))
        except UnicodeDecodeError as e:
            pending = state[0]
            if e.start < len(pending):
                logger.warning(
                    "Dropped truncated UTF-8 sequence",
                    extra={"extra": {"bytes": len(pending), "reason": e.reason}},
                )
                self._decoder.reset()
                return self.feed(chunk)
            self._decoder.setstate(state)
            logger.warning(
                "Dropped non-UTF8 chunk",
                extra={"extra": {"bytes": len(chunk), "reason": e.reason}},
            )
            raise MalformedEncodingError(
                code="MALFORMED_ENCODING",
                message=f"chunk is not valid UTF-8: {e.reason}",
                size=len(chunk),
            ) from e

        if not text:
            return []
        # CRLF 统一成 LF；孤立的 "\r" 留在缓冲区末尾，等下一块补上 "\n"
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        return self._drain()

    def _drain(self) -> List[str]:
        frames: List[str] = []
        while True:
            idx = self._buffer.find(FRAME_DELIMITER)
            if idx < 0:
                break
            frame = self._buffer[:idx]
            self._buffer = self._buffer[idx + len(FRAME_DELIMITER):]
            if not frame.strip():
                # keep-alive 填充
                continue
            frames.append(frame)
        return frames

    def reset(self) -> None:
        """断开连接时清空缓冲区与解码器状态。"""

        self._buffer = ""
        self._decoder.reset()
