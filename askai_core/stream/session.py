"""Ask AI 事件流会话。

StreamSession 负责：

1. 在后台线程里发起 GET 订阅请求（无读超时），``connect`` 立即返回。
2. 把收到的字节交给 FrameAssembler，把帧交给 envelope 拆包、JSON 解码，
   配置了 domain 时再做 chip 归一化。
3. 把结果作为 FrameEvent 放进事件通道，并通过 dispatcher 投递给回调。
4. 传输层失败时上报一次 ErrorEvent，再按 RetryPolicy 重连。

状态机：DISCONNECTED -> CONNECTING -> CONNECTED，失败进入 ERROR_BACKOFF，
等待后回到 CONNECTING；任何状态下 ``disconnect()`` 都回到 DISCONNECTED。

每次 connect 都会递增 generation。所有投递在会话锁内核对 generation，
所以 ``disconnect()`` 返回后旧连接的数据不会再到达回调或事件通道。
"""

import json
import queue
import threading
from typing import Any, Callable, Dict, FrozenSet, Iterator, Optional

import httpx

from askai_core.chips.payload import chips_from_payload
from askai_core.domain.exceptions import (
    BusinessError,
    DecodeError,
    EnvelopeFormatError,
    MalformedEncodingError,
    TransportError,
    ValidationError,
)
from askai_core.domain.models import (
    ClosedEvent,
    ErrorEvent,
    FrameEvent,
    SessionState,
    StreamEvent,
)
from askai_core.infrastructure.logging.logger import logger, truncate
from askai_core.stream.config import SessionConfig
from askai_core.stream.envelope import unwrap_frame
from askai_core.stream.frame_assembler import FrameAssembler


EventHandler = Callable[[FrameEvent], None]
ErrorHandler = Callable[[BusinessError], None]
ChipsHandler = Callable[[FrozenSet[str]], None]

# OpenAI 风格的流结束标记，不携带负载
DONE_SENTINEL = "[DONE]"


def decode_frame(frame: str, domain: Optional[str] = None) -> Optional[FrameEvent]:
    """把一帧解码为 FrameEvent。

    SSE 注释、只有控制字段的帧以及 ``[DONE]`` 返回 None。
    包装无法识别且内容不是 JSON 时抛 EnvelopeFormatError；
    包装已识别但内容不是 JSON 时抛 DecodeError。
    """

    unwrapped = unwrap_frame(frame)
    text = unwrapped.text.strip()
    if unwrapped.shape == "comment" or text == DONE_SENTINEL:
        return None
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        if unwrapped.recognized:
            raise DecodeError(
                code="INVALID_JSON",
                message=f"frame payload is not valid JSON: {e.msg}",
                frame=truncate(frame),
            ) from e
        raise EnvelopeFormatError(
            code="UNRECOGNIZED_ENVELOPE",
            message="frame has no known envelope and is not bare JSON",
            frame=truncate(frame),
        ) from e
    chips = None
    if domain is not None:
        chips = frozenset(chips_from_payload(payload, domain))
    return FrameEvent(frame=frame, text=text, payload=payload, chips=chips)


class StreamSession:
    """单条 Ask AI 事件流连接。

    同一时刻只存在一个活动连接；在连接中再次调用 ``connect`` 会先断开旧连接。
    回调可以在构造时传入，也可以在 ``connect`` 时覆盖。
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        *,
        on_event: Optional[EventHandler] = None,
        on_error: Optional[ErrorHandler] = None,
        on_chips: Optional[ChipsHandler] = None,
    ):
        self._config = config or SessionConfig()
        self._on_event = on_event
        self._on_error = on_error
        self._on_chips = on_chips

        self._lock = threading.RLock()
        self._assembler = FrameAssembler()
        self._state = SessionState.DISCONNECTED
        self._generation = 0
        self._stop: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None
        self._response: Any = None
        self._channel: "queue.Queue[StreamEvent]" = queue.Queue()

    # ---- public API ----------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> SessionConfig:
        return self._config

    def connect(
        self,
        endpoint: str,
        credentials: Optional[str] = None,
        *,
        on_event: Optional[EventHandler] = None,
        on_error: Optional[ErrorHandler] = None,
        on_chips: Optional[ChipsHandler] = None,
    ) -> None:
        """开始订阅 endpoint；不阻塞，结果全部通过回调/事件通道返回。

        Args:
            endpoint: 完整的订阅 URL。
            credentials: 放入 ``authorization`` 请求头的值（可选）。
        """

        if not endpoint:
            raise ValidationError(code="MISSING_ENDPOINT", message="endpoint must not be empty")

        headers: Dict[str, str] = {"Accept": "text/event-stream"}
        headers.update(self._config.headers)
        if credentials:
            headers["authorization"] = credentials

        with self._lock:
            stale = self._teardown(reason="reconnect", emit_closed=False)
            if on_event is not None:
                self._on_event = on_event
            if on_error is not None:
                self._on_error = on_error
            if on_chips is not None:
                self._on_chips = on_chips
            self._generation += 1
            generation = self._generation
            stop = threading.Event()
            self._stop = stop
            self._set_state(generation, SessionState.CONNECTING)
            worker = threading.Thread(
                target=self._run,
                args=(generation, endpoint, headers, stop),
                name=f"askai-stream-{generation}",
                daemon=True,
            )
            self._worker = worker
        _close_quietly(stale)
        logger.info("Connecting to stream", extra={"extra": {"endpoint": endpoint, "generation": generation}})
        worker.start()

    def disconnect(self) -> None:
        """断开连接并清空缓冲区；幂等，可在任意状态、任意线程调用。

        返回后不会再有任何回调被触发。
        """

        with self._lock:
            response = self._teardown(reason="disconnect", emit_closed=True)
        _close_quietly(response)

    def events(self, timeout: Optional[float] = None) -> Iterator[StreamEvent]:
        """按顺序消费事件通道，遇到 ClosedEvent 或等待超时后结束。"""

        while True:
            try:
                event = self._channel.get(timeout=timeout)
            except queue.Empty:
                return
            yield event
            if isinstance(event, ClosedEvent):
                return

    def process_data(self, chunk: bytes, generation: Optional[int] = None) -> None:
        """处理一个入站字节块（传输线程调用）。

        会话已断开或 generation 已过期时直接丢弃。
        """

        with self._lock:
            if generation is None:
                generation = self._generation
            if generation != self._generation or self._state == SessionState.DISCONNECTED:
                logger.debug("Dropped chunk for inactive connection", extra={"extra": {"bytes": len(chunk)}})
                return
            try:
                frames = self._assembler.feed(chunk)
            except MalformedEncodingError:
                return
        for frame in frames:
            event = self._decode(frame)
            if event is not None:
                self._publish(generation, event)

    def __enter__(self) -> "StreamSession":
        return self

    def __exit__(self, *exc) -> bool:
        self.disconnect()
        return False

    def __del__(self):
        try:
            self.disconnect()
        except AttributeError:
            # __init__ 未完成
            pass

    # ---- worker --------------------------------------------------

    def _run(self, generation: int, endpoint: str, headers: Dict[str, str], stop: threading.Event) -> None:
        policy = self._config.retry
        timeout = httpx.Timeout(None, connect=self._config.connect_timeout)
        attempt = 0

        def connected() -> None:
            nonlocal attempt
            attempt = 0

        while not stop.is_set():
            self._set_state(generation, SessionState.CONNECTING)
            error: Optional[TransportError] = None
            try:
                self._stream_once(generation, endpoint, headers, timeout, stop, connected)
                if stop.is_set():
                    return
                logger.info("Stream closed by server", extra={"extra": {"endpoint": endpoint}})
            except TransportError as e:
                error = e
            except httpx.HTTPError as e:
                error = TransportError(
                    code="NETWORK_ERROR",
                    message=str(e) or type(e).__name__,
                    endpoint=endpoint,
                )
            except Exception as e:
                if stop.is_set():
                    return
                logger.exception("Stream worker failed", extra={"extra": {"endpoint": endpoint}})
                error = TransportError(code="STREAM_FAILED", message=str(e) or type(e).__name__, endpoint=endpoint)

            if stop.is_set():
                return
            attempt += 1
            self._set_state(generation, SessionState.ERROR_BACKOFF)
            if error is not None:
                logger.warning(
                    f"Stream transport error: {error.message}",
                    extra={"extra": {"code": error.code, "attempt": attempt, "endpoint": endpoint}},
                )
                self._publish(generation, ErrorEvent(error=error, attempt=attempt))
            if not policy.should_retry(attempt):
                reason = "retry_disabled" if not policy.enabled else "retries_exhausted"
                self._finish(generation, reason, attempt)
                return
            if stop.wait(policy.delay):
                return

    def _stream_once(
        self,
        generation: int,
        endpoint: str,
        headers: Dict[str, str],
        timeout: httpx.Timeout,
        stop: threading.Event,
        on_connected: Callable[[], None],
    ) -> None:
        """跑一次连接，直到服务端关闭或 stop 被置位。"""

        with httpx.Client(timeout=timeout, trust_env=False) as client:
            with client.stream("GET", endpoint, headers=headers) as resp:
                if not 200 <= resp.status_code < 300:
                    raise TransportError(
                        code="HTTP_ERROR",
                        message=f"HTTP error {resp.status_code}",
                        http_status=resp.status_code,
                        endpoint=endpoint,
                    )
                if not self._attach(generation, resp):
                    return
                self._set_state(generation, SessionState.CONNECTED)
                # 成功建立连接后重连计数清零
                on_connected()
                try:
                    for chunk in resp.iter_bytes():
                        if stop.is_set():
                            break
                        self.process_data(chunk, generation)
                finally:
                    self._detach(generation)

    # ---- internals -----------------------------------------------

    def _decode(self, frame: str) -> Optional[FrameEvent]:
        logger.debug(f"Received frame: {truncate(frame)}")
        try:
            return decode_frame(frame, self._config.domain)
        except (EnvelopeFormatError, DecodeError) as e:
            logger.warning(
                f"Skipped frame: {e.message}",
                extra={"extra": {"code": e.code, "frame": truncate(frame)}},
            )
            return None

    def _publish(self, generation: int, event: StreamEvent) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._channel.put(event)

        def invoke() -> None:
            with self._lock:
                if generation != self._generation:
                    return
                self._invoke_handlers(event)

        dispatcher = self._config.dispatcher
        if dispatcher is None:
            invoke()
        else:
            dispatcher(invoke)

    def _invoke_handlers(self, event: StreamEvent) -> None:
        try:
            if isinstance(event, FrameEvent):
                if self._on_event is not None:
                    self._on_event(event)
                if event.chips is not None and self._on_chips is not None:
                    self._on_chips(event.chips)
            elif isinstance(event, ErrorEvent):
                if self._on_error is not None:
                    self._on_error(event.error)
        except Exception:
            logger.exception("Stream handler raised", extra={"extra": {"event": type(event).__name__}})

    def _set_state(self, generation: int, state: SessionState) -> None:
        with self._lock:
            if generation != self._generation or self._state == state:
                return
            logger.debug(
                "Session state change",
                extra={"extra": {"from": self._state.value, "to": state.value, "generation": generation}},
            )
            self._state = state

    def _attach(self, generation: int, response: Any) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._response = response
            return True

    def _detach(self, generation: int) -> None:
        with self._lock:
            if generation == self._generation:
                self._response = None
                # 连接中断时残留的半帧不能拼到下一条连接上
                self._assembler.reset()

    def _finish(self, generation: int, reason: str, attempt: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            logger.info("Stream session stopped", extra={"extra": {"reason": reason, "attempt": attempt}})
            # 不作废 generation：已经排队、尚未执行的回调仍然有效
            self._teardown(reason=reason, emit_closed=True, meta={"attempt": attempt}, invalidate=False)

    def _teardown(
        self,
        reason: str,
        emit_closed: bool,
        meta: Optional[Dict[str, Any]] = None,
        invalidate: bool = True,
    ) -> Any:
        """在锁内调用：停止当前连接，返回待关闭的响应对象。

        invalidate 为 True 时递增 generation，之后旧连接的任何投递都会被丢弃；
        即使连接早已结束也会递增，保证 disconnect 之后不再有回调。
        """

        if invalidate:
            self._generation += 1
        if self._stop is None:
            return None
        self._stop.set()
        self._stop = None
        self._state = SessionState.DISCONNECTED
        self._assembler.reset()
        self._worker = None
        response, self._response = self._response, None
        if emit_closed:
            self._channel.put(ClosedEvent(reason=reason, meta=meta or {}))
        logger.info("Stream session disconnected", extra={"extra": {"reason": reason}})
        return response


def _close_quietly(response: Any) -> None:
    """尽力关闭仍在读取的响应，让工作线程尽快退出。"""

    if response is None:
        return
    try:
        response.close()
    except (httpx.HTTPError, OSError, RuntimeError) as e:
        logger.debug(f"Closing stream response failed: {e}")
