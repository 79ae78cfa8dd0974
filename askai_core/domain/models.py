"""流式管道共享的数据模型。

- Domain: 偏好实体所属的业务域（flight / hotel），决定 Normalizer 用哪张字段表。
- SessionState: Stream Session 的状态机状态。
- FrameEvent / ErrorEvent / ClosedEvent: Session 事件通道中流出的三类事件，
  调用方既可以通过回调接收，也可以通过 ``StreamSession.events()`` 顺序消费。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Literal, Optional, Set, Union

from askai_core.domain.exceptions import BusinessError


# 偏好实体的业务域；只作为 Normalizer 的输入参数，从不根据实体内容推断
Domain = Literal["flight", "hotel"]
DOMAINS = ("flight", "hotel")

# Chip 集合：去重后的可读标签
ChipSet = Set[str]


class SessionState(str, Enum):
    """Stream Session 的连接状态，只由 Session 自己修改。"""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR_BACKOFF = "error_backoff"


@dataclass(frozen=True)
class FrameEvent:
    """一帧成功解码后的结果。

    - frame: 组帧器产出的原始帧文本（含外层包装）。
    - text: 拆包后的 JSON 文本，供需要自行解码的调用方使用。
    - payload: ``json.loads(text)`` 的结果。
    - chips: Session 配置了 domain 时，归一化后的 chip 集合；否则为 None。
    """

    frame: str
    text: str
    payload: Any
    chips: Optional[FrozenSet[str]] = None


@dataclass(frozen=True)
class ErrorEvent:
    """传输层错误，每次连接失败只上报一次。"""

    error: BusinessError
    attempt: int = 0


@dataclass(frozen=True)
class ClosedEvent:
    """连接进入终止状态（主动断开或重试次数耗尽）。"""

    reason: str
    meta: Dict[str, Any] = field(default_factory=dict)


StreamEvent = Union[FrameEvent, ErrorEvent, ClosedEvent]
