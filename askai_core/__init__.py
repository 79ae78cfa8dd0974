"""Ask AI 核心包。

提供旅行应用 Ask AI 功能的流式接入与偏好归一化能力：
事件流组帧、外层包装拆解、连接会话与重连策略，
以及把航班/酒店偏好实体转换成可读 chip 标签。
"""

from askai_core.chips import chips_from_payload, normalize
from askai_core.stream import FrameAssembler, RetryPolicy, SessionConfig, StreamSession, unwrap

__all__ = [
    "FrameAssembler",
    "RetryPolicy",
    "SessionConfig",
    "StreamSession",
    "chips_from_payload",
    "normalize",
    "unwrap",
]
