"""流式接入层。

该包下的模块负责：
- 把字节流拼装成帧 (frame_assembler)。
- 拆解帧的外层包装 (envelope)。
- 维护连接状态机与重连策略 (session / config)。
"""

from askai_core.stream.config import RetryPolicy, SessionConfig
from askai_core.stream.envelope import unwrap, unwrap_frame
from askai_core.stream.frame_assembler import FrameAssembler
from askai_core.stream.session import StreamSession, decode_frame

__all__ = [
    "FrameAssembler",
    "RetryPolicy",
    "SessionConfig",
    "StreamSession",
    "decode_frame",
    "unwrap",
    "unwrap_frame",
]
