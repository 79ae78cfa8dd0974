"""统一业务异常模型。

Ask AI 流式管道中所有跨模块抛出的错误都继承自 BusinessError，
便于 Session 层按类型决定：跳过当前帧、触发重连，还是直接抛给调用方。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "HTTP_ERROR"）。
        message: 可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 endpoint、frame 片段等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """传输层错误：连接被拒、DNS 失败、非 2xx 状态码、流中断等。

    会终止当前连接并触发重连策略，同时通过 on_error 回调告知调用方一次。
    """


class MalformedEncodingError(BusinessError):
    """收到的字节块不是合法 UTF-8，该块被整体丢弃。"""


class EnvelopeFormatError(BusinessError):
    """帧的外层包装无法识别（或识别失败后在 JSON 解码阶段报错）。"""


class DecodeError(BusinessError):
    """帧已成功拆包，但内部文本不是合法 JSON。"""


class NoEntityError(BusinessError):
    """JSON 合法但不含任何实体；上层将其视为空的 chip 集合而不是失败。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
