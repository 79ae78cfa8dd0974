"""Stream Session 的显式配置。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from askai_core.domain.models import Domain


# 把一次回调投递到调用方期望的执行上下文（例如 UI 线程的 call_soon）
Dispatcher = Callable[[Callable[[], None]], None]


@dataclass(frozen=True)
class RetryPolicy:
    """连接失败后的重连策略。

    Attributes:
        enabled: False 表示失败后不自动重连，直接进入终止状态。
        delay: 每次重连前的固定等待秒数，0 即立即重连。
        max_attempts: 连续失败的最大重连次数；None 表示不限。
            连接成功（收到 2xx）后计数清零。
    """

    enabled: bool = True
    delay: float = 3.0
    max_attempts: Optional[int] = None

    def __post_init__(self) -> None:
        if self.delay < 0:
            object.__setattr__(self, "delay", 0.0)

    def should_retry(self, attempt: int) -> bool:
        """attempt 为已连续失败的次数（从 1 开始）。"""

        if not self.enabled:
            return False
        return self.max_attempts is None or attempt <= self.max_attempts


@dataclass(frozen=True)
class SessionConfig:
    """构造 StreamSession 时传入的配置值，替代全局单例配置。

    Attributes:
        connect_timeout: 建立连接的超时（秒）；读超时始终为无限，只受 disconnect 约束。
        retry: 重连策略。
        domain: 设置后每帧都会按该业务域归一化出 chip 集合。
        headers: 每次请求额外附带的请求头。
        dispatcher: 回调投递器；为空时直接在工作线程上调用。
            必须是非阻塞的（只负责排队），否则会与 Session 锁互相等待。
    """

    connect_timeout: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    domain: Optional[Domain] = None
    headers: Dict[str, str] = field(default_factory=dict)
    dispatcher: Optional[Dispatcher] = None

    @classmethod
    def from_settings(cls, settings, **overrides) -> "SessionConfig":
        """根据 Settings 构造；overrides 覆盖同名字段。"""

        retry = RetryPolicy(
            enabled=settings.stream_retry_enabled,
            delay=settings.stream_retry_delay,
            max_attempts=settings.stream_retry_max_attempts,
        )
        values = {
            "connect_timeout": settings.http_connect_timeout,
            "retry": retry,
            "headers": {"Accept-Language": settings.askai_language},
        }
        values.update(overrides)
        return cls(**values)
