"""对外 API 服务模块。

把 Settings 中的后端地址、鉴权信息组装成订阅请求，交给 StreamSession。
一次性的 POST 请求不在本模块范围内。
"""

from typing import Callable, FrozenSet, Optional
from urllib.parse import urlencode

from askai_core.config.settings import Settings, settings as default_settings
from askai_core.domain.exceptions import BusinessError, ValidationError
from askai_core.domain.models import Domain, FrameEvent
from askai_core.infrastructure.logging.logger import logger
from askai_core.stream.config import SessionConfig
from askai_core.stream.session import StreamSession


class AskAIService:
    """Ask AI 事件订阅服务。

    - base_url: 后端基础地址，订阅地址为 ``<base_url>/askai/subscribe?searchId=<id>``。
    - session: 持有的唯一 StreamSession；重复订阅会先断开旧连接。
    """

    def __init__(self, base_url: str, config: Optional[SessionConfig] = None):
        if not base_url:
            raise ValidationError(code="MISSING_BASE_URL", message="base_url must not be empty")
        self.base_url = base_url.rstrip("/")
        self.session = StreamSession(config)

    def subscribe_url(self, search_id: str) -> str:
        return f"{self.base_url}/askai/subscribe?{urlencode({'searchId': search_id})}"

    def subscribe_to_events(
        self,
        search_id: str,
        auth_token: Optional[str],
        on_event: Callable[[FrameEvent], None],
        on_error: Callable[[BusinessError], None],
        on_chips: Optional[Callable[[FrozenSet[str]], None]] = None,
    ) -> None:
        """订阅某次搜索的实时事件，结果通过回调返回。"""

        if not search_id:
            raise ValidationError(code="MISSING_SEARCH_ID", message="search_id must not be empty")
        url = self.subscribe_url(search_id)
        logger.info("Subscribing to Ask AI events", extra={"extra": {"search_id": search_id}})
        self.session.connect(
            url,
            auth_token,
            on_event=on_event,
            on_error=on_error,
            on_chips=on_chips,
        )

    def disconnect(self) -> None:
        logger.info("Disconnecting Ask AI event stream")
        self.session.disconnect()

    def __del__(self):
        session = getattr(self, "session", None)
        if session is not None:
            session.disconnect()


def create_service(
    settings: Optional[Settings] = None,
    *,
    domain: Optional[Domain] = None,
    **overrides,
) -> AskAIService:
    """根据 Settings 创建 AskAIService，默认取全局配置。

    每次调用都返回新实例，不做单例缓存。
    """

    cfg = settings or default_settings
    session_config = SessionConfig.from_settings(cfg, domain=domain, **overrides)
    return AskAIService(cfg.askai_base_url, session_config)
