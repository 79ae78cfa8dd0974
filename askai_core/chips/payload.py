"""从解码后的响应负载中定位实体并生成 chip。

后端的几种响应形态：

- 流式：``{"status_code": 200, "content": {"message": "...", "entities": [...]}}``
- 一次性：``{"status": "success", "message": {"entities": [...]}}``
- 简化：``{"entities": [...]}``

只取第一个实体，与移动端展示一致。
"""

from typing import Any, Dict, List

from askai_core.chips.normalizer import normalize
from askai_core.domain.exceptions import NoEntityError
from askai_core.domain.models import ChipSet
from askai_core.infrastructure.logging.logger import logger


_ENTITY_CONTAINERS = ("content", "message")


def entities_from_payload(payload: Any) -> List[Dict[str, Any]]:
    """返回负载中的实体列表；找不到或为空时抛 NoEntityError。"""

    if isinstance(payload, dict):
        candidates = [payload.get(key) for key in _ENTITY_CONTAINERS]
        candidates.append(payload)
        for container in candidates:
            if not isinstance(container, dict):
                continue
            entities = container.get("entities")
            if isinstance(entities, list):
                found = [e for e in entities if isinstance(e, dict)]
                if found:
                    return found
    raise NoEntityError(code="NO_ENTITY", message="payload carries no entities")


def chips_from_payload(payload: Any, domain: str) -> ChipSet:
    """归一化负载中的第一个实体；没有实体时返回空集合。"""

    try:
        entities = entities_from_payload(payload)
    except NoEntityError:
        logger.debug("No entities in payload")
        return set()
    chips = normalize(entities[0], domain)
    logger.info(
        "Extracted chips",
        extra={"extra": {"domain": domain, "count": len(chips)}},
    )
    return chips
