"""偏好实体归一化：字段表、normalize 以及负载辅助函数。"""

from askai_core.chips.normalizer import FIELD_TABLES, FieldRule, normalize
from askai_core.chips.payload import chips_from_payload, entities_from_payload

__all__ = ["FIELD_TABLES", "FieldRule", "normalize", "chips_from_payload", "entities_from_payload"]
