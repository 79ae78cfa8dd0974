"""偏好实体 -> chip 标签的归一化。

每个业务域对应一张固定的字段表，表中每一项是 ``(字段名, 提取规则)``：

- list: 列表字段，每个非空字符串元素生成一个 chip（原样或套模板）。
- scalar: 标量字段，非空字符串套模板生成一个 chip；部分字段在标量缺失时
  退而取单元素列表的第一项。
- negated: 否定列表字段，每个元素前加 ``"Not "``。

此外 ``chips`` 字段（服务端已格式化好的标签）总会被合并进来。
normalize 是纯函数，对任意形状的输入都不会抛异常：类型不对、为空、缺失的字段
只是不产生 chip。
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Set, Tuple

from askai_core.domain.exceptions import ValidationError
from askai_core.domain.models import DOMAINS, ChipSet


RuleKind = Literal["list", "scalar", "negated"]

PASSTHROUGH_FIELD = "chips"


def stops_label(value: str) -> str:
    """"0" -> Non-stop，"1" -> 1 stop，其他 -> "<n> stops"。"""

    if value == "0":
        return "Non-stop"
    if value == "1":
        return "1 stop"
    return f"{value} stops"


@dataclass(frozen=True)
class FieldRule:
    """单个字段的提取规则。

    template 用 ``{}`` 占位；formatter 存在时优先于 template。
    list_fallback 只对 scalar 生效：标量缺失时接受单元素列表。
    """

    key: str
    kind: RuleKind = "list"
    template: str = "{}"
    formatter: Optional[Callable[[str], str]] = None
    list_fallback: bool = False

    def label(self, value: str) -> str:
        if self.formatter is not None:
            return self.formatter(value)
        return self.template.format(value)

    def extract(self, entity: Mapping[str, Any]) -> List[str]:
        raw = entity.get(self.key)
        if self.kind == "scalar":
            value = _scalar(raw, self.list_fallback)
            return [self.label(value)] if value else []
        return [self.label(v) for v in _strings(raw)]


FLIGHT_FIELDS: Tuple[FieldRule, ...] = (
    FieldRule("trip_duration", "scalar", "Trip duration: {}"),
    FieldRule("preferred_airlines"),
    FieldRule("not_preferred_airlines", "negated", "Not {}"),
    FieldRule("preferred_departure_time", template="Departure: {}"),
    FieldRule("preferred_arrival_time", template="Arrival: {}"),
    FieldRule("preferred_return_time", template="Return: {}"),
    FieldRule("stops_preference", formatter=stops_label),
    FieldRule("preferred_flight_duration", "scalar", "Flight duration: {}"),
    FieldRule("preferred_layover_airport_or_city", template="Layover at {}"),
    FieldRule("preferred_layover_duration", "scalar", "Layover duration: {} hours"),
    FieldRule("preferred_baggage_preference", "scalar", "Baggage: {}"),
    FieldRule("checked_baggage_weight_preference", template="Baggage weight {}"),
    FieldRule("flight_budget", "scalar", "Budget: {}"),
    FieldRule("flight_amenities"),
    FieldRule("other_flight_preferences"),
)

HOTEL_FIELDS: Tuple[FieldRule, ...] = (
    FieldRule("star_rating", template="{} star"),
    FieldRule("preferred_user_rating", "scalar", "User Ratings: {}", list_fallback=True),
    FieldRule("stay_budget", "scalar", "Budget: {}"),
    FieldRule("amenities"),
    FieldRule("accommodation_type", "scalar", "Accommodation Type: {}"),
    FieldRule("preferred_room_type"),
    FieldRule("preferred_hotel_names"),
    FieldRule("preferred_stay_location", "scalar", "Near {}"),
    FieldRule("preferred_hotel_brand"),
    FieldRule("other_stay_preferences"),
)

FIELD_TABLES: Dict[str, Tuple[FieldRule, ...]] = {
    "flight": FLIGHT_FIELDS,
    "hotel": HOTEL_FIELDS,
}


def field_table(domain: str) -> Tuple[FieldRule, ...]:
    """返回业务域对应的字段表；未知 domain 属于调用方错误。"""

    try:
        return FIELD_TABLES[domain]
    except KeyError:
        raise ValidationError(
            code="UNKNOWN_DOMAIN",
            message=f"domain must be one of {DOMAINS}, got {domain!r}",
        ) from None


def normalize(entity: Any, domain: str) -> ChipSet:
    """把一个偏好实体归一化为 chip 集合。

    Args:
        entity: 解码后的实体字典；不是 Mapping 时视为空实体。
        domain: "flight" 或 "hotel"，决定使用哪张字段表。

    Returns:
        去重后的 chip 集合，不含空字符串。
    """

    table = field_table(domain)
    chips: Set[str] = set()
    if not isinstance(entity, Mapping):
        return chips
    for rule in table:
        chips.update(rule.extract(entity))
    chips.update(_strings(entity.get(PASSTHROUGH_FIELD)))
    chips.discard("")
    return chips


def _strings(raw: Any) -> Iterable[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [v for v in raw if isinstance(v, str) and v.strip()]


def _scalar(raw: Any, list_fallback: bool) -> Optional[str]:
    if isinstance(raw, str):
        return raw if raw.strip() else None
    if list_fallback:
        values = list(_strings(raw))
        if values:
            return values[0]
    return None
