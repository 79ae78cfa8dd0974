"""帧外层包装的拆解。

后端会发出两种形态的帧：

1. 旧版转义包装：``Ask AI event: data("data: {\\"k\\":\\"v\\"}")``，
   引号内是反斜杠转义过的文本，反转义后可能还带一层 ``data: `` 前缀。
   整段外面也可能再包一层标准 SSE 的 ``data: ``。
2. 标准 SSE：``data: {"k":"v"}``（可带 ``event:``/``id:`` 等字段行，
   多行 ``data:`` 按 SSE 规则用换行拼接）。

两种都不匹配时原样返回，交给调用方的 JSON 解码去判断。
本模块只做字符串处理，不解析 JSON。
"""

import re
from dataclasses import dataclass
from typing import List, Literal, Optional

from askai_core.domain.exceptions import EnvelopeFormatError


LEGACY_MARKER = 'data("'
LEGACY_EVENT_MARKER = "Ask AI event: " + LEGACY_MARKER
LEGACY_TERMINATOR = '")'
DATA_PREFIX = "data: "

# 只处理 \" 与 \\ 两种转义，单次扫描，避免 \\" 被二次替换
_ESCAPE_RE = re.compile(r'\\(["\\])')

# SSE 规范中的字段名；仅由这些字段组成、没有 data 的帧不携带负载
_SSE_FIELDS = ("event", "id", "retry")

EnvelopeShape = Literal["legacy", "data", "comment", "bare"]


@dataclass(frozen=True)
class Unwrapped:
    """拆包结果。

    - text: 内部 JSON 文本（或 comment/bare 时的原始文本）。
    - shape: 命中的包装形态。comment 表示 SSE 注释或只有控制字段的帧，
      没有可解码的负载。
    """

    text: str
    shape: EnvelopeShape

    @property
    def recognized(self) -> bool:
        return self.shape in ("legacy", "data")


def unwrap(frame: str) -> str:
    """返回帧内部的 JSON 文本；无法识别的帧原样返回。"""

    return unwrap_frame(frame).text


def unwrap_frame(frame: str) -> Unwrapped:
    """拆解一帧，并标注命中的包装形态。"""

    stripped = frame.strip("\r\n")
    if LEGACY_EVENT_MARKER in stripped or (
        LEGACY_MARKER in stripped and not _has_data_line(stripped)
    ):
        return Unwrapped(_unwrap_legacy(stripped), "legacy")

    data = _collect_data_lines(stripped)
    if data is not None:
        return Unwrapped(data, "data")

    if _is_comment_or_control(stripped):
        return Unwrapped(stripped, "comment")
    return Unwrapped(frame, "bare")


def _has_data_line(frame: str) -> bool:
    return any(line.startswith("data:") for line in frame.split("\n"))


def _unwrap_legacy(frame: str) -> str:
    # 带事件前缀时以它定位，外层可能还有一层 SSE 的 "data: "
    idx = frame.find(LEGACY_EVENT_MARKER)
    if idx >= 0:
        start = idx + len(LEGACY_EVENT_MARKER)
    else:
        start = frame.find(LEGACY_MARKER) + len(LEGACY_MARKER)
    end = frame.rfind(LEGACY_TERMINATOR)
    if end < start:
        raise EnvelopeFormatError(
            code="LEGACY_ENVELOPE_UNTERMINATED",
            message="legacy frame has no closing quote",
            frame=frame[:100],
        )
    content = _ESCAPE_RE.sub(r"\1", frame[start:end])
    inner = content.find(DATA_PREFIX)
    if inner >= 0:
        return content[inner + len(DATA_PREFIX):]
    return content


def _collect_data_lines(frame: str) -> Optional[str]:
    """按 SSE 规则收集 data 字段；没有 data 行时返回 None。

    只有以 ``data: `` 开头的单行帧时，结果就是去掉该前缀后的剩余部分。
    """

    if frame.startswith(DATA_PREFIX) and "\n" not in frame:
        return frame[len(DATA_PREFIX):]

    values: List[str] = []
    for line in frame.split("\n"):
        if line.startswith("data:"):
            value = line[len("data:"):]
            if value.startswith(" "):
                value = value[1:]
            values.append(value)
        elif values and not _is_field_line(line):
            # 紧跟在 data 行后面、不是字段行的续行：属于同一段负载
            values[-1] = values[-1] + "\n" + line
    if not values:
        return None
    return "\n".join(values)


def _is_field_line(line: str) -> bool:
    if line.startswith(":"):
        return True
    name, sep, _ = line.partition(":")
    return bool(sep) and name in _SSE_FIELDS + ("data",)


def _is_comment_or_control(frame: str) -> bool:
    lines = [ln for ln in frame.split("\n") if ln.strip()]
    return bool(lines) and all(_is_field_line(ln) for ln in lines)
