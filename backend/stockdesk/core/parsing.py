# -*- coding: utf-8 -*-
"""
Model Output Parsing

把大模型返回的文本解析成结构化数据。
解析结果统一用 ParseOutcome 表示，调用方按 status 分支，不依赖异常控制流：
- PARSED:   严格解析成功
- DEGRADED: 严格解析失败，但启发式提取到部分数据
- FAILED:   什么都没拿到，reason 说明原因
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


class ParseStatus(str, Enum):
    """解析状态"""
    PARSED = "parsed"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class ParseOutcome(Generic[T]):
    """带标签的解析结果"""
    status: ParseStatus
    value: Optional[T] = None
    reason: Optional[str] = None

    @classmethod
    def parsed(cls, value: T) -> "ParseOutcome[T]":
        return cls(ParseStatus.PARSED, value=value)

    @classmethod
    def degraded(cls, value: T, reason: str) -> "ParseOutcome[T]":
        return cls(ParseStatus.DEGRADED, value=value, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "ParseOutcome[T]":
        return cls(ParseStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is not ParseStatus.FAILED


def strip_code_fences(text: str) -> str:
    """去掉 ```json / ``` 包裹"""
    if not text:
        return ""
    return _FENCE_PATTERN.sub("", text).strip()


def parse_json_object(text: str) -> ParseOutcome[dict]:
    """
    解析单个 JSON 对象（简报场景）

    Args:
        text: 模型原始输出

    Returns:
        ParseOutcome: PARSED(dict) 或 FAILED(reason)
    """
    clean = strip_code_fences(text)
    if not clean:
        return ParseOutcome.failed("empty response")

    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError as e:
        logger.warning(f"[WARN] JSON parsing failed: {e}; text: {clean[:200]}...")
        return ParseOutcome.failed(f"invalid JSON: {e}")

    if not isinstance(parsed, dict):
        return ParseOutcome.failed(f"expected a JSON object, got {type(parsed).__name__}")
    return ParseOutcome.parsed(parsed)


def parse_json_array(text: str) -> ParseOutcome[list]:
    """
    解析 JSON 数组：截取第一个 '[' 到最后一个 ']' 之间的内容

    Args:
        text: 已去掉代码块标记的文本

    Returns:
        ParseOutcome: PARSED(list) 或 FAILED(reason)
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        return ParseOutcome.failed("no JSON array boundaries found")

    try:
        parsed: Any = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        logger.warning(f"[WARN] JSON array parsing failed: {e}")
        return ParseOutcome.failed(f"invalid JSON: {e}")

    if not isinstance(parsed, list):
        return ParseOutcome.failed("JSON value is not an array")
    return ParseOutcome.parsed(parsed)


def extract_ticker_tokens(text: str, pattern: str) -> list[str]:
    """按出现顺序去重提取全大写代码片段"""
    seen: dict[str, None] = {}
    for token in re.findall(pattern, text or ""):
        seen.setdefault(token, None)
    return list(seen)
