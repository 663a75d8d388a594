# -*- coding: utf-8 -*-
"""
LLM Clients - 外部 AI 接口调用

- ChatCompletionClient: Perplexity chat/completions（简报、持仓诊断）
- VisionClient: Gemini generateContent（持仓截图 OCR）

两者都不做重试，非 2xx 状态抛出 LLMAPIError，响应结构异常抛出 LLMResponseError，
是否致命由调用方决定。
"""

import base64
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx
from httpx import AsyncClient

from stockdesk.core.config import Settings
from stockdesk.core.constants import DEFAULT_IMAGE_MIME
from stockdesk.core.exceptions import LLMAPIError, LLMResponseError

logger = logging.getLogger(__name__)


@dataclass
class ImagePayload:
    """待识别的图片"""
    data: bytes
    mime_type: str = DEFAULT_IMAGE_MIME
    filename: str | None = None

    def to_inline_part(self) -> dict:
        return {
            "inlineData": {
                "data": base64.b64encode(self.data).decode("ascii"),
                "mimeType": self.mime_type or DEFAULT_IMAGE_MIME,
            }
        }


class ChatCompletionClient:
    """Chat Completion 调用"""

    def __init__(
        self,
        api_key: str,
        config: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = config.CHAT_API_URL
        self.model = config.CHAT_MODEL
        self.timeout = config.API_TIMEOUT_DEFAULT
        self._transport = transport

    def open(self) -> AsyncClient:
        """创建可在多次调用间复用的连接"""
        return AsyncClient(timeout=self.timeout, transport=self._transport)

    def build_payload(self, system: str, user: str, temperature: float | None = None) -> dict:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        return payload

    async def complete(
        self,
        system: str,
        user: str,
        temperature: float | None = None,
        client: Optional[AsyncClient] = None,
    ) -> str:
        """
        发送 system + user 两条消息，返回 choices[0].message.content

        Raises:
            LLMAPIError: HTTP 非 2xx 或网络异常
            LLMResponseError: 响应 JSON 结构不符
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = self.build_payload(system, user, temperature)

        if client is None:
            async with self.open() as own_client:
                data = await _post_json(own_client, self.url, payload, headers=headers)
        else:
            data = await _post_json(client, self.url, payload, headers=headers)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseError(f"Unexpected chat response structure: {e}") from e
        return content or ""


class VisionClient:
    """Gemini 多模态调用"""

    def __init__(
        self,
        api_key: str,
        config: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = config.vision_endpoint()
        self.timeout = config.API_TIMEOUT_VISION
        self._transport = transport

    @staticmethod
    def build_payload(prompt: str, images: Sequence[ImagePayload]) -> dict:
        parts: List[dict] = [{"text": prompt}]
        parts.extend(image.to_inline_part() for image in images)
        return {"contents": [{"parts": parts}]}

    async def generate(self, prompt: str, images: Sequence[ImagePayload]) -> str:
        """
        把提示词和全部图片放进一次请求，返回第一个候选的第一段文本

        候选为空时返回 "[]"，交给上层按空结果处理。
        """
        payload = self.build_payload(prompt, images)
        async with AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            data = await _post_json(
                client,
                self.url,
                payload,
                headers={"Content-Type": "application/json"},
                params={"key": self.api_key},
            )

        try:
            candidates = data.get("candidates") or []
            parts = candidates[0]["content"]["parts"] if candidates else []
            text = parts[0].get("text") if parts else None
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise LLMResponseError(f"Unexpected vision response structure: {e}") from e
        return text or "[]"


async def _post_json(
    client: AsyncClient,
    url: str,
    payload: dict,
    headers: dict,
    params: Optional[dict] = None,
) -> dict:
    """通用 POST 调用"""
    try:
        r = await client.post(url, headers=headers, json=payload, params=params)
    except httpx.TimeoutException as e:
        logger.error(f"API timeout: {url}")
        raise LLMAPIError(f"API request timed out: {url}") from e
    except httpx.HTTPError as e:
        logger.error(f"API error: {e}")
        raise LLMAPIError(f"API request failed: {e}") from e

    if r.is_error:
        logger.error(f"API error status {r.status_code}: {url}")
        raise LLMAPIError(f"API Error: {r.status_code}", status_code=r.status_code)

    try:
        data = r.json()
    except ValueError as e:
        raise LLMResponseError(f"Response is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMResponseError("Response JSON is not an object")
    return data
