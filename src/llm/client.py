"""与 Google Gemini 交互的客户端（google-genai 包）。"""

from __future__ import annotations

import asyncio
import os
import logging
from typing import Optional

from google import genai
from google.genai import types

GEMINI_MODEL = os.getenv("GEMINI_MODEL") or "gemini-2.5-flash"

# 代理配置
PROXY_URL = os.getenv("PROXY_URL")
PROXY_ENABLED = (os.getenv("PROXY_ENABLED", "false").lower() == "true") and bool(PROXY_URL)

_client: Optional[genai.Client] = None
_client_lock = asyncio.Lock()

logger = logging.getLogger(__name__)


class GeminiClientError(RuntimeError):
    """与 Google Gemini 交互时出现的错误。"""


class GeminiUnavailableError(GeminiClientError):
    """没有配置 API 密钥，无法调用 Gemini。"""


def _get_api_key() -> Optional[str]:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


def is_configured() -> bool:
    return bool(_get_api_key())


async def _get_client() -> genai.Client:
    global _client
    if _client is not None:
        return _client

    async with _client_lock:
        if _client is None:
            api_key = _get_api_key()
            if not api_key:
                raise GeminiUnavailableError(
                    "GEMINI_API_KEY 未设置，请通过环境变量传入密钥。"
                )
            if PROXY_ENABLED:
                for var in ("ALL_PROXY", "HTTPS_PROXY", "HTTP_PROXY"):
                    os.environ[var] = PROXY_URL
                logger.info("Gemini client proxy enabled: %s", PROXY_URL)
            else:
                logger.info("Gemini client proxy disabled")

            _client = genai.Client(api_key=api_key)
            logger.info("Gemini client initialized with model %s", GEMINI_MODEL)
    return _client


async def ask_llm(
    prompt: str,
    *,
    system_instruction: Optional[str] = None,
    temperature: Optional[float] = None,
    json_output: bool = False,
) -> str:
    """向 Gemini 发送请求并返回文本回答。"""

    client = await _get_client()
    config = types.GenerateContentConfig(
        system_instruction=system_instruction,
        temperature=temperature,
        response_mime_type="application/json" if json_output else None,
    )

    def _invoke() -> str:
        try:
            logger.info(
                "Sending prompt to Gemini (model=%s, length=%d, json=%s)",
                GEMINI_MODEL,
                len(prompt),
                json_output,
            )
            response = client.models.generate_content(
                model=GEMINI_MODEL,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            proxy_info = "（经由代理）" if PROXY_ENABLED else ""
            logger.exception("Gemini call failed%s", proxy_info)
            raise GeminiClientError(f"调用 Gemini 出错{proxy_info}: {exc}") from exc

        text = getattr(response, "text", None)
        if text:
            logger.info("Gemini response received (length=%d)", len(text))
            return text

        candidates = getattr(response, "candidates", None) or []
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            parts = getattr(content, "parts", None) or []
            joined = "".join(getattr(part, "text", "") for part in parts if getattr(part, "text", None))
            if joined:
                logger.info("Gemini response composed from parts (length=%d)", len(joined))
                return joined
        logger.error("Gemini response contained no text parts")
        raise GeminiClientError("Gemini 的回答中没有文本部分")

    return await asyncio.to_thread(_invoke)
