"""LLM service for ElementQuote.

Provides LangChain/OpenAI integration for AI invoice analysis, with JSON
extraction that tolerates markdown fences and surrounding chatter.
"""

import asyncio
import json
import re
from typing import Any, Dict, List, Optional

import structlog
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.errors import ElementQuoteError, ErrorCode
from config.settings import settings

logger = structlog.get_logger()

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

JSON_INSTRUCTION = (
    "IMPORTANT: You MUST respond with valid JSON only. No markdown, no explanation, just JSON."
)


def extract_json(text: str) -> Dict[str, Any]:
    """Parse the JSON object embedded in an LLM response.

    Strips a markdown code block and markdown header lines, then parses the
    text between the first "{" and the last "}". If that fails, the first
    greedy {...} match of the raw text is tried.

    Raises:
        ElementQuoteError: LLM_INVALID_JSON if no object can be parsed.
    """
    json_text = text.strip()

    block = _CODE_BLOCK_RE.search(json_text)
    if block:
        json_text = block.group(1).strip()

    json_text = "\n".join(
        line for line in json_text.split("\n") if not line.strip().startswith("#")
    )

    first, last = json_text.find("{"), json_text.rfind("}")
    if first != -1 and last > first:
        json_text = json_text[first:last + 1]
    json_text = json_text.strip()

    if not (json_text.startswith("{") and json_text.endswith("}")):
        raise ElementQuoteError(
            code=ErrorCode.LLM_INVALID_JSON,
            message="LLM response does not contain a JSON object",
            details={"raw_content": text[:200]},
        )

    try:
        return json.loads(json_text)
    except json.JSONDecodeError as e:
        match = _JSON_OBJECT_RE.search(text)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass
        raise ElementQuoteError(
            code=ErrorCode.LLM_INVALID_JSON,
            message="LLM did not return valid JSON",
            details={"parse_error": str(e), "raw_content": text[:200]},
        )


class LLMService:
    """Service for LLM operations using LangChain.

    Wraps ChatOpenAI with token tracking, a per-call timeout, retry on
    timeouts and error mapping to ElementQuoteError.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize LLMService.

        Args:
            model: Model name (default from settings).
            temperature: Temperature (default from settings).
            api_key: OpenAI API key (default from settings).
            timeout_seconds: Per-call timeout (default from settings).
        """
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.api_key = api_key or settings.openai_api_key
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds

        self._client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0

    @property
    def client(self) -> ChatOpenAI:
        """Get LangChain ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key,
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens_used

    @retry(
        stop=stop_after_attempt(settings.llm_max_retries),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(asyncio.TimeoutError),
        reraise=True,
    )
    async def _invoke(self, messages: List[BaseMessage], **kwargs: Any) -> Any:
        return await asyncio.wait_for(
            self.client.ainvoke(messages, **kwargs),
            timeout=self.timeout_seconds,
        )

    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a response from the LLM.

        Args:
            messages: List of LangChain messages.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with content and token usage.

        Raises:
            ElementQuoteError: If the LLM call fails or times out.
        """
        try:
            kwargs = {}
            if max_tokens:
                kwargs["max_tokens"] = max_tokens

            response = await self._invoke(messages, **kwargs)

            tokens_used = 0
            if hasattr(response, "response_metadata"):
                usage = response.response_metadata.get("token_usage", {})
                tokens_used = usage.get("total_tokens", 0)
                self._total_tokens_used += tokens_used

            logger.info(
                "llm_generated",
                model=self.model,
                tokens_used=tokens_used,
                content_length=len(response.content)
            )

            return {
                "content": response.content,
                "tokens_used": tokens_used
            }

        except asyncio.TimeoutError:
            raise ElementQuoteError(
                code=ErrorCode.LLM_ERROR,
                message=f"LLM call timed out after {self.timeout_seconds}s",
                details={"timeout_seconds": self.timeout_seconds}
            )
        except Exception as e:
            error_msg = str(e)

            if "rate_limit" in error_msg.lower():
                raise ElementQuoteError(
                    code=ErrorCode.LLM_RATE_LIMIT,
                    message="OpenAI rate limit exceeded",
                    details={"original_error": error_msg}
                )
            elif "context_length" in error_msg.lower() or "maximum context" in error_msg.lower():
                raise ElementQuoteError(
                    code=ErrorCode.LLM_CONTEXT_TOO_LONG,
                    message="Input too long for model context",
                    details={"original_error": error_msg}
                )
            else:
                raise ElementQuoteError(
                    code=ErrorCode.LLM_ERROR,
                    message=f"LLM generation failed: {error_msg}",
                    details={"original_error": error_msg}
                )

    async def generate_with_system_prompt(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_message)
        ]
        return await self.generate(messages, max_tokens)

    async def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        images: Optional[List[Dict[str, str]]] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a JSON response.

        Args:
            system_prompt: System prompt for context.
            user_message: User message/query.
            images: Optional images as {"mimeType", "base64Data"} dicts.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with parsed JSON content and token usage.

        Raises:
            ElementQuoteError: If response is not valid JSON.
        """
        json_prompt = f"{system_prompt}\n\n{JSON_INSTRUCTION}"

        content: Any = user_message
        if images:
            content = [{"type": "text", "text": user_message}] + [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image['mimeType']};base64,{image['base64Data']}"},
                }
                for image in images
            ]

        result = await self.generate(
            [SystemMessage(content=json_prompt), HumanMessage(content=content)],
            max_tokens,
        )

        return {
            "content": extract_json(result["content"]),
            "tokens_used": result["tokens_used"]
        }
