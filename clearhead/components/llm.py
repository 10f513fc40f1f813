import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ChatCompletionError(Exception):
    """Raised when the chat completion service fails or returns no content"""
    pass


class ChatCompletionClient:
    """
    OpenAI-compatible chat completion client.

    By default it talks to the ClearHead backend proxy (/api/ai/chat), which
    returns {"choices": [{"message": {"content": ...}}]}.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        path: str = "/api/ai/chat",
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.path = "/" + path.lstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Non-streaming completion.

        Returns:
            The stripped completion text

        Raises:
            ChatCompletionError: on transport errors, non-2xx responses,
                timeouts, or an empty completion
        """
        payload: Dict[str, Any] = {"messages": messages}
        if self.model:
            payload["model"] = self.model
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        url = f"{self.base_url}{self.path}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(url, headers=self._headers(), json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ChatCompletionError(f"Chat API error: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ChatCompletionError(f"Chat request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ChatCompletionError("Unexpected chat response shape") from e

        if not isinstance(content, str):
            raise ChatCompletionError(f"Completion content is not text: {type(content).__name__}")
        if not content.strip():
            raise ChatCompletionError("Empty completion")
        return content.strip()

    def chat_json(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """
        Completion that must be strict JSON. A surrounding markdown code fence
        is tolerated.

        Raises:
            ChatCompletionError: on any call failure or unparseable JSON
        """
        text = self.chat(messages, temperature=temperature, max_tokens=max_tokens)
        return parse_json_reply(text)


def parse_json_reply(text: str) -> Any:
    """Parse a model reply expected to be JSON."""
    candidate = text.strip()
    match = _CODE_FENCE.match(candidate)
    if match:
        candidate = match.group(1)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ChatCompletionError(f"Malformed JSON reply: {e}") from e
