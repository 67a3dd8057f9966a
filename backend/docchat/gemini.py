from typing import Dict, List, Optional

import httpx

from . import config
from .errors import ConfigurationError, ServiceError
from .logger import get_logger
from .models import Message

logger = get_logger(__name__)


class GeminiClient:
    """Calls the Gemini ``generateContent`` endpoint once per prompt.

    There is no retry and no timeout: a request runs until the API answers or
    the connection fails.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.GEMINI_MODEL,
        base_url: str = config.GEMINI_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    def _check_key(self) -> str:
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("API_KEY missing in Environment!")
        return self.api_key

    @staticmethod
    def build_payload(
        system_instruction: str,
        history: List[Message],
        prompt: str,
        web_search: bool = False,
    ) -> Dict:
        contents = [{"role": m.role, "parts": [{"text": m.text}]} for m in history]
        contents.append({"role": "user", "parts": [{"text": prompt}]})
        payload = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": contents,
        }
        if web_search:
            payload["tools"] = [{"google_search": {}}]
        return payload

    async def generate(
        self,
        system_instruction: str,
        history: List[Message],
        prompt: str,
        web_search: bool = False,
    ) -> str:
        api_key = self._check_key()
        payload = self.build_payload(system_instruction, history, prompt, web_search)
        url = f"{self.base_url}/models/{self.model}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=None, transport=self.transport) as client:
                resp = await client.post(
                    url,
                    headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                    json=payload,
                )
        except httpx.RequestError as e:
            logger.error(f"Gemini request failed: {e}")
            raise ServiceError(f"Request failed: {e}") from e

        if resp.status_code != 200:
            error_detail = resp.text
            try:
                error_data = resp.json()
                if isinstance(error_data, dict):
                    error = error_data.get("error")
                    if isinstance(error, dict):
                        error_detail = error.get("message", str(error))
                    elif error:
                        error_detail = str(error)
                    else:
                        error_detail = str(error_data)
            except ValueError:
                pass
            logger.error(f"Gemini API error {resp.status_code}: {error_detail}")
            raise ServiceError(f"Gemini API error: {error_detail}")

        try:
            data = resp.json()
        except ValueError:
            logger.error("Gemini API returned a non-JSON body")
            raise ServiceError("Invalid response format from Gemini API")
        return self.parse_text(data)

    @staticmethod
    def parse_text(data: Dict) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise ServiceError("Invalid response format from Gemini API")
        if not isinstance(parts, list):
            raise ServiceError("Invalid response format from Gemini API")
        return "".join(
            str(p.get("text", "")) for p in parts if isinstance(p, dict)
        )
