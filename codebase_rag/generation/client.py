"""
Generation API Client Module

Sends assembled prompts to an OpenAI-compatible chat completions endpoint.
"""

import requests
from typing import Any, Dict, Optional

from ..exceptions import GenerationUnavailable, MissingCredential
from ..prompting import GenerationRequest


class GenerationClient:
    """
    Client for chat completions.

    Temperature defaults to 0 so that answers, and the citations in them,
    are reproducible. Failures surface as GenerationUnavailable.
    """

    def __init__(
        self,
        api_url: str,
        model_name: str = "gpt-3.5-turbo",
        api_key: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: int = 60,
        require_api_key: bool = True
    ):
        """
        Initialize generation client.

        Args:
            api_url: API endpoint URL (e.g., "https://api.openai.com/v1/chat/completions")
            model_name: Model name to use
            api_key: API key for authentication
            temperature: Sampling temperature
            max_tokens: Optional cap on the answer length
            timeout: Request timeout in seconds
            require_api_key: Fail at construction if no key is given

        Raises:
            MissingCredential: If a key is required and missing or blank
        """
        if require_api_key and not (api_key and api_key.strip()):
            raise MissingCredential("Please provide a valid API key for the generation service.")

        self.api_url = api_url
        self.model_name = model_name
        self.api_key = api_key
        self.temperature = float(temperature)
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _payload(self, request: GenerationRequest) -> Dict[str, Any]:
        payload = {
            "model": self.model_name,
            "messages": request.to_messages(),
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload

    def complete(self, request: GenerationRequest) -> str:
        """
        Get the answer text for a request.

        Raises:
            GenerationUnavailable: Transport/HTTP failure or an unusable response
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.post(
                self.api_url,
                json=self._payload(request),
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GenerationUnavailable(f"Completion request failed: {e}") from e

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationUnavailable(f"Malformed completion response: {e}") from e

        text = (text or "").strip()
        if not text:
            raise GenerationUnavailable("Completion response was empty")
        return text

    def get_info(self) -> Dict[str, Any]:
        """Get client information."""
        return {
            "api_url": self.api_url,
            "model_name": self.model_name,
            "temperature": self.temperature,
            "has_api_key": bool(self.api_key)
        }
