"""
Translation Provider Implementations

This module contains the providers the pipeline can call:
- EchoProvider: returns the text unchanged (dry runs, tests)
- OpenAICompatibleProvider: chat completions API over httpx
  (OpenAI, DeepSeek and any custom OpenAI-compatible endpoint)

A provider translates one text into one target language. Failures raise
ProviderError; retries and backoff are not attempted here.
"""

from typing import Any, Dict, Optional

import httpx

from lingoshield import language_codes as lc
from lingoshield.exceptions import ConfigurationError, ProviderError
from lingoshield.logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER_API_KEY = "YOUR_API_KEY_HERE"

MARKER_INSTRUCTIONS = (
    "Tokens of the form __DNT_0__ or __GLOSS_0__ are protected markers: "
    "copy them into the translation exactly as written, in a fitting position."
)


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 120.0),
            pool=timeout_config.get('pool', 10.0),
        )
    timeout_value = float(timeout_config) if timeout_config else 120.0
    return httpx.Timeout(connect=10.0, write=60.0, read=timeout_value, pool=10.0)


def handle_http_error(e: httpx.HTTPStatusError, provider: str):
    """Raise a ProviderError carrying the status code and the API's error message."""
    status_code = e.response.status_code
    try:
        error_json = e.response.json()
        error_detail = error_json.get("error", error_json) if isinstance(error_json, dict) else error_json
        if isinstance(error_detail, dict):
            error_text = error_detail.get("message", str(error_detail))
        else:
            error_text = str(error_detail)
    except ValueError:
        error_text = e.response.text[:500]

    raise ProviderError(
        f"{provider} API error ({status_code}): {error_text}",
        code="provider_http_error",
        details={"provider": provider, "status_code": status_code},
    ) from e


class TranslationProvider:
    """Contract for translation providers."""

    name = "base"

    def translate(self, text: str, target_lang: str, source_lang: Optional[str] = None) -> str:
        raise NotImplementedError


class EchoProvider(TranslationProvider):
    """Returns every text unchanged."""

    name = "echo"

    def __init__(self):
        self.calls = 0

    def translate(self, text: str, target_lang: str, source_lang: Optional[str] = None) -> str:
        self.calls += 1
        return text


class OpenAICompatibleProvider(TranslationProvider):
    """
    Chat-completions provider.

    Args:
        name: Provider id used in messages ("openai", "deepseek", custom)
        api_key: Bearer token
        api_url: Full chat completions URL
        model: Model name
        timeout: Number or dict, see get_httpx_timeout
        system_message: System prompt
    """

    def __init__(
        self,
        name: str,
        api_key: str,
        api_url: str,
        model: str,
        timeout: Any = 120,
        system_message: str = "",
        client: Optional[httpx.Client] = None,
    ):
        if not api_key or api_key == PLACEHOLDER_API_KEY:
            raise ConfigurationError(
                f"{name} API key not configured",
                code="ai_config_missing",
                details={"provider": name, "missing_field": "api_key"},
            )
        if not api_url:
            raise ConfigurationError(
                f"{name} API URL not configured",
                code="ai_config_missing",
                details={"provider": name, "missing_field": "api_url"},
            )
        self.name = name
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = get_httpx_timeout(timeout)
        self.system_message = system_message
        self._client = client

    def _build_prompt(self, text: str, target_lang: str, source_lang: Optional[str]) -> str:
        target_name = lc.get_language_name(target_lang) or target_lang
        source_part = ""
        if source_lang:
            source_part = f" from {lc.get_language_name(source_lang) or source_lang}"
        return (
            f"Translate the following text{source_part} into {target_name} ({target_lang}).\n"
            f"{MARKER_INSTRUCTIONS}\n"
            f"Return only the translated text.\n\n"
            f"{text}"
        )

    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self._client is not None:
            response = self._client.post(self.api_url, headers=headers, json=body, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.api_url, headers=headers, json=body)
            response.raise_for_status()
            return response.json()

    def translate(self, text: str, target_lang: str, source_lang: Optional[str] = None) -> str:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_message},
                {"role": "user", "content": self._build_prompt(text, target_lang, source_lang)},
            ],
        }

        logger.debug(f"  Calling {self.name} API (model: {self.model}, target: {target_lang})...")

        try:
            result = self._post(body)
        except httpx.HTTPStatusError as e:
            handle_http_error(e, self.name)
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self.name} API request timeout", code="provider_timeout") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} API call failed: {e}", code="provider_unreachable") from e
        except ValueError as e:
            raise ProviderError(f"{self.name} API returned invalid JSON", code="provider_bad_response") from e

        choices = result.get("choices") if isinstance(result, dict) else None
        if not choices:
            raise ProviderError(f"No content in {self.name} response", code="provider_bad_response")
        content = (choices[0].get("message") or {}).get("content") or ""
        logger.debug(f"  Received {len(content)} chars from {self.name}")
        return content.strip()
