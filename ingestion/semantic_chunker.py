from __future__ import annotations

import re
from typing import Callable, List

import orjson
import requests
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from common.config import ConfigurationError, secrets, yaml_config
from common.logger import get_logger

log = get_logger(__name__)

PLACEHOLDER = "{{text_to_chunk}}"
RETRY_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

# A text-completion collaborator: prompt in, message content out.
Completion = Callable[[str], str]


class SemanticChunkingError(ValueError):
    """The model's response was empty or not ``{"chunks": [str, ...]}``."""


class LLMChunkResponse(BaseModel):
    chunks: List[str]


class _TransientCompletionError(requests.HTTPError):
    pass


# a fence wrapping the whole response, else the first fenced block
_WHOLE_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def build_prompt(template: str, text: str) -> str:
    return template.replace(PLACEHOLDER, text, 1)


def unwrap_json_fence(raw: str) -> str:
    """
    Return the body of the Markdown code fence wrapping ``raw``, else of its
    first fenced block, or ``raw`` itself (stripped) when there is no fence.
    """
    text = raw.strip()
    match = _WHOLE_FENCE_RE.match(text) or _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def _load_json(raw: str):
    # plain JSON first; chunk strings may contain backtick fences of their own
    try:
        return orjson.loads(raw.strip())
    except orjson.JSONDecodeError:
        return orjson.loads(unwrap_json_fence(raw))


def parse_chunk_response(raw: str | None) -> List[str]:
    if not raw or not raw.strip():
        raise SemanticChunkingError("semantic chunking invalid response: empty response")
    try:
        data = _load_json(raw)
        return LLMChunkResponse.model_validate(data).chunks
    except orjson.JSONDecodeError as e:
        raise SemanticChunkingError(f"semantic chunking invalid response: {e}") from e
    except ValidationError as e:
        raise SemanticChunkingError(
            f"semantic chunking invalid response: {e.error_count()} validation error(s)"
        ) from e


class AzureChatCompletion:
    """Chat-completions call against an Azure OpenAI deployment URL."""

    def __init__(
        self,
        endpoint_url: str,
        api_key: str,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        timeout: int = 120,
    ):
        self.endpoint_url = endpoint_url
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> "AzureChatCompletion":
        cfg = yaml_config.llm_chunking
        if not secrets.azure_openai_api_key:
            raise ConfigurationError("Azure OpenAI API key is missing (AZURE_OPENAI_API_KEY).")
        if not cfg.endpoint_url:
            raise ConfigurationError("Azure custom endpoint URL is missing (llm_chunking.endpoint_url).")
        return cls(
            endpoint_url=cfg.endpoint_url,
            api_key=secrets.azure_openai_api_key,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            timeout=cfg.timeout,
        )

    @retry(
        retry=retry_if_exception_type(
            (requests.ConnectionError, requests.Timeout, _TransientCompletionError)
        ),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _post(self, prompt: str) -> requests.Response:
        resp = requests.post(
            self.endpoint_url,
            json={
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            },
            headers={"Content-Type": "application/json", "api-key": self.api_key},
            timeout=self.timeout,
        )
        if resp.status_code in RETRY_STATUSES:
            raise _TransientCompletionError(f"HTTP {resp.status_code}", response=resp)
        resp.raise_for_status()
        return resp

    def __call__(self, prompt: str) -> str:
        body = self._post(prompt).json()
        try:
            return body["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            return ""


def chunk_with_llm(
    full_text: str,
    text_prefix: str,
    complete: Completion,
    prompt_template: str | None = None,
) -> List[str]:
    """
    Let the model split ``full_text`` and prefix each returned chunk.

    The returned chunks are not re-checked against the maximum chunk size;
    the prompt carries that limit. A malformed response raises
    ``SemanticChunkingError`` and yields no chunks at all.
    """
    if not full_text.strip():
        return []
    prompt = build_prompt(prompt_template or yaml_config.llm_chunking.prompt, full_text)
    chunks = parse_chunk_response(complete(prompt))
    log.info("LLM returned %d semantic chunks", len(chunks))
    return [f"{text_prefix}{chunk}" for chunk in chunks]
