"""AI chef: ask a generative model for a recipe built from pantry items."""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Callable, Iterable, List, Optional

import httpx

from dispensa import metrics
from dispensa.config import Settings, get_settings
from dispensa.models.recipe import Recipe, fallback_recipe

LLM_TIMEOUT = 60.0
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?|```")
_OVERLOAD_RE = re.compile(r"overload|503", re.IGNORECASE)

RECIPE_PROMPT = (
    "Agisci come uno chef esperto. Ho questi ingredienti: {ingredients}.\n"
    "Suggeriscimi una ricetta creativa.\n"
    "Rispondi ESCLUSIVAMENTE in formato JSON puro.\n"
    "Schema richiesto:\n"
    "{{\n"
    '  "titolo": "string",\n'
    '  "difficolta": "string",\n'
    '  "tempo": "string",\n'
    '  "procedimento": "string"\n'
    "}}"
)

logger = logging.getLogger(__name__)


class RecipeServiceError(RuntimeError):
    """Raised when the recipe provider fails or answers with something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_overload(self) -> bool:
        return self.status_code == 503 or bool(_OVERLOAD_RE.search(str(self)))


def normalize_ingredients(names: Iterable[str]) -> List[str]:
    """Trim names and drop blanks and case-insensitive duplicates, keeping order."""

    seen: set[str] = set()
    result: List[str] = []
    for name in names:
        cleaned = (name or "").strip()
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return result


def build_prompt(ingredients: List[str]) -> str:
    return RECIPE_PROMPT.format(ingredients=", ".join(ingredients))


def parse_recipe_text(text: str) -> Recipe:
    """Extract the recipe JSON object from free model text.

    Markdown code fences are removed first; if prose surrounds the object the
    outermost braces are used.
    """

    cleaned = _FENCE_RE.sub("", text).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        cleaned = cleaned[start : end + 1]
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        snippet = cleaned.replace("\n", " ")[:200]
        raise ValueError(f"Recipe response is not valid JSON: {exc}: payload={snippet}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Recipe response is not a JSON object")
    return Recipe.model_validate(payload)


class RecipeClient:
    """Call a Gemini, OpenAI-compatible or Ollama endpoint for recipe suggestions."""

    def __init__(
        self,
        *,
        provider: str = "gemini",
        model: str,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = LLM_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._provider = (provider or "gemini").strip().lower()
        self._model = model
        self._base_url = (base_url or (GEMINI_BASE_URL if self._provider == "gemini" else "")).rstrip("/")
        self._api_key = api_key
        self._temperature = max(0.0, float(temperature))
        self._max_tokens = max(1, int(max_tokens))
        self._max_retries = max(0, int(max_retries))
        self._retry_delay = max(0.0, float(retry_delay))
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep

    def suggest(self, ingredients: Iterable[str]) -> Recipe:
        """Return a recipe for ``ingredients``.

        Overload errors are retried with exponential backoff; any other failure,
        or running out of retries, yields the fallback recipe instead of raising.
        """

        names = normalize_ingredients(ingredients)
        prompt = build_prompt(names)
        delay = self._retry_delay
        attempt = 0
        while True:
            try:
                recipe = self._request_recipe(prompt)
            except (RecipeServiceError, httpx.HTTPError, ValueError) as exc:
                overloaded = isinstance(exc, RecipeServiceError) and exc.is_overload
                if overloaded and attempt < self._max_retries:
                    logger.warning(
                        "Recipe model busy, retrying in %.1fs (%s attempt(s) left)",
                        delay,
                        self._max_retries - attempt,
                    )
                    metrics.RECIPE_REQUESTS.labels(outcome="retry").inc()
                    self._sleep(delay)
                    delay *= 2
                    attempt += 1
                    continue
                logger.error("Recipe generation failed: %s", exc)
                metrics.RECIPE_REQUESTS.labels(outcome="fallback").inc()
                return fallback_recipe(str(exc), names)

            metrics.RECIPE_REQUESTS.labels(outcome="success").inc()
            logger.info("Recipe generated title=%s ingredients=%s", recipe.title, len(names))
            return recipe.model_copy(update={"ingredients": names})

    def _request_recipe(self, prompt: str) -> Recipe:
        content = self._execute(prompt)
        return parse_recipe_text(content)

    def _execute(self, prompt: str) -> str:
        if self._provider == "gemini":
            return self._execute_gemini(prompt)
        if self._provider == "ollama":
            return self._execute_ollama(prompt)
        return self._execute_openai(prompt)

    def _post(self, url: str, payload: dict[str, object], headers: Optional[dict[str, str]] = None) -> dict:
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            response = client.post(url, json=payload, headers=headers)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error or (isinstance(body, dict) and body.get("error")):
            raise RecipeServiceError(_error_message(body, response), status_code=response.status_code)
        if not isinstance(body, dict):
            raise RecipeServiceError("Recipe provider returned an unexpected payload.")
        return body

    def _execute_gemini(self, prompt: str) -> str:
        if not self._api_key:
            raise RecipeServiceError("Chiave API mancante nella configurazione.")
        url = f"{self._base_url}/v1beta/models/{self._model}:generateContent?key={self._api_key}"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "maxOutputTokens": self._max_tokens,
            },
        }
        body = self._post(url, payload)
        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RecipeServiceError("Gemini response did not include any text.") from exc
        return str(text).strip()

    def _execute_openai(self, prompt: str) -> str:
        if not self._base_url:
            raise RecipeServiceError("Recipe LLM base URL is not configured.")
        endpoint = self._base_url
        if not endpoint.endswith("/chat/completions"):
            endpoint = f"{endpoint}/chat/completions"
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None
        payload = {
            "model": self._model,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        body = self._post(endpoint, payload, headers=headers)
        choices = body.get("choices") or []
        if not choices:
            raise RecipeServiceError("Recipe LLM returned no choices.")
        content = ((choices[0].get("message") or {}).get("content") or "").strip()
        if not content:
            raise RecipeServiceError("Recipe LLM returned an empty response.")
        return content

    def _execute_ollama(self, prompt: str) -> str:
        if not self._base_url:
            raise RecipeServiceError("Recipe LLM base URL is not configured.")
        endpoint = self._base_url
        if not endpoint.endswith("/api/chat"):
            endpoint = f"{endpoint}/api/chat"
        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self._temperature,
                "num_predict": self._max_tokens,
            },
        }
        body = self._post(endpoint, payload)
        content = ((body.get("message") or {}).get("content") or "").strip()
        if not content:
            raise RecipeServiceError("Ollama recipe response did not include content.")
        return content


def _error_message(body: object, response: httpx.Response) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return f"Recipe provider responded with HTTP {response.status_code}"


def build_recipe_client(settings: Settings | None = None) -> RecipeClient:
    """Create the recipe client described by the application settings."""

    settings = settings or get_settings()
    return RecipeClient(
        provider=settings.recipe_llm_provider,
        model=settings.recipe_llm_model,
        base_url=settings.recipe_llm_base_url,
        api_key=settings.recipe_llm_api_key,
        temperature=settings.recipe_llm_temperature,
        max_tokens=settings.recipe_llm_max_tokens,
        max_retries=settings.recipe_llm_max_retries,
        retry_delay=settings.recipe_llm_retry_delay,
    )


__all__ = [
    "RecipeClient",
    "RecipeServiceError",
    "build_prompt",
    "build_recipe_client",
    "normalize_ingredients",
    "parse_recipe_text",
]
