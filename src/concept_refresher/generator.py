"""Text-generation backends for the study assistant.

The assistant only needs "generate text for a prompt". A backend is chosen
once at startup: an OpenAI-compatible chat endpoint served locally (llama.cpp,
Ollama, LM Studio) when configured, otherwise the absent backend.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import requests

from concept_refresher.config import GeneratorConfig
from concept_refresher.errors import GeneratorUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorStatus:
    ready: bool
    load_progress: int = 0  # 0-100
    description: str = ""


class TextGenerator(ABC):
    @abstractmethod
    def generate(self, prompt: str, max_tokens: int = 200) -> str:
        """Return generated text or raise GeneratorUnavailableError."""

    @abstractmethod
    def status(self) -> GeneratorStatus:
        ...

    @property
    def available(self) -> bool:
        return True


class NullGenerator(TextGenerator):
    """No backend configured; every call fails so callers fall back."""

    def generate(self, prompt: str, max_tokens: int = 200) -> str:
        raise GeneratorUnavailableError("No text generator configured")

    def status(self) -> GeneratorStatus:
        return GeneratorStatus(ready=False, load_progress=0, description="Fallback Mode")

    @property
    def available(self) -> bool:
        return False


class OpenAICompatibleGenerator(TextGenerator):
    def __init__(self, config: GeneratorConfig, session: requests.Session | None = None):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.session = session or requests.Session()

    def generate(self, prompt: str, max_tokens: int = 200) -> str:
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": self.config.temperature,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/v1/chat/completions", json=payload, timeout=self.config.timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except requests.RequestException as e:
            raise GeneratorUnavailableError(f"Generation request failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GeneratorUnavailableError(f"Unexpected generation response: {e}") from e
        if not isinstance(content, str):
            raise GeneratorUnavailableError(f"Generation returned no text: {content!r}")
        return content

    def status(self) -> GeneratorStatus:
        try:
            response = self.session.get(f"{self.base_url}/v1/models", timeout=min(self.config.timeout, 5))
            response.raise_for_status()
        except requests.RequestException:
            logger.debug("Generator at %s not reachable", self.base_url, exc_info=True)
            return GeneratorStatus(ready=False, load_progress=0, description="AI Offline")
        return GeneratorStatus(ready=True, load_progress=100, description=f"{self.config.model} (Local)")


def build_generator(config: GeneratorConfig | None = None) -> TextGenerator:
    config = config or GeneratorConfig.from_env()
    if not config.enabled:
        logger.info("No generator URL configured, using fallback responses")
        return NullGenerator()
    logger.info("Using text generator at %s (%s)", config.base_url, config.model)
    return OpenAICompatibleGenerator(config)
