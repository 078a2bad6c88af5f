from typing import Any, Dict, List, Optional

from langchain_core.language_models.llms import LLM
from pydantic import PrivateAttr

from gemini_client import DEFAULT_MODEL, GeminiClient

SYSTEM_INSTRUCTION = (
    "You are a senior front-end engineer who writes React components in TypeScript "
    "with Tailwind CSS and shadcn/ui primitives (Button, Input, Card, Label). "
    "Each file has a single default-exported component."
)


class GeminiLLM(LLM):
    """A lightweight LangChain LLM wrapper over GeminiClient.

    The client is created on first call, so a missing GENAI_API_KEY only
    surfaces (as ConfigError) when the model is actually used.
    """

    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    system_instruction: Optional[str] = SYSTEM_INSTRUCTION

    _client: Optional[GeminiClient] = PrivateAttr(default=None)

    def _get_client(self) -> GeminiClient:
        if self._client is None:
            self._client = GeminiClient(api_key=self.api_key, model=self.model)
        return self._client

    @property
    def lc_secrets(self) -> Dict[str, str]:
        return {"api_key": "GENAI_API_KEY"}

    def _call(self, prompt: str, stop: Optional[List[str]] = None, run_manager=None, **kwargs: Any) -> str:
        return self._get_client().generate(prompt, system_instruction=self.system_instruction, stop=stop)

    @property
    def _identifying_params(self) -> Dict[str, Any]:
        return {"model": self.model}

    @property
    def _llm_type(self) -> str:  # pragma: no cover - small adapter
        return "gemini"
