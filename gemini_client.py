from google import genai
from google.genai import types
import os

from errors import ConfigError

DEFAULT_MODEL = "gemini-2.5-flash"


class GeminiClient:
    def __init__(self, api_key: str = None, model: str = DEFAULT_MODEL):
        self.api_key = api_key or os.getenv('GENAI_API_KEY')
        if not self.api_key:
            raise ConfigError('GENAI_API_KEY not set')
        self.model = model
        self.client = genai.Client(api_key=self.api_key)

    def generate(self, prompt: str, system_instruction: str = None, stop=None):
        cfg = types.GenerateContentConfig()
        if system_instruction:
            cfg.system_instruction = system_instruction
        if stop:
            cfg.stop_sequences = stop
        response = self.client.models.generate_content(
            model=self.model,
            config=cfg,
            contents=prompt,
        )
        return response.text
