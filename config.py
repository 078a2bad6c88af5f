import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from errors import ConfigError

DEFAULT_PROXY_ENDPOINTS = [
    'https://v0.dev/api/chat',
    'https://api.v0.dev/generate',
    'https://v0.dev/api/generate',
]


@dataclass
class Settings:
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    genai_api_key: Optional[str] = None
    database_url: str = 'sqlite:///data.db'
    secret_key: str = 'dev-secret-key'
    generation_endpoint: Optional[str] = None
    proxy_endpoints: List[str] = field(default_factory=lambda: list(DEFAULT_PROXY_ENDPOINTS))
    secure_cookies: bool = False
    log_level: str = 'INFO'

    def require_backend(self):
        missing = [name for name, value in (
            ('SUPABASE_URL', self.supabase_url),
            ('SUPABASE_ANON_KEY', self.supabase_anon_key),
        ) if not value]
        if missing:
            raise ConfigError(
                f"Missing backend environment variables: {', '.join(missing)}. "
                "Check your .env file and make sure they are set."
            )
        return self


def load_settings() -> Settings:
    load_dotenv()
    proxies = os.getenv('PROXY_ENDPOINTS')
    return Settings(
        supabase_url=os.getenv('SUPABASE_URL'),
        supabase_anon_key=os.getenv('SUPABASE_ANON_KEY'),
        genai_api_key=os.getenv('GENAI_API_KEY'),
        database_url=os.getenv('DATABASE_URL') or 'sqlite:///data.db',
        secret_key=os.getenv('FLASK_SECRET_KEY', 'dev-secret-key'),
        generation_endpoint=os.getenv('GENERATION_ENDPOINT') or None,
        proxy_endpoints=[p.strip() for p in proxies.split(',') if p.strip()] if proxies else list(DEFAULT_PROXY_ENDPOINTS),
        secure_cookies=os.getenv('SECURE_COOKIES', '').lower() in ('1', 'true', 'yes'),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
    )
