import logging
from typing import List, Sequence

import requests

from errors import ProxyExhausted

logger = logging.getLogger(__name__)

PROXY_HEADERS = {
    'Content-Type': 'application/json',
    'Accept': 'application/json',
    'Origin': 'https://v0.dev',
    'Referer': 'https://v0.dev/',
    'User-Agent': 'Mozilla/5.0 (compatible; snippet-studio/1.0)',
}


def build_payload(message: str, messages: List[dict]) -> dict:
    return {
        'prompt': message,
        'messages': messages or [],
        'model': 'gpt-4',
        'temperature': 0.7,
        'max_tokens': 4000,
    }


def probe_endpoints(message: str, messages: List[dict], endpoints: Sequence[str], http=None, timeout=60):
    """Try each endpoint in order and return the first 2xx JSON body as-is.

    No delay between attempts. Raises ProxyExhausted with one entry per
    failed endpoint when none succeed.
    """
    http = http or requests
    payload = build_payload(message, messages)
    failures = []
    for endpoint in endpoints:
        try:
            response = http.post(endpoint, json=payload, headers=PROXY_HEADERS, timeout=timeout)
            if response.ok:
                body = response.json()
                logger.info("Generation proxy answered by %s", endpoint)
                return body
            failures.append(f'{endpoint}: {response.status_code} {response.reason}')
        except (requests.RequestException, ValueError) as e:
            failures.append(f'{endpoint}: {e}')
        logger.warning("Generation proxy attempt failed: %s", failures[-1])
    raise ProxyExhausted(failures)
