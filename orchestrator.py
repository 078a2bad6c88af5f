import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import requests
from pydantic import ValidationError

from schemas import ChatRequest, CodeArtifact, GenerationResponse, MessageMetadata

logger = logging.getLogger(__name__)

NETWORK_ERROR_TEXT = (
    "❌ Network error: Unable to connect to AI service. "
    "Please check your internet connection and try again."
)

# thread ids with a turn in progress, shared by every orchestrator in the process
_in_flight = set()
_in_flight_lock = threading.Lock()


class HttpGenerationEndpoint:
    """Posts chat turns to an external generation URL."""

    def __init__(self, url: str, timeout: float = 120, http=None):
        self.url = url
        self.timeout = timeout
        self.http = http or requests

    def post(self, payload: dict):
        return self.http.post(self.url, json=payload, timeout=self.timeout)


@dataclass
class EndpointReply:
    """The slice of a ``requests.Response`` the orchestrator reads."""
    status_code: int
    body: dict

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self.body


class InProcessGenerationEndpoint:
    """Calls the generation function directly instead of looping back over HTTP."""

    def __init__(self, generate: Callable[[ChatRequest], GenerationResponse]):
        self.generate = generate

    def post(self, payload: dict) -> EndpointReply:
        try:
            body = ChatRequest.model_validate(payload)
        except ValidationError as e:
            return EndpointReply(400, {'error': f'invalid request: {e.error_count()} error(s)'})
        return EndpointReply(200, self.generate(body).dump())


@dataclass
class SendResult:
    user_message: object
    assistant_message: object = None
    code: List[object] = field(default_factory=list)


class ChatOrchestrator:
    """Runs one chat turn: store the user message, ask the endpoint, store the reply.

    Every failure of the generation call ends up as an assistant message in
    the thread. The user message stays persisted either way. Only one turn
    per thread runs at a time in this process; a second send on a busy
    thread returns None.
    """

    def __init__(self, store, endpoint):
        self.store = store
        self.endpoint = endpoint
        self.loading = False

    def send(self, thread_id: str, text: str) -> Optional[SendResult]:
        text = (text or '').strip()
        if not text or self.loading:
            return None
        with _in_flight_lock:
            if thread_id in _in_flight:
                logger.info("Turn already in progress for thread %s", thread_id)
                return None
            _in_flight.add(thread_id)

        self.loading = True
        try:
            return self._run_turn(thread_id, text)
        finally:
            self.loading = False
            with _in_flight_lock:
                _in_flight.discard(thread_id)

    def _run_turn(self, thread_id: str, text: str) -> SendResult:
        history = [{'role': m.role, 'content': m.content} for m in self.store.list_messages(thread_id)]
        user_message = self.store.add_message(thread_id, 'user', text)
        result = SendResult(user_message=user_message)
        try:
            response = self.endpoint.post({'message': text, 'threadId': thread_id, 'messages': history})
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Error sending message to generation endpoint: %s", e)
            result.assistant_message = self.store.add_message(
                thread_id, 'assistant', NETWORK_ERROR_TEXT,
                MessageMetadata(error=True, network_error=True).dump(),
            )
            return result

        if not response.ok:
            error = (data or {}).get('error') if isinstance(data, dict) else None
            result.assistant_message = self.store.add_message(
                thread_id, 'assistant', f"❌ Error: {error or 'Failed to generate response'}",
                MessageMetadata(error=True).dump(),
            )
            return result

        if isinstance(data, dict) and data.get('message'):
            result.assistant_message = self.store.add_message(
                thread_id, 'assistant', data['message'], _metadata(data.get('metadata')),
            )
            artifacts = _artifacts(data.get('code'))
            if artifacts:
                result.code = self.store.add_generated_code(thread_id, result.assistant_message.id, artifacts)
        return result


def _metadata(raw) -> dict:
    if not isinstance(raw, dict):
        return {}
    try:
        return MessageMetadata.model_validate(raw).dump()
    except ValidationError:
        logger.warning("Dropping malformed message metadata: %r", raw)
        return {}


def _artifacts(raw) -> List[CodeArtifact]:
    artifacts = []
    for item in raw or []:
        try:
            artifacts.append(CodeArtifact.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping malformed code artifact: %s", e)
    return artifacts
