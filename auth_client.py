import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlencode

import requests

from errors import AuthError

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None
    user_metadata: dict = field(default_factory=dict)
    app_metadata: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict) -> 'AuthUser':
        return cls(
            id=data['id'],
            email=data.get('email'),
            user_metadata=data.get('user_metadata') or {},
            app_metadata=data.get('app_metadata') or {},
        )

    @property
    def full_name(self):
        return self.user_metadata.get('full_name') or self.user_metadata.get('name')

    @property
    def avatar_url(self):
        return self.user_metadata.get('avatar_url') or self.user_metadata.get('picture')

    @property
    def provider(self):
        return self.app_metadata.get('provider')


@dataclass
class AuthSession:
    access_token: str
    refresh_token: str
    user: AuthUser


def make_code_verifier() -> str:
    return secrets.token_urlsafe(48)


def code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode('ascii')).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b'=').decode('ascii')


class AuthClient:
    """Thin client for the hosted auth provider's REST API (GoTrue)."""

    def __init__(self, url: str, anon_key: str, timeout: float = 10, http=None):
        self.base_url = url.rstrip('/') + '/auth/v1'
        self.anon_key = anon_key
        self.timeout = timeout
        self.http = http or requests.Session()

    def _headers(self, access_token: str = None):
        headers = {'apikey': self.anon_key, 'Content-Type': 'application/json'}
        if access_token:
            headers['Authorization'] = f'Bearer {access_token}'
        return headers

    def _check(self, response):
        if response.ok:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise AuthError(f'auth provider returned an unreadable reply ({response.status_code})',
                                status=response.status_code) from e
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = (body.get('error_description') or body.get('msg') or body.get('message')
                   or body.get('error') or f'{response.status_code} {response.reason}')
        raise AuthError(str(message), status=response.status_code)

    def authorize_url(self, provider: str, redirect_to: str, challenge: str) -> str:
        query = urlencode({
            'provider': provider,
            'redirect_to': redirect_to,
            'code_challenge': challenge,
            'code_challenge_method': 's256',
        })
        return f'{self.base_url}/authorize?{query}'

    def exchange_code_for_session(self, code: str, code_verifier: str) -> AuthSession:
        try:
            response = self.http.post(
                f'{self.base_url}/token',
                params={'grant_type': 'pkce'},
                json={'auth_code': code, 'code_verifier': code_verifier},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f'auth provider unreachable: {e}') from e
        data = self._check(response)
        try:
            return AuthSession(
                access_token=data['access_token'],
                refresh_token=data['refresh_token'],
                user=AuthUser.from_payload(data['user']),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise AuthError('auth provider returned an incomplete session') from e

    def get_user(self, access_token: str) -> AuthUser:
        try:
            response = self.http.get(f'{self.base_url}/user', headers=self._headers(access_token),
                                     timeout=self.timeout)
        except requests.RequestException as e:
            raise AuthError(f'auth provider unreachable: {e}') from e
        try:
            return AuthUser.from_payload(self._check(response))
        except (KeyError, TypeError, AttributeError) as e:
            raise AuthError('auth provider returned an incomplete user') from e

    def sign_out(self, access_token: str):
        try:
            response = self.http.post(f'{self.base_url}/logout', headers=self._headers(access_token),
                                      timeout=self.timeout)
        except requests.RequestException as e:
            raise AuthError(f'auth provider unreachable: {e}') from e
        self._check(response)
