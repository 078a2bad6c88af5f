import pytest

from app import create_app
from auth import ACCESS_COOKIE
from auth_client import AuthSession, AuthUser
from config import Settings
from errors import AuthError
from store import Store, make_engine

TEST_TOKEN = 'token-abc'


class StubAuthClient:
    """Stands in for the hosted auth provider."""

    def __init__(self):
        self.user = AuthUser(
            id='user-1',
            email='ada@example.com',
            user_metadata={'name': 'Ada Lovelace', 'avatar_url': 'https://img.example.com/ada.png'},
            app_metadata={'provider': 'github'},
        )
        self.exchange_error = None
        self.exchanged = []
        self.signed_out = []

    def authorize_url(self, provider, redirect_to, challenge):
        return f'https://auth.example.com/authorize?provider={provider}&challenge={challenge}'

    def exchange_code_for_session(self, code, code_verifier):
        self.exchanged.append((code, code_verifier))
        if self.exchange_error:
            raise AuthError(self.exchange_error, status=400)
        return AuthSession(access_token=TEST_TOKEN, refresh_token='refresh-xyz', user=self.user)

    def get_user(self, access_token):
        if access_token != TEST_TOKEN:
            raise AuthError('invalid JWT', status=401)
        return self.user

    def sign_out(self, access_token):
        self.signed_out.append(access_token)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        supabase_url='https://backend.example.com',
        supabase_anon_key='anon-key',
        genai_api_key=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        secret_key='test-secret',
        proxy_endpoints=['https://one.example.com/gen', 'https://two.example.com/gen'],
    )


@pytest.fixture
def store(settings):
    return Store(make_engine(settings.database_url))


@pytest.fixture
def auth_client():
    return StubAuthClient()


@pytest.fixture
def app(settings, store, auth_client):
    app = create_app(settings, store=store, auth_client=auth_client)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signed_in(client):
    client.set_cookie(ACCESS_COOKIE, TEST_TOKEN)
    return client
