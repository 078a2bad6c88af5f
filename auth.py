from dataclasses import dataclass
from functools import wraps
from typing import Optional
from urllib.parse import quote, urlparse

from flask import (Blueprint, current_app, g, jsonify, redirect, render_template, request,
                   session, url_for)

from auth_client import AuthUser, code_challenge, make_code_verifier
from errors import AuthError
from models import Profile

ACCESS_COOKIE = 'sb-access-token'
REFRESH_COOKIE = 'sb-refresh-token'
ACCESS_MAX_AGE = 60 * 60 * 24 * 7
REFRESH_MAX_AGE = 60 * 60 * 24 * 30

auth_bp = Blueprint('auth', __name__)


@dataclass
class SessionContext:
    user: AuthUser
    access_token: str
    profile: Optional[Profile] = None

    @property
    def user_id(self):
        return self.user.id


def _store():
    return current_app.extensions['store']


def _auth_client():
    return current_app.extensions['auth_client']


def safe_next(target: Optional[str]) -> str:
    """Only same-site absolute paths are accepted as redirect targets."""
    if not target:
        return '/'
    parsed = urlparse(target)
    if parsed.scheme or parsed.netloc or not target.startswith('/') or target.startswith('//'):
        return '/'
    return target


def sign_in_redirect(message: str):
    return redirect(f"{url_for('auth.sign_in')}?error={quote(message, safe='')}")


def load_session_context() -> Optional[SessionContext]:
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        return None
    try:
        user = _auth_client().get_user(token)
    except AuthError as e:
        current_app.logger.info(f"Session rejected by auth provider: {e.message}")
        return None
    profile = None
    try:
        profile = _store().get_profile(user.id)
    except Exception as e:
        current_app.logger.error(f"Error fetching profile for {user.id}: {e}")
    return SessionContext(user=user, access_token=token, profile=profile)


def login_required(view=None, api=False):
    """Resolve the session for this request into ``g.session_context``.

    Pages redirect to sign-in; JSON views (``api=True``) answer 401.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            ctx = load_session_context()
            if ctx is None:
                if api:
                    return jsonify({'error': 'authentication required'}), 401
                return redirect(f"{url_for('auth.sign_in')}?next={quote(request.full_path.rstrip('?'))}")
            g.session_context = ctx
            return fn(ctx, *args, **kwargs)
        return wrapper
    if view is not None:
        return decorator(view)
    return decorator


@auth_bp.route('/auth/sign-in')
def sign_in():
    return render_template('sign_in.html', error=request.args.get('error'),
                           next=safe_next(request.args.get('next')))


@auth_bp.route('/auth/login')
def login():
    provider = request.args.get('provider', 'github')
    verifier = make_code_verifier()
    session['code_verifier'] = verifier
    callback = url_for('auth.callback', next=safe_next(request.args.get('next')), _external=True)
    return redirect(_auth_client().authorize_url(provider, callback, code_challenge(verifier)))


@auth_bp.route('/api/auth/callback')
def callback():
    error = request.args.get('error')
    if error:
        message = request.args.get('error_description') or error
        current_app.logger.warning(f"Auth provider returned an error: {message}")
        return sign_in_redirect(message)

    code = request.args.get('code')
    if not code:
        return sign_in_redirect('No authorization code was provided')

    try:
        auth_session = _auth_client().exchange_code_for_session(code, session.get('code_verifier', ''))
    except AuthError as e:
        current_app.logger.warning(f"Code exchange failed: {e.message}")
        return sign_in_redirect(f'Could not authenticate: {e.message}')

    user = auth_session.user
    try:
        _store().upsert_profile(user.id, email=user.email, full_name=user.full_name,
                                avatar_url=user.avatar_url, provider=user.provider)
    except Exception as e:
        current_app.logger.error(f"Profile upsert failed for {user.id}: {e}")

    response = redirect(safe_next(request.args.get('next')))
    secure = current_app.config.get('SECURE_COOKIES', False)
    response.set_cookie(ACCESS_COOKIE, auth_session.access_token, max_age=ACCESS_MAX_AGE,
                        httponly=True, samesite='Lax', secure=secure)
    response.set_cookie(REFRESH_COOKIE, auth_session.refresh_token, max_age=REFRESH_MAX_AGE,
                        httponly=True, samesite='Lax', secure=secure)
    return response


@auth_bp.route('/auth/sign-out', methods=['POST'])
def sign_out():
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        try:
            _auth_client().sign_out(token)
        except AuthError as e:
            current_app.logger.error(f"Error signing out: {e.message}")
    response = redirect(url_for('auth.sign_in'))
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return response
