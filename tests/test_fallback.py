import pytest

from fallback import GENERIC_TEMPLATE, TEMPLATES, build_fallback_response, resolve_template


@pytest.mark.parametrize('text', [
    'Make me a LOGIN page',
    'a sign in screen',
    'OAuth flow',
    'dashboard with a login button',
    'button for auth stats',
])
def test_login_keywords_win(text):
    assert resolve_template(text) is TEMPLATES['login']


@pytest.mark.parametrize('text,expected', [
    ('Analytics overview', 'dashboard'),
    ('show stats with a button', 'dashboard'),
    ('a big red BTN', 'button'),
    ('Button with spinner', 'button'),
])
def test_priority_order(text, expected):
    assert resolve_template(text) is TEMPLATES[expected]


def test_no_match_gives_placeholder():
    template = resolve_template('a pricing table')
    assert template is GENERIC_TEMPLATE
    assert template.file == 'custom-component.tsx'
    assert resolve_template('') is GENERIC_TEMPLATE


def test_template_files():
    assert TEMPLATES['login'].file == 'login-form.tsx'
    assert TEMPLATES['dashboard'].file == 'dashboard.tsx'
    assert TEMPLATES['button'].file == 'custom-button.tsx'
    assert 'export default function Dashboard()' in TEMPLATES['dashboard'].content


def test_response_names_template_even_without_literal_keyword():
    answer = build_fallback_response('please add sign in', 'thread-1')
    assert answer.message.startswith("I'll create a login form component")
    assert answer.code[0].file_path == 'login-form.tsx'
    assert answer.metadata.model == 'fallback-system'
    assert answer.metadata.thread_id == 'thread-1'


def test_placeholder_response_quotes_request():
    answer = build_fallback_response('a pricing table')
    assert '"a pricing table"' in answer.message
    dumped = answer.dump()
    assert dumped['code'] == [{'language': 'tsx', 'filePath': 'custom-component.tsx',
                               'content': GENERIC_TEMPLATE.content}]
    assert dumped['metadata']['model'] == 'fallback-system'
    assert 'threadId' not in dumped['metadata']
