from unittest.mock import patch

import pytest
import requests

from errors import ProxyExhausted
from schemas import CodeArtifact, GenerationResponse, MessageMetadata


class TestGenerationRoutes:

    def test_chat_fallback_shape(self, client):
        response = client.post('/api/chat-fallback', json={'message': 'Dashboard please', 'threadId': 't-9', 'messages': []})
        assert response.status_code == 200
        data = response.get_json()
        assert set(data) == {'message', 'code', 'metadata'}
        assert data['code'][0]['filePath'] == 'dashboard.tsx'
        assert data['code'][0]['language'] == 'tsx'
        assert data['metadata']['model'] == 'fallback-system'
        assert data['metadata']['threadId'] == 't-9'

    def test_chat_fallback_rejects_bad_body(self, client):
        assert client.post('/api/chat-fallback', json={'threadId': 'x'}).status_code == 400

    def test_chat_uses_fallback_when_unconfigured(self, client, monkeypatch):
        monkeypatch.delenv('GENAI_API_KEY', raising=False)
        response = client.post('/api/chat', json={'message': 'a login screen'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['code'][0]['filePath'] == 'login-form.tsx'
        assert data['metadata']['model'] == 'fallback-system'

    def test_chat_uses_model_when_available(self, client):
        answer = GenerationResponse(
            message='Built it',
            code=[CodeArtifact(file_path='hero.tsx', content='export default function Hero() {}')],
            metadata=MessageMetadata(model='gemini-2.5-flash'),
        )
        with patch('app.run_generation', return_value=answer) as run:
            response = client.post('/api/chat', json={
                'message': 'hero section',
                'messages': [{'role': 'user', 'content': 'hi'}],
            })
        assert response.get_json() == {
            'message': 'Built it',
            'code': [{'language': 'tsx', 'filePath': 'hero.tsx', 'content': 'export default function Hero() {}'}],
            'metadata': {'model': 'gemini-2.5-flash'},
        }
        assert run.call_args.args[1] == 'hero section'

    def test_chat_falls_back_when_model_errors(self, client):
        with patch('app.run_generation', side_effect=RuntimeError('quota exceeded')):
            response = client.post('/api/chat', json={'message': 'a button'})
        assert response.get_json()['code'][0]['filePath'] == 'custom-button.tsx'

    def test_proxy_success_passthrough(self, client):
        body = {'anything': ['the', 'upstream', 'sent']}
        with patch('app.probe_endpoints', return_value=body) as probe:
            response = client.post('/api/v0-proxy', json={'message': 'card'})
        assert response.status_code == 200
        assert response.get_json() == body
        assert probe.call_args.args[2] == ['https://one.example.com/gen', 'https://two.example.com/gen']

    def test_proxy_exhausted_is_503(self, client):
        failures = ['https://one.example.com/gen: 500 Internal Server Error', 'https://two.example.com/gen: refused']
        with patch('app.probe_endpoints', side_effect=ProxyExhausted(failures)):
            response = client.post('/api/v0-proxy', json={'message': 'card'})
        assert response.status_code == 503
        data = response.get_json()
        assert data['error'].endswith('Last error: https://two.example.com/gen: refused')
        assert data['attempts'] == failures

    def test_proxy_real_probe_with_failing_network(self, client):
        with patch('proxy.requests.post', side_effect=requests.ConnectionError('down')):
            response = client.post('/api/v0-proxy', json={'message': 'card', 'messages': []})
        assert response.status_code == 503


class TestProjectRoutes:

    def test_project_and_thread_lifecycle(self, signed_in):
        created = signed_in.post('/api/projects', json={'name': 'Landing', 'description': 'site'})
        assert created.status_code == 201
        project = created.get_json()
        assert project['user_id'] == 'user-1'

        assert [p['name'] for p in signed_in.get('/api/projects').get_json()] == ['Landing']

        thread = signed_in.post(f"/api/projects/{project['id']}/threads", json={'title': 'Hero'}).get_json()
        assert thread['project_id'] == project['id']
        listed = signed_in.get(f"/api/projects/{project['id']}/threads?q=her").get_json()
        assert [t['id'] for t in listed] == [thread['id']]

        assert signed_in.delete(f"/api/threads/{thread['id']}").status_code == 200
        assert signed_in.delete(f"/api/projects/{project['id']}").status_code == 200
        assert signed_in.get('/api/projects').get_json() == []

    def test_validation_and_missing_rows(self, signed_in):
        assert signed_in.post('/api/projects', json={'name': ' '}).status_code == 400
        assert signed_in.post('/api/projects/nope/threads', json={'title': 'x'}).status_code == 404
        assert signed_in.delete('/api/threads/nope').status_code == 404
        assert signed_in.get('/api/threads/nope/messages').status_code == 404

    def test_me(self, signed_in, store):
        store.upsert_profile('user-1', email='ada@example.com', full_name='Ada')
        data = signed_in.get('/api/me').get_json()
        assert data['user']['id'] == 'user-1'
        assert data['profile']['full_name'] == 'Ada'

    def test_index_page(self, signed_in, store):
        store.create_project('user-1', 'Visible project')
        response = signed_in.get('/')
        assert response.status_code == 200
        assert b'Visible project' in response.data


class TestThreadRoutes:

    @pytest.fixture
    def thread(self, store):
        project = store.create_project('user-1', 'P')
        return store.create_thread('user-1', project.id, 'T')

    def test_send_message_runs_orchestrator(self, signed_in, store, thread, settings):
        settings.generation_endpoint = 'http://gen.example.com/api/chat'
        upstream = {'message': 'Done', 'code': [{'filePath': 'card.tsx', 'content': 'export default function Card() {}'}]}

        with patch('orchestrator.requests.post') as post:
            post.return_value.ok = True
            post.return_value.json.return_value = upstream
            response = signed_in.post(f'/api/threads/{thread.id}/messages', json={'content': 'a card'})

        assert post.call_args.args[0] == 'http://gen.example.com/api/chat'
        data = response.get_json()
        assert data['user']['content'] == 'a card'
        assert data['assistant']['content'] == 'Done'
        assert data['code'][0]['message_id'] == data['assistant']['id']

        code = signed_in.get(f'/api/threads/{thread.id}/code').get_json()
        preview = signed_in.get(f"/api/code/{code[0]['id']}/preview")
        assert preview.mimetype == 'text/html'
        assert b'React.createElement(Card)' in preview.data

        page = signed_in.get(f'/threads/{thread.id}')
        assert page.status_code == 200
        assert b'sandbox="allow-scripts"' in page.data

    def test_send_message_network_failure(self, signed_in, store, thread, settings):
        settings.generation_endpoint = 'http://gen.example.com/api/chat'
        with patch('orchestrator.requests.post', side_effect=requests.ConnectionError('down')):
            data = signed_in.post(f'/api/threads/{thread.id}/messages', json={'content': 'a card'}).get_json()
        assert data['assistant']['metadata'] == {'error': True, 'networkError': True}
        messages = signed_in.get(f'/api/threads/{thread.id}/messages').get_json()
        assert [m['role'] for m in messages] == ['user', 'assistant']

    def test_send_message_requires_content(self, signed_in, thread):
        assert signed_in.post(f'/api/threads/{thread.id}/messages', json={}).status_code == 400

    def test_other_users_thread_is_hidden(self, signed_in, store):
        project = store.create_project('user-2', 'Theirs')
        theirs = store.create_thread('user-2', project.id, 'Private')
        assert signed_in.get(f'/api/threads/{theirs.id}/messages').status_code == 404
        assert signed_in.get(f'/threads/{theirs.id}').status_code == 404

    def test_send_message_generates_in_process_without_endpoint(self, signed_in, store, thread, settings, monkeypatch):
        monkeypatch.delenv('GENAI_API_KEY', raising=False)
        assert settings.generation_endpoint is None

        with patch('orchestrator.requests.post') as post:
            response = signed_in.post(f'/api/threads/{thread.id}/messages', json={'content': 'a login form'})

        post.assert_not_called()
        data = response.get_json()
        assert data['assistant']['metadata']['model'] == 'fallback-system'
        assert data['assistant']['metadata']['threadId'] == thread.id
        assert [c['file_path'] for c in data['code']] == ['login-form.tsx']
        assert [c.file_path for c in store.list_generated_code(thread.id)] == ['login-form.tsx']

    def test_send_message_while_thread_busy_is_409(self, signed_in, store, thread):
        with patch('orchestrator._in_flight', {thread.id}):
            response = signed_in.post(f'/api/threads/{thread.id}/messages', json={'content': 'again'})
        assert response.status_code == 409
        assert store.list_messages(thread.id) == []

    def test_download_concatenates_generated_files(self, signed_in, store, thread):
        message = store.add_message(thread.id, 'assistant', 'here')
        store.add_generated_code(thread.id, message.id, [
            CodeArtifact(file_path='card.tsx', content='export default function Card() {}'),
            CodeArtifact(file_path='util.ts', content='export const x = 1', language='ts'),
        ])

        response = signed_in.get(f'/api/threads/{thread.id}/code/download')

        assert response.status_code == 200
        assert response.mimetype == 'text/plain'
        assert response.headers['Content-Disposition'] == f'attachment; filename=generated-code-{thread.id}.txt'
        assert response.get_data(as_text=True) == (
            '// card.tsx\nexport default function Card() {}\n\n'
            '// util.ts\nexport const x = 1\n\n'
        )

    def test_download_of_other_users_thread_is_404(self, signed_in, store):
        project = store.create_project('user-2', 'Theirs')
        theirs = store.create_thread('user-2', project.id, 'Private')
        assert signed_in.get(f'/api/threads/{theirs.id}/code/download').status_code == 404

    def test_thread_page_shows_code_panel(self, signed_in, store, thread):
        message = store.add_message(thread.id, 'assistant', 'here')
        store.add_generated_code(thread.id, message.id, [
            CodeArtifact(file_path='card.tsx', content='const a = <b>1</b>;'),
        ])
        page = signed_in.get(f'/threads/{thread.id}').get_data(as_text=True)
        assert 'const a = &lt;b&gt;1&lt;/b&gt;;' in page
        assert f'/api/threads/{thread.id}/code/download' in page
        assert 'navigator.clipboard' in page
        assert 'data-width="375px"' in page
