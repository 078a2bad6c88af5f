import logging

from flask import Blueprint, Flask, current_app, jsonify, render_template, request
from pydantic import ValidationError

from auth import auth_bp, login_required
from auth_client import AuthClient
from chains.code_generator import make_generation_chain, run_generation
from config import load_settings
from errors import ConfigError, NotFoundError, ProxyExhausted
from fallback import build_fallback_response
from orchestrator import ChatOrchestrator, HttpGenerationEndpoint, InProcessGenerationEndpoint
from proxy import probe_endpoints
from sandbox import build_preview_document
from schemas import ChatRequest, GenerationResponse, ProxyRequest
from store import Store, make_engine

main = Blueprint('main', __name__)


def get_store() -> Store:
    return current_app.extensions['store']


def make_orchestrator() -> ChatOrchestrator:
    settings = current_app.extensions['settings']
    if settings.generation_endpoint:
        endpoint = HttpGenerationEndpoint(settings.generation_endpoint)
    else:
        endpoint = InProcessGenerationEndpoint(lambda body: generate_reply(body, settings))
    return ChatOrchestrator(get_store(), endpoint)


def validation_error(e: ValidationError):
    return jsonify({'error': 'invalid request', 'details': e.errors(include_url=False)}), 400


# pages

@main.route('/')
@login_required
def index(ctx):
    store = get_store()
    projects = store.list_projects(ctx.user_id)
    threads = {p.id: store.list_threads(ctx.user_id, p.id) for p in projects}
    return render_template('index.html', ctx=ctx, projects=projects, threads=threads)


@main.route('/threads/<thread_id>')
@login_required
def view_thread(ctx, thread_id):
    store = get_store()
    try:
        thread = store.get_thread(ctx.user_id, thread_id)
    except NotFoundError:
        return render_template('index.html', ctx=ctx, projects=store.list_projects(ctx.user_id),
                               threads={}, error='Chat not found'), 404
    files = store.list_generated_code(thread.id)
    selected = request.args.get('file') or (files[0].id if files else None)
    return render_template('thread.html', ctx=ctx, thread=thread,
                           messages=store.list_messages(thread.id), files=files, selected=selected)


# session

@main.route('/api/me')
@login_required(api=True)
def me(ctx):
    return jsonify({
        'user': {'id': ctx.user.id, 'email': ctx.user.email},
        'profile': ctx.profile.to_dict() if ctx.profile else None,
    })


# projects and threads

@main.route('/api/projects', methods=['GET'])
@login_required(api=True)
def list_projects(ctx):
    return jsonify([p.to_dict() for p in get_store().list_projects(ctx.user_id)])


@main.route('/api/projects', methods=['POST'])
@login_required(api=True)
def create_project(ctx):
    data = request.get_json(silent=True) or {}
    try:
        project = get_store().create_project(ctx.user_id, data.get('name'), data.get('description'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(project.to_dict()), 201


@main.route('/api/projects/<project_id>', methods=['DELETE'])
@login_required(api=True)
def delete_project(ctx, project_id):
    try:
        get_store().delete_project(ctx.user_id, project_id)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    return jsonify({'status': 'ok'})


@main.route('/api/projects/<project_id>/threads', methods=['GET'])
@login_required(api=True)
def list_threads(ctx, project_id):
    threads = get_store().list_threads(ctx.user_id, project_id, query=request.args.get('q'))
    return jsonify([t.to_dict() for t in threads])


@main.route('/api/projects/<project_id>/threads', methods=['POST'])
@login_required(api=True)
def create_thread(ctx, project_id):
    data = request.get_json(silent=True) or {}
    try:
        thread = get_store().create_thread(ctx.user_id, project_id, data.get('title'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    return jsonify(thread.to_dict()), 201


@main.route('/api/threads/<thread_id>', methods=['DELETE'])
@login_required(api=True)
def delete_thread(ctx, thread_id):
    try:
        get_store().delete_thread(ctx.user_id, thread_id)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    return jsonify({'status': 'ok'})


# messages and code

@main.route('/api/threads/<thread_id>/messages', methods=['GET'])
@login_required(api=True)
def list_messages(ctx, thread_id):
    store = get_store()
    try:
        thread = store.get_thread(ctx.user_id, thread_id)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    return jsonify([m.to_dict() for m in store.list_messages(thread.id)])


@main.route('/api/threads/<thread_id>/messages', methods=['POST'])
@login_required(api=True)
def send_message(ctx, thread_id):
    data = request.get_json(silent=True) or {}
    text = (data.get('content') or data.get('text') or '').strip()
    if not text:
        return jsonify({'error': 'content required'}), 400
    try:
        thread = get_store().get_thread(ctx.user_id, thread_id)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404

    result = make_orchestrator().send(thread.id, text)
    if result is None:
        return jsonify({'error': 'a reply is already being generated for this chat'}), 409
    return jsonify({
        'user': result.user_message.to_dict(),
        'assistant': result.assistant_message.to_dict() if result.assistant_message else None,
        'code': [c.to_dict() for c in result.code],
    })


@main.route('/api/threads/<thread_id>/code', methods=['GET'])
@login_required(api=True)
def list_code(ctx, thread_id):
    store = get_store()
    try:
        thread = store.get_thread(ctx.user_id, thread_id)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    return jsonify([c.to_dict() for c in store.list_generated_code(thread.id)])


@main.route('/api/threads/<thread_id>/code/download', methods=['GET'])
@login_required(api=True)
def download_code(ctx, thread_id):
    store = get_store()
    try:
        thread = store.get_thread(ctx.user_id, thread_id)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    bundle = ''.join(f"// {c.file_path}\n{c.content}\n\n" for c in store.list_generated_code(thread.id))
    return current_app.response_class(bundle, mimetype='text/plain', headers={
        'Content-Disposition': f'attachment; filename=generated-code-{thread.id}.txt',
    })


@main.route('/api/code/<code_id>/preview', methods=['GET'])
@login_required(api=True)
def preview_code(ctx, code_id):
    try:
        row = get_store().get_generated_code(ctx.user_id, code_id)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    return current_app.response_class(build_preview_document(row.file_path, row.content), mimetype='text/html')


# generation

def generate_reply(body: ChatRequest, settings) -> GenerationResponse:
    """Primary model answer, or the keyword fallback when it is unconfigured or fails."""
    try:
        chain = make_generation_chain(api_key=settings.genai_api_key)
        return run_generation(chain, body.message, body.messages, thread_id=body.thread_id)
    except ConfigError as e:
        current_app.logger.info(f"Primary generation unconfigured ({e}), using fallback")
    except Exception as e:
        current_app.logger.error(f"Primary generation failed, using fallback: {e}")
    return build_fallback_response(body.message, body.thread_id)


@main.route('/api/chat', methods=['POST'])
def chat_completion():
    try:
        body = ChatRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return validation_error(e)

    return jsonify(generate_reply(body, current_app.extensions['settings']).dump())


@main.route('/api/chat-fallback', methods=['POST'])
def chat_fallback():
    try:
        body = ChatRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return validation_error(e)
    try:
        return jsonify(build_fallback_response(body.message, body.thread_id).dump())
    except Exception as e:
        current_app.logger.error(f"Fallback chat API error: {e}")
        return jsonify({'error': 'Failed to generate response using fallback system.'}), 500


@main.route('/api/v0-proxy', methods=['POST'])
def generation_proxy():
    try:
        body = ProxyRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return validation_error(e)

    settings = current_app.extensions['settings']
    try:
        data = probe_endpoints(body.message, [m.model_dump() for m in body.messages], settings.proxy_endpoints)
    except ProxyExhausted as e:
        return jsonify({'error': str(e), 'attempts': e.failures}), 503
    except Exception as e:
        current_app.logger.error(f"Generation proxy error: {e}")
        return jsonify({'error': 'Internal server error'}), 500
    return jsonify(data)


def create_app(settings=None, store=None, auth_client=None):
    """Build the app. Missing backend settings raise ConfigError here."""
    settings = settings or load_settings()
    settings.require_backend()

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config['SECURE_COOKIES'] = settings.secure_cookies

    app.extensions['settings'] = settings
    app.extensions['store'] = store or Store(make_engine(settings.database_url))
    app.extensions['auth_client'] = auth_client or AuthClient(settings.supabase_url, settings.supabase_anon_key)

    app.register_blueprint(auth_bp)
    app.register_blueprint(main)
    return app


if __name__ == '__main__':
    create_app().run(debug=True)
