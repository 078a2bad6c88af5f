import logging
from contextlib import contextmanager
from typing import Iterable, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from errors import NotFoundError
from models import Base, ChatThread, GeneratedCode, Message, Profile, Project, utcnow
from schemas import CodeArtifact

logger = logging.getLogger(__name__)


def make_engine(database_url: str):
    connect_args = {"check_same_thread": False} if database_url.startswith('sqlite') else {}
    return create_engine(database_url, connect_args=connect_args)


class Store:
    """CRUD over profiles, projects, threads, messages and generated code.

    Rows come back detached (``expire_on_commit=False``) so routes can read
    them after the session closes. Reads and writes that take a ``user_id``
    only see rows owned by that user.
    """

    def __init__(self, engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(bind=engine)

    @contextmanager
    def session(self):
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # profiles

    def upsert_profile(self, user_id: str, email: str = None, full_name: str = None,
                       avatar_url: str = None, provider: str = None) -> Profile:
        with self.session() as db:
            profile = db.get(Profile, user_id)
            if profile is None:
                profile = Profile(id=user_id)
                db.add(profile)
            profile.email = email
            profile.full_name = full_name
            profile.avatar_url = avatar_url
            profile.provider = provider
            profile.updated_at = utcnow()
        return profile

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self.session() as db:
            return db.get(Profile, user_id)

    # projects

    def list_projects(self, user_id: str) -> List[Project]:
        with self.session() as db:
            return (db.query(Project)
                    .filter(Project.user_id == user_id)
                    .order_by(Project.updated_at.desc())
                    .all())

    def create_project(self, user_id: str, name: str, description: str = None) -> Project:
        name = (name or '').strip()
        if not name:
            raise ValueError('project name required')
        with self.session() as db:
            project = Project(user_id=user_id, name=name, description=(description or '').strip() or None)
            db.add(project)
        return project

    def delete_project(self, user_id: str, project_id: str):
        with self.session() as db:
            project = db.query(Project).filter(Project.id == project_id, Project.user_id == user_id).first()
            if project is None:
                raise NotFoundError('project not found')
            thread_ids = [t.id for t in project.threads]
            if thread_ids:
                db.query(GeneratedCode).filter(GeneratedCode.thread_id.in_(thread_ids)).delete(
                    synchronize_session=False)
            db.delete(project)

    # threads

    def list_threads(self, user_id: str, project_id: str, query: str = None) -> List[ChatThread]:
        with self.session() as db:
            threads = (db.query(ChatThread)
                       .filter(ChatThread.user_id == user_id, ChatThread.project_id == project_id)
                       .order_by(ChatThread.updated_at.desc())
                       .all())
        if query:
            needle = query.lower()
            threads = [t for t in threads if needle in t.title.lower()]
        return threads

    def create_thread(self, user_id: str, project_id: str, title: str) -> ChatThread:
        title = (title or '').strip()
        if not title:
            raise ValueError('thread title required')
        with self.session() as db:
            project = db.query(Project).filter(Project.id == project_id, Project.user_id == user_id).first()
            if project is None:
                raise NotFoundError('project not found')
            thread = ChatThread(user_id=user_id, project_id=project_id, title=title)
            db.add(thread)
            project.updated_at = utcnow()
        return thread

    def get_thread(self, user_id: str, thread_id: str) -> ChatThread:
        with self.session() as db:
            thread = db.query(ChatThread).filter(ChatThread.id == thread_id, ChatThread.user_id == user_id).first()
        if thread is None:
            raise NotFoundError('thread not found')
        return thread

    def delete_thread(self, user_id: str, thread_id: str):
        with self.session() as db:
            thread = db.query(ChatThread).filter(ChatThread.id == thread_id, ChatThread.user_id == user_id).first()
            if thread is None:
                raise NotFoundError('thread not found')
            # generated code points at messages; drop it first
            db.query(GeneratedCode).filter(GeneratedCode.thread_id == thread_id).delete(synchronize_session=False)
            db.delete(thread)

    # messages

    def list_messages(self, thread_id: str) -> List[Message]:
        with self.session() as db:
            return (db.query(Message)
                    .filter(Message.thread_id == thread_id)
                    .order_by(Message.created_at.asc())
                    .all())

    def add_message(self, thread_id: str, role: str, content: str, metadata: dict = None) -> Message:
        if role not in ('user', 'assistant'):
            raise ValueError(f'unknown role: {role}')
        with self.session() as db:
            msg = Message(thread_id=thread_id, role=role, content=content, meta=metadata or {}, created_at=utcnow())
            db.add(msg)
            thread = db.get(ChatThread, thread_id)
            if thread is not None:
                thread.updated_at = msg.created_at
        return msg

    # generated code

    def add_generated_code(self, thread_id: str, message_id: str,
                           artifacts: Iterable[CodeArtifact]) -> List[GeneratedCode]:
        rows = []
        with self.session() as db:
            for artifact in artifacts:
                row = GeneratedCode(
                    thread_id=thread_id,
                    message_id=message_id,
                    file_path=artifact.file_path,
                    content=artifact.content,
                    language=artifact.language or 'tsx',
                    created_at=utcnow(),
                )
                db.add(row)
                rows.append(row)
        logger.info("Stored %d generated file(s) for thread %s", len(rows), thread_id)
        return rows

    def list_generated_code(self, thread_id: str) -> List[GeneratedCode]:
        with self.session() as db:
            return (db.query(GeneratedCode)
                    .filter(GeneratedCode.thread_id == thread_id)
                    .order_by(GeneratedCode.created_at.asc())
                    .all())

    def get_generated_code(self, user_id: str, code_id: str) -> GeneratedCode:
        with self.session() as db:
            row = (db.query(GeneratedCode)
                   .join(ChatThread, ChatThread.id == GeneratedCode.thread_id)
                   .filter(GeneratedCode.id == code_id, ChatThread.user_id == user_id)
                   .first())
        if row is None:
            raise NotFoundError('generated code not found')
        return row
