import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def new_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = 'profiles'
    id = Column(String(36), primary_key=True)  # same id as the auth user
    email = Column(String(320))
    full_name = Column(String(200))
    avatar_url = Column(Text)
    provider = Column(String(50))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'avatar_url': self.avatar_url,
            'provider': self.provider,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Project(Base):
    __tablename__ = 'projects'
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    threads = relationship('ChatThread', back_populates='project', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'description': self.description,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class ChatThread(Base):
    __tablename__ = 'chat_threads'
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey('projects.id'))
    title = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    project = relationship('Project', back_populates='threads')
    messages = relationship('Message', back_populates='thread', cascade='all, delete-orphan',
                            order_by='Message.created_at')
    generated_code = relationship('GeneratedCode', back_populates='thread', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'project_id': self.project_id,
            'title': self.title,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Message(Base):
    __tablename__ = 'messages'
    id = Column(String(36), primary_key=True, default=new_id)
    thread_id = Column(String(36), ForeignKey('chat_threads.id'), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # user / assistant
    content = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column('metadata', JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    thread = relationship('ChatThread', back_populates='messages')

    def to_dict(self):
        return {
            'id': self.id,
            'thread_id': self.thread_id,
            'role': self.role,
            'content': self.content,
            'metadata': self.meta or {},
            'created_at': _iso(self.created_at),
        }


class GeneratedCode(Base):
    __tablename__ = 'generated_code'
    id = Column(String(36), primary_key=True, default=new_id)
    thread_id = Column(String(36), ForeignKey('chat_threads.id'), nullable=False, index=True)
    message_id = Column(String(36), ForeignKey('messages.id'), nullable=False)
    file_path = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    language = Column(String(30), nullable=False, default='tsx')
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    thread = relationship('ChatThread', back_populates='generated_code')

    def to_dict(self):
        return {
            'id': self.id,
            'thread_id': self.thread_id,
            'message_id': self.message_id,
            'file_path': self.file_path,
            'content': self.content,
            'language': self.language,
            'created_at': _iso(self.created_at),
        }


def _iso(value):
    return value.isoformat() if value is not None else None
