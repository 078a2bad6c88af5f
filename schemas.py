from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageMetadata(BaseModel):
    """Known keys of a message's metadata bag. Anything else is dropped."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    error: Optional[bool] = None
    network_error: Optional[bool] = Field(default=None, alias='networkError')
    model: Optional[str] = None
    timestamp: Optional[str] = None
    thread_id: Optional[str] = Field(default=None, alias='threadId')

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class CodeArtifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    language: str = 'tsx'
    file_path: str = Field(alias='filePath', description='File name of the component, e.g. "pricing-card.tsx"')
    content: str = Field(description='Complete source of the file')

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)


class HistoryMessage(BaseModel):
    role: Literal['user', 'assistant']
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    thread_id: Optional[str] = Field(default=None, alias='threadId')
    messages: List[HistoryMessage] = Field(default_factory=list)


class ProxyRequest(BaseModel):
    message: str = Field(min_length=1)
    messages: List[HistoryMessage] = Field(default_factory=list)


class GeneratedAnswer(BaseModel):
    """What the model is asked to return."""

    message: str = Field(description='Short explanation of what was built, for the chat transcript')
    code: List[CodeArtifact] = Field(default_factory=list, description='Generated source files')


class GenerationResponse(BaseModel):
    message: str
    code: List[CodeArtifact] = Field(default_factory=list)
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)

    def dump(self) -> dict:
        return {
            'message': self.message,
            'code': [c.dump() for c in self.code],
            'metadata': self.metadata.dump(),
        }
