from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.documents import DocumentProgress
from app.schemas.tenancy import AssigneeRead


class PropertyItem(BaseModel):
    key: str = Field(min_length=1)
    value: Any = ""


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TagProperty(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: str = Field(min_length=1)
    type: str = "text"


class DocumentTagCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    properties: list[TagProperty] = Field(default_factory=list)


class DocumentTagUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=255)
    properties: list[TagProperty] | None = None


class DocumentTagRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    title: str
    properties: list[dict[str, Any]]
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    tag_id: UUID
    url: str = Field(min_length=1, max_length=2048)
    file_id: str | None = None
    title: str = Field(min_length=1, max_length=500)


class AssignRequest(BaseModel):
    document_id: UUID
    assignee_id: UUID


class DocumentActionRequest(BaseModel):
    document_id: UUID


class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


class PropertiesUpdate(BaseModel):
    properties: list[PropertyItem]


class PersonRef(BaseModel):
    id: UUID | None = None
    name: str | None = None
    role: str | None = None


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    author_id: UUID
    role: str
    name: str
    created_at: datetime


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    tag_id: UUID
    tag_name: str
    title: str
    url: str
    file_id: str | None = None
    properties: list[dict[str, Any]]
    progress: DocumentProgress
    progress_number: int
    is_published: bool
    added_by: UUID
    added_by_role: str
    indexer_passed_id: UUID | None = None
    qa_passed_id: UUID | None = None
    passed_to: UUID | None = None
    comments: list[CommentRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class DocumentDetail(DocumentRead):
    added_by_person: PersonRef | None = None
    requested_by: PersonRef | None = None
    show_more: bool = False


class AssigneesResponse(BaseModel):
    next_role: str | None = None
    assignees: list[AssigneeRead]


# ---------------------------------------------------------------------------
# Edit history
# ---------------------------------------------------------------------------


class EditHistoryCreate(BaseModel):
    document_id: UUID
    edit_description: str = Field(min_length=1)


class EditHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    edited_by: UUID
    role: str
    edit_description: str
    created_at: datetime


# ---------------------------------------------------------------------------
# Disputes & shared links
# ---------------------------------------------------------------------------


class DisputeCreate(BaseModel):
    document_id: UUID
    description: str = Field(min_length=1)


class DisputeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    document_id: UUID
    raised_by: UUID
    raised_by_role: str
    description: str
    resolve: bool
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime


class SharedLinkCreate(BaseModel):
    document_id: UUID
    password: str = Field(min_length=4)


class SharedLinkRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    document_id: UUID
    owner_id: UUID
    link: str
    url: str | None = None
    is_active: bool
    created_at: datetime


class SharedLinkAccess(BaseModel):
    password: str = Field(min_length=1)


class SharedDocumentView(BaseModel):
    document_id: UUID
    title: str
    url: str
    properties: list[dict[str, Any]]
