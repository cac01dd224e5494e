import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class DocumentProgress(enum.Enum):
    incomplete = "Incomplete"
    complete = "Complete"


# progress_number stages
STAGE_CREATED = 1
STAGE_INDEXED = 2
STAGE_QA = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Tags define the property schema each new document starts from
# ---------------------------------------------------------------------------


class DocumentTag(Base):
    __tablename__ = "document_tags"
    __table_args__ = (
        UniqueConstraint("company_id", "title", name="uq_document_tags_company_title"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    properties: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    documents = relationship("Document", back_populates="tag")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_company_id", "company_id"),
        Index("ix_documents_added_by", "added_by"),
        Index("ix_documents_indexer_passed_id", "indexer_passed_id"),
        Index("ix_documents_qa_passed_id", "qa_passed_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("document_tags.id"), nullable=False
    )
    tag_name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    file_id: Mapped[str | None] = mapped_column(String(255))
    properties: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    progress: Mapped[DocumentProgress] = mapped_column(
        Enum(DocumentProgress), default=DocumentProgress.incomplete
    )
    progress_number: Mapped[int] = mapped_column(
        Integer, nullable=False, default=STAGE_CREATED
    )
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)

    # Person ids are polymorphic (users or clients), so no foreign keys
    added_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    added_by_role: Mapped[str] = mapped_column(String(40), nullable=False)
    indexer_passed_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    qa_passed_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    passed_to: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    tag = relationship("DocumentTag", back_populates="documents")
    comments = relationship(
        "DocumentComment",
        back_populates="document",
        order_by=lambda: [DocumentComment.created_at, DocumentComment.id],
    )
    history = relationship(
        "DocumentEditHistory",
        back_populates="document",
        order_by="DocumentEditHistory.created_at",
    )


class DocumentComment(Base):
    __tablename__ = "document_comments"
    __table_args__ = (Index("ix_document_comments_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    role: Mapped[str] = mapped_column(String(40), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    document = relationship("Document", back_populates="comments")


class DocumentEditHistory(Base):
    __tablename__ = "document_edit_history"
    __table_args__ = (Index("ix_document_edit_history_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    edited_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    role: Mapped[str] = mapped_column(String(40), nullable=False)
    edit_description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    document = relationship("Document", back_populates="history")


# ---------------------------------------------------------------------------
# Disputes & sharing
# ---------------------------------------------------------------------------


class Dispute(Base):
    __tablename__ = "disputes"
    __table_args__ = (Index("ix_disputes_company_id", "company_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    raised_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    raised_by_role: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    resolve: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    document = relationship("Document")


class SharedDocumentLink(Base):
    __tablename__ = "shared_documents"
    __table_args__ = (UniqueConstraint("link", name="uq_shared_documents_link"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    owner_role: Mapped[str] = mapped_column(String(40), nullable=False)
    link: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    document = relationship("Document")
