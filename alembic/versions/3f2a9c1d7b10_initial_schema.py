"""initial schema

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-18 09:12:44.104211

"""

from alembic import op
import sqlalchemy as sa

revision = "3f2a9c1d7b10"
down_revision = None
branch_labels = None
depends_on = None


def _plan_rate_columns() -> list[sa.Column]:
    return [
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("monthly_price", sa.Float(), nullable=False),
        sa.Column("share_count", sa.Integer(), nullable=False),
        sa.Column("share_price_per_thousand", sa.Float(), nullable=False),
        sa.Column("download_count", sa.Integer(), nullable=False),
        sa.Column("download_price_per_thousand", sa.Float(), nullable=False),
        sa.Column("upload_count", sa.Integer(), nullable=False),
        sa.Column("upload_price_per_ten", sa.Float(), nullable=False),
        sa.Column("billing_duration", sa.Integer(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _usage_columns() -> list[sa.Column]:
    return [
        sa.Column("documents_shared", sa.Integer(), nullable=False),
        sa.Column("documents_downloaded", sa.Integer(), nullable=False),
        sa.Column("documents_uploaded", sa.Integer(), nullable=False),
        sa.Column("last_invoice_paid", sa.DateTime(timezone=True), nullable=True),
    ]


def _invoice_state_columns() -> list[sa.Column]:
    return [
        sa.Column("other_invoices", sa.JSON(), nullable=False),
        sa.Column("invoice_submitted", sa.Boolean(), nullable=True),
        sa.Column("invoice_submitted_admin", sa.Boolean(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _generated_amount_columns() -> list[sa.Column]:
    return [
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("monthly_amount", sa.Float(), nullable=False),
        sa.Column("shared_amount", sa.Float(), nullable=False),
        sa.Column("download_amount", sa.Float(), nullable=False),
        sa.Column("upload_amount", sa.Float(), nullable=False),
        sa.Column("documents_shared", sa.Integer(), nullable=False),
        sa.Column("documents_downloaded", sa.Integer(), nullable=False),
        sa.Column("documents_uploaded", sa.Integer(), nullable=False),
    ]


def upgrade() -> None:
    # Plans and tenants
    op.create_table(
        "plans",
        sa.Column("id", sa.UUID(), nullable=False),
        *_plan_rate_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "companies",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=False),
        sa.Column("contact_phone", sa.String(length=40), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", name="companystatus"),
            nullable=True,
        ),
        sa.Column("plan_id", sa.UUID(), nullable=True),
        *_usage_columns(),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["plans.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contact_email", name="uq_companies_contact_email"),
    )

    op.create_table(
        "client_plans",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        *_plan_rate_columns(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_client_plans_company_id", "client_plans", ["company_id"])

    # People
    person_status = sa.Enum("active", "inactive", name="personstatus")
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=40), nullable=False),
        sa.Column("status", person_status, nullable=True),
        sa.Column("documents_reviewed", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_company_id", "users", ["company_id"])
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "clients",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("status", person_status, nullable=True),
        sa.Column("client_plan_id", sa.UUID(), nullable=True),
        *_usage_columns(),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["client_plan_id"], ["client_plans.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clients_company_id", "clients", ["company_id"])
    op.create_index("ix_clients_email", "clients", ["email"])

    # Documents
    op.create_table(
        "document_tags",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("properties", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id", "title", name="uq_document_tags_company_title"
        ),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("tag_id", sa.UUID(), nullable=False),
        sa.Column("tag_name", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("file_id", sa.String(length=255), nullable=True),
        sa.Column("properties", sa.JSON(), nullable=False),
        sa.Column(
            "progress",
            sa.Enum("incomplete", "complete", name="documentprogress"),
            nullable=True,
        ),
        sa.Column("progress_number", sa.Integer(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=True),
        sa.Column("added_by", sa.UUID(), nullable=False),
        sa.Column("added_by_role", sa.String(length=40), nullable=False),
        sa.Column("indexer_passed_id", sa.UUID(), nullable=True),
        sa.Column("qa_passed_id", sa.UUID(), nullable=True),
        sa.Column("passed_to", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["tag_id"], ["document_tags.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_company_id", "documents", ["company_id"])
    op.create_index("ix_documents_added_by", "documents", ["added_by"])
    op.create_index(
        "ix_documents_indexer_passed_id", "documents", ["indexer_passed_id"]
    )
    op.create_index("ix_documents_qa_passed_id", "documents", ["qa_passed_id"])

    op.create_table(
        "document_comments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("author_id", sa.UUID(), nullable=False),
        sa.Column("role", sa.String(length=40), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_comments_document_id", "document_comments", ["document_id"]
    )

    op.create_table(
        "document_edit_history",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("edited_by", sa.UUID(), nullable=False),
        sa.Column("role", sa.String(length=40), nullable=False),
        sa.Column("edit_description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_edit_history_document_id",
        "document_edit_history",
        ["document_id"],
    )

    op.create_table(
        "disputes",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("raised_by", sa.UUID(), nullable=False),
        sa.Column("raised_by_role", sa.String(length=40), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("resolve", sa.Boolean(), nullable=True),
        sa.Column("resolved_by", sa.UUID(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_disputes_company_id", "disputes", ["company_id"])

    op.create_table(
        "shared_documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("owner_role", sa.String(length=40), nullable=False),
        sa.Column("link", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("link", name="uq_shared_documents_link"),
    )

    # Billing
    op.create_table(
        "invoices",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("period", sa.String(length=40), nullable=False),
        *_generated_amount_columns(),
        *_invoice_state_columns(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "period", name="uq_invoices_company_period"),
    )
    op.create_index("ix_invoices_period", "invoices", ["period"])

    op.create_table(
        "client_invoices",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("client_id", sa.UUID(), nullable=False),
        sa.Column("client_email", sa.String(length=255), nullable=False),
        sa.Column("period", sa.String(length=40), nullable=False),
        *_generated_amount_columns(),
        *_invoice_state_columns(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id",
            "client_email",
            "period",
            name="uq_client_invoices_company_email_period",
        ),
    )
    op.create_index("ix_client_invoices_client_id", "client_invoices", ["client_id"])

    op.create_table(
        "custom_invoices",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("client_id", sa.UUID(), nullable=True),
        sa.Column("is_client", sa.Boolean(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("period", sa.String(length=40), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=False),
        *_invoice_state_columns(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_custom_invoices_company_id", "custom_invoices", ["company_id"])


def downgrade() -> None:
    op.drop_index("ix_custom_invoices_company_id", table_name="custom_invoices")
    op.drop_table("custom_invoices")
    op.drop_index("ix_client_invoices_client_id", table_name="client_invoices")
    op.drop_table("client_invoices")
    op.drop_index("ix_invoices_period", table_name="invoices")
    op.drop_table("invoices")
    op.drop_table("shared_documents")
    op.drop_index("ix_disputes_company_id", table_name="disputes")
    op.drop_table("disputes")
    op.drop_index(
        "ix_document_edit_history_document_id", table_name="document_edit_history"
    )
    op.drop_table("document_edit_history")
    op.drop_index("ix_document_comments_document_id", table_name="document_comments")
    op.drop_table("document_comments")
    op.drop_index("ix_documents_qa_passed_id", table_name="documents")
    op.drop_index("ix_documents_indexer_passed_id", table_name="documents")
    op.drop_index("ix_documents_added_by", table_name="documents")
    op.drop_index("ix_documents_company_id", table_name="documents")
    op.drop_table("documents")
    op.drop_table("document_tags")
    op.drop_index("ix_clients_email", table_name="clients")
    op.drop_index("ix_clients_company_id", table_name="clients")
    op.drop_table("clients")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_company_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_client_plans_company_id", table_name="client_plans")
    op.drop_table("client_plans")
    op.drop_table("companies")
    op.drop_table("plans")

    sa.Enum(name="documentprogress").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="personstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="companystatus").drop(op.get_bind(), checkfirst=True)
