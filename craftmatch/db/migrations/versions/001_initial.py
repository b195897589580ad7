"""Initial schema - marketplace tables and reference dictionaries

Revision ID: 001
Revises: None
Create Date: 2025-10-12
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    # Users (mirror of auth provider accounts)
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("role", sa.String(20), nullable=False),
        _created_at(),
        sa.CheckConstraint("role IN ('client', 'artisan')", name="ck_users_role"),
    )

    # Dictionaries
    for table in ("categories", "materials", "specializations"):
        op.create_table(
            table,
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
            sa.Column("name", sa.String(255), unique=True, nullable=False),
        )

    # Generated images
    op.create_table(
        "generated_images",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("prompt", sa.Text, nullable=True),
        sa.Column("enhanced_positive_prompt", sa.Text, nullable=True),
        sa.Column("enhanced_negative_prompt", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(1000), nullable=False),
        _created_at(),
    )

    # Projects (accepted_proposal_id FK added after proposals exist)
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "client_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "generated_image_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("generated_images.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("categories.id"), nullable=False, index=True),
        sa.Column("material_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("materials.id"), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="open", index=True),
        sa.Column("dimensions", sa.String(100), nullable=True),
        sa.Column("budget_range", sa.String(50), nullable=True),
        sa.Column("accepted_proposal_id", postgresql.UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("accepted_price", sa.Numeric(10, 2), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            "status IN ('open', 'in_progress', 'completed', 'closed')", name="ck_projects_status"
        ),
    )

    # Proposals
    op.create_table(
        "proposals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "artisan_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("attachment_url", sa.String(1000), nullable=False),
        _created_at(),
        sa.UniqueConstraint("project_id", "artisan_id", name="uq_proposals_project_artisan"),
        sa.CheckConstraint("price > 0", name="ck_proposals_price_positive"),
    )
    op.create_foreign_key(
        "fk_accepted_proposal", "projects", "proposals", ["accepted_proposal_id"], ["id"]
    )

    # Artisan profiles
    op.create_table(
        "artisan_profiles",
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("nip", sa.String(10), unique=True, nullable=False),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.text("false"), index=True),
        _updated_at(),
    )

    op.create_table(
        "artisan_specializations",
        sa.Column(
            "artisan_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("artisan_profiles.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "specialization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("specializations.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "portfolio_images",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "artisan_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("artisan_profiles.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("image_url", sa.String(1000), nullable=False),
        _created_at(),
    )

    # Reviews
    op.create_table(
        "reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "reviewer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "reviewee_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        _created_at(),
        sa.UniqueConstraint("project_id", "reviewer_id", name="uq_reviews_project_reviewer"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )


def downgrade() -> None:
    op.drop_table("reviews")
    op.drop_table("portfolio_images")
    op.drop_table("artisan_specializations")
    op.drop_table("artisan_profiles")
    op.drop_constraint("fk_accepted_proposal", "projects", type_="foreignkey")
    op.drop_table("proposals")
    op.drop_table("projects")
    op.drop_table("generated_images")
    for table in ("specializations", "materials", "categories"):
        op.drop_table(table)
    op.drop_table("users")
