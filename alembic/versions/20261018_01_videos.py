"""
Videos table.

- One row per ingested video, addressed by its token id.
- Access policy lives in the JSONB `metadata` document.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision = "20261018_01_videos"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "videos",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False, comment="Video id"),
        sa.Column("token_id", sa.Text(), nullable=False, comment="Token id addressing this video"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'pending'"), comment="Ingestion status"),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_videos"),
        sa.UniqueConstraint("token_id", name="uq_videos_token_id"),
    )
    op.create_index("ix_videos_token_id_status", "videos", ["token_id", "status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_videos_token_id_status", table_name="videos")
    op.drop_table("videos")
