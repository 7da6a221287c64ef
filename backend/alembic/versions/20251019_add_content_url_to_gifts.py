from alembic import op
import sqlalchemy as sa


revision = "20251019_add_content_url_to_gifts"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "gifts",
        sa.Column("content_url", sa.String(length=2048), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("gifts", "content_url")
