"""create stored_documents"""

from alembic import op
import sqlalchemy as sa

# Revisiones
revision = "3b1f6c2a9d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Un documento JSON por clave (state, today_done, plan_versions...)
    op.create_table(
        "stored_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False, server_default="null"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    with op.batch_alter_table("stored_documents", schema=None) as batch_op:
        batch_op.create_index("ix_stored_documents_key", ["key"], unique=True)


def downgrade():
    with op.batch_alter_table("stored_documents", schema=None) as batch_op:
        batch_op.drop_index("ix_stored_documents_key")
    op.drop_table("stored_documents")
