"""add song path

Revision ID: 20230826_0003
Revises: 20230601_0002
Create Date: 2023-08-26 00:00:03.000000

Hey future me - additive only! song.path is the file location RELATIVE to the music
directory (POSIX separators). Nullable because rows created before this revision have
no known file.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230826_0003"
down_revision = "20230601_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("song") as batch_op:
        batch_op.add_column(sa.Column("path", sa.Text(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("song") as batch_op:
        batch_op.drop_column("path")
