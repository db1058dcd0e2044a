"""create basic tables

Revision ID: 20230601_0001
Revises:
Create Date: 2023-06-01 00:00:01.000000

Hey future me - the five base tables: song plus the four named-entity tables.
Every named value is UNIQUE (case-sensitive), which is what find-or-create relies on.
song.youtube_id is the streaming source id, unique when present.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "artist",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        "album",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        "genre",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("genre", sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        "youtube_playlist_id",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("youtube_playlist_id", sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        "song",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("youtube_id", sa.Text(), nullable=True, unique=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("song")
    op.drop_table("youtube_playlist_id")
    op.drop_table("genre")
    op.drop_table("album")
    op.drop_table("artist")
