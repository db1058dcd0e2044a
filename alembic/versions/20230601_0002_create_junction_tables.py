"""create junction tables

Revision ID: 20230601_0002
Revises: 20230601_0001
Create Date: 2023-06-01 00:00:02.000000

Hey future me - one junction table per relation, each row is (key, song_id, other_id).
There is NO unique constraint on (song_id, other_id): linking a pair twice
creates two rows. The song_id index only speeds up "all links of a song" lookups.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601_0002"
down_revision = "20230601_0001"
branch_labels = None
depends_on = None


# (table, other column, referenced table)
JUNCTIONS = [
    ("song_artist_junction", "artist_id", "artist"),
    ("song_album_junction", "album_id", "album"),
    ("song_genre_junction", "genre_id", "genre"),
    ("song_youtube_playlist_id_junction", "youtube_playlist_id_id", "youtube_playlist_id"),
]


def upgrade() -> None:
    for table, other_column, other_table in JUNCTIONS:
        op.create_table(
            table,
            sa.Column("key", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("song_id", sa.Integer(), sa.ForeignKey("song.id"), nullable=False),
            sa.Column(
                other_column,
                sa.Integer(),
                sa.ForeignKey(f"{other_table}.id"),
                nullable=False,
            ),
        )
        op.create_index(f"ix_{table}_song_id", table, ["song_id"])


def downgrade() -> None:
    for table, _other_column, _other_table in reversed(JUNCTIONS):
        op.drop_index(f"ix_{table}_song_id", table_name=table)
        op.drop_table(table)
