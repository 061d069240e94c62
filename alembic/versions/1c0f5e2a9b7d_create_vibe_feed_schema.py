"""Create vibe feed schema

Revision ID: 1c0f5e2a9b7d
Revises:
Create Date: 2026-10-18 09:12:31.204517
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

from app.core.config import settings

# revision identifiers, used by Alembic.
revision: str = '1c0f5e2a9b7d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        'games',
        sa.Column('appid', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('short_description', sa.Text(), nullable=True),
        sa.Column('long_description', sa.Text(), nullable=True),
        sa.Column('header_image', sa.String(), nullable=True),
        sa.Column('screenshots', sa.ARRAY(sa.String()), nullable=True),
        sa.Column('videos', sa.ARRAY(sa.String()), nullable=True),
        sa.Column('tags', sa.ARRAY(sa.String()), nullable=True),
        sa.Column('genres', sa.ARRAY(sa.String()), nullable=True),
        sa.Column('developers', sa.ARRAY(sa.String()), nullable=True),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('appid'),
    )

    op.create_table(
        'vibe_embeddings',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appid', sa.Integer(), nullable=False),
        sa.Column('facet', sa.String(), nullable=False),
        sa.Column('model_id', sa.String(), nullable=False),
        sa.Column('embedding', Vector(settings.EMBEDDING_DIM), nullable=False),
        sa.Column('source_type', sa.Enum('IMAGE', 'TEXT', 'MULTIMODAL', 'VIDEO', name='sourcetypeenum'), nullable=False),
        sa.Column('source_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['appid'], ['games.appid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vibe_embeddings_appid', 'vibe_embeddings', ['appid'])
    op.create_index('ix_vibe_embeddings_facet', 'vibe_embeddings', ['facet'])
    op.create_index('ix_vibe_embeddings_lookup', 'vibe_embeddings', ['appid', 'facet', 'model_id', 'created_at'])

    op.create_table(
        'collections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('published', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_table(
        'collection_games',
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('appid', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['appid'], ['games.appid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('collection_id', 'appid'),
    )
    op.create_table(
        'collection_pins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('context', sa.Enum('HOME', 'RELATED', name='pincontextenum'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'game_enrichments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('appid', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.Enum('VIDEO_URL', 'ARTICLE_URL', 'IMAGE_URL', 'AUDIO_URL', 'TEXT_SNIPPET', name='enrichmenttypeenum'), nullable=False),
        sa.Column('source_name', sa.String(), nullable=True),
        sa.Column('content_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['appid'], ['games.appid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_game_enrichments_appid', 'game_enrichments', ['appid'])

    op.create_table(
        'game_submissions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appid', sa.Integer(), nullable=False),
        sa.Column('steam_url', sa.String(), nullable=True),
        sa.Column('skip_suggestions', sa.Boolean(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'INGESTED', 'FAILED', name='submissionstatusenum'), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_game_submissions_appid', 'game_submissions', ['appid'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_game_submissions_appid', table_name='game_submissions')
    op.drop_table('game_submissions')
    op.drop_index('ix_game_enrichments_appid', table_name='game_enrichments')
    op.drop_table('game_enrichments')
    op.drop_table('collection_pins')
    op.drop_table('collection_games')
    op.drop_table('collections')
    op.drop_index('ix_vibe_embeddings_lookup', table_name='vibe_embeddings')
    op.drop_index('ix_vibe_embeddings_facet', table_name='vibe_embeddings')
    op.drop_index('ix_vibe_embeddings_appid', table_name='vibe_embeddings')
    op.drop_table('vibe_embeddings')
    for enum_name in ('submissionstatusenum', 'enrichmenttypeenum', 'pincontextenum', 'sourcetypeenum'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
