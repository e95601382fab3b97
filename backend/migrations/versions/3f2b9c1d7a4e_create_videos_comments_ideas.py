"""Create videos, video_comments and ideas tables

Revision ID: 3f2b9c1d7a4e
Revises:
Create Date: 2025-04-02 09:14:27.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2b9c1d7a4e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'videos',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_videos_user_id', 'videos', ['user_id'])

    op.create_table(
        'video_comments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('video_id', sa.String(), sa.ForeignKey('videos.id'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('comment_text', sa.String(), nullable=False),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_video_comments_video_id', 'video_comments', ['video_id'])
    op.create_index('ix_video_comments_user_id', 'video_comments', ['user_id'])

    op.create_table(
        'ideas',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('video_id', sa.String(), sa.ForeignKey('videos.id'), nullable=False),
        sa.Column('comment_id', sa.String(), sa.ForeignKey('video_comments.id'), nullable=False),
        sa.Column('score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('video_title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('research', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_ideas_user_id', 'ideas', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_ideas_user_id', table_name='ideas')
    op.drop_table('ideas')
    op.drop_index('ix_video_comments_user_id', table_name='video_comments')
    op.drop_index('ix_video_comments_video_id', table_name='video_comments')
    op.drop_table('video_comments')
    op.drop_index('ix_videos_user_id', table_name='videos')
    op.drop_table('videos')
