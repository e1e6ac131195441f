"""initial quiz game schema: users, quizzes, questions, answers, game sessions

Revision ID: 5c0a7e21d9b4
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c0a7e21d9b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'quiz' not in existing_tables:
        op.create_table(
            'quiz',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('description', sa.String(length=256), nullable=False),
            sa.Column('owner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('in_trash', sa.Boolean(), nullable=False),
            sa.Column('time_created', sa.Integer(), nullable=False),
            sa.Column('time_last_edited', sa.Integer(), nullable=False),
        )
        op.create_index('ix_quiz_owner_id', 'quiz', ['owner_id'])

    if 'question' not in existing_tables:
        op.create_table(
            'question',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quiz.id'), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('text', sa.String(length=256), nullable=False),
            sa.Column('duration', sa.Integer(), nullable=False),
            sa.Column('points', sa.Integer(), nullable=False),
            sa.Column('thumbnail_url', sa.String(length=512), nullable=True),
        )
        op.create_index('ix_question_quiz_id', 'question', ['quiz_id'])

    if 'answer' not in existing_tables:
        op.create_table(
            'answer',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('question_id', sa.Integer(), sa.ForeignKey('question.id'), nullable=False),
            sa.Column('text', sa.String(length=64), nullable=False),
            sa.Column('colour', sa.String(length=16), nullable=False),
            sa.Column('correct', sa.Boolean(), nullable=False),
        )
        op.create_index('ix_answer_question_id', 'answer', ['question_id'])

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=False),
            sa.Column('quiz_id', sa.Integer(), nullable=False),
            sa.Column('owner_id', sa.Integer(), nullable=False),
            sa.Column('state', sa.String(length=32), nullable=False),
            sa.Column('question_index', sa.Integer(), nullable=False),
            sa.Column('payload', sa.Text(), nullable=False),
            sa.Column('updated_at', sa.Float(), nullable=True),
        )
        op.create_index('ix_game_session_quiz_id', 'game_session', ['quiz_id'])


def downgrade():
    op.drop_index('ix_game_session_quiz_id', table_name='game_session')
    op.drop_table('game_session')
    op.drop_index('ix_answer_question_id', table_name='answer')
    op.drop_table('answer')
    op.drop_index('ix_question_quiz_id', table_name='question')
    op.drop_table('question')
    op.drop_index('ix_quiz_owner_id', table_name='quiz')
    op.drop_table('quiz')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
