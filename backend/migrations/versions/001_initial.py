"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates the tables of the practice backend:
- questions: question bank with content hash for de-duplication
- test_sessions: timed sittings with answers, timer state and score
- question_attempts: per-question outcomes written at submit

JSON payloads are stored as text, matching the ORM models.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Questions Table ───────────────────────────────────────
    op.create_table(
        'questions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('question_hash', sa.String(64), nullable=False, unique=True),
        sa.Column('section', sa.Text(), nullable=False, server_default='EC'),
        sa.Column('difficulty', sa.Text(), nullable=False, server_default='medium'),
        sa.Column('subject', sa.Text(), nullable=False),
        sa.Column('topic', sa.Text(), nullable=False, server_default='Mixed'),
        sa.Column('type', sa.Text(), nullable=False, server_default='MCQ'),
        sa.Column('marks', sa.Float(), nullable=False, server_default='1'),
        sa.Column('neg_marks', sa.Float(), nullable=False, server_default='0'),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.Text(), nullable=True),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('solution', sa.Text(), nullable=True),
        sa.Column('source', sa.Text(), nullable=False, server_default='AI'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_questions_subject', 'questions', ['subject'])
    op.create_index('ix_questions_section_difficulty', 'questions', ['section', 'difficulty'])

    # ── Test Sessions Table ───────────────────────────────────
    op.create_table(
        'test_sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('question_ids', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('questions', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('answers', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('remaining_time', sa.Integer(), nullable=True),
        sa.Column('duration_sec', sa.Integer(), nullable=False, server_default='3600'),
        sa.Column('timer_started_at', sa.DateTime(), nullable=True),
        sa.Column('timer_is_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_submitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('max_score', sa.Float(), nullable=True),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mode', sa.Text(), nullable=False, server_default='main'),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('evaluation', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_test_sessions_user_submitted', 'test_sessions', ['user_id', 'is_submitted'])
    op.create_index('ix_test_sessions_created_at', 'test_sessions', ['created_at'])

    # ── Question Attempts Table ───────────────────────────────
    op.create_table(
        'question_attempts',
        sa.Column('session_id', sa.String(36), sa.ForeignKey('test_sessions.id'), primary_key=True),
        sa.Column('position', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('question_id', sa.Text(), nullable=True),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('topic', sa.Text(), nullable=True),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_skipped', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('marks_awarded', sa.Float(), nullable=False, server_default='0'),
        sa.Column('neg_awarded', sa.Float(), nullable=False, server_default='0'),
        sa.Column('answer_given', sa.Text(), nullable=True),
        sa.Column('correct_answer', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_question_attempts_user_time', 'question_attempts', ['user_id', 'created_at'])
    op.create_index('ix_question_attempts_user_subject', 'question_attempts', ['user_id', 'subject'])
    op.create_index('ix_question_attempts_user_topic', 'question_attempts', ['user_id', 'topic'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_question_attempts_user_topic', table_name='question_attempts')
    op.drop_index('ix_question_attempts_user_subject', table_name='question_attempts')
    op.drop_index('ix_question_attempts_user_time', table_name='question_attempts')
    op.drop_table('question_attempts')
    op.drop_index('ix_test_sessions_created_at', table_name='test_sessions')
    op.drop_index('ix_test_sessions_user_submitted', table_name='test_sessions')
    op.drop_table('test_sessions')
    op.drop_index('ix_questions_section_difficulty', table_name='questions')
    op.drop_index('ix_questions_subject', table_name='questions')
    op.drop_table('questions')
