"""create facility audit tables

Revision ID: a1c0f3e2d101
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c0f3e2d101'
down_revision = None
branch_labels = None
depends_on = None

ROLE = sa.Enum('auditor', 'admin', 'super_admin', name='user_role')
QUESTIONNAIRE_STATUS = sa.Enum('draft', 'published', 'archived', name='questionnaire_status')
QUESTION_TYPE = sa.Enum('string', 'number', 'list', 'radio', 'checkbox', name='question_type')
CHANGE_ENTITY_TYPE = sa.Enum('facility', 'audit_answer', name='change_entity_type')
TOOLTIP_FIELD_SOURCE = sa.Enum('facility', 'question', name='tooltip_field_source')
FILTER_FIELD_SOURCE = sa.Enum('facility', 'question', name='filter_field_source')
FILTER_TYPE = sa.Enum('select', 'multi-select', 'range', 'text', name='filter_type')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # 認証ID / プロフィール
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), nullable=False, comment='users.id と同一'),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('role', ROLE, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    # 施設
    op.create_table(
        'facilities',
        sa.Column('id', sa.String(36), nullable=False, comment='UUID (CSVのfacility_id)'),
        sa.Column('venue_name', sa.String(255), nullable=False),
        sa.Column('venue_address', sa.String(500), nullable=True),
        sa.Column('town_suburb', sa.String(255), nullable=True),
        sa.Column('postcode', sa.String(20), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, comment='論理削除'),
        sa.Column('revision', sa.Integer(), nullable=False, comment='楽観ロック用リビジョン'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_facilities_venue_name', 'facilities', ['venue_name'])

    # 質問票
    op.create_table(
        'questionnaire_versions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False, comment='1からの連番'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', QUESTIONNAIRE_STATUS, nullable=False),
        sa.Column('published_slot', sa.Boolean(), nullable=True, comment='公開中のみTrue'),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('published_by', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['published_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('version_number'),
        sa.UniqueConstraint('published_slot'),
    )
    op.create_index('ix_questionnaire_versions_status', 'questionnaire_versions', ['status'])

    op.create_table(
        'sections',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('questionnaire_version_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, comment='表示順'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['questionnaire_version_id'], ['questionnaire_versions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sections_questionnaire_version_id', 'sections', ['questionnaire_version_id'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('section_id', sa.Integer(), nullable=False),
        sa.Column('question_key', sa.String(50), nullable=False, comment='ラベルから生成。作成後は変更不可'),
        sa.Column('label', sa.String(255), nullable=False, comment='質問ラベル'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('question_type', QUESTION_TYPE, nullable=False),
        sa.Column('options', sa.JSON(), nullable=True, comment='選択肢 (list/radio/checkbox用)'),
        sa.Column('is_required', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, comment='表示順'),
        sa.Column('is_retired', sa.Boolean(), nullable=False, comment='廃止済み (戻せない)'),
        sa.Column('retired_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_questions_section_id', 'questions', ['section_id'])
    op.create_index('ix_questions_question_key', 'questions', ['question_key'])

    # 監査・回答
    op.create_table(
        'audits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('facility_id', sa.String(36), nullable=False),
        sa.Column('questionnaire_version_id', sa.Integer(), nullable=False),
        sa.Column('audit_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['questionnaire_version_id'], ['questionnaire_versions.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audits_facility_id', 'audits', ['facility_id'])
    op.create_index('ix_audits_questionnaire_version_id', 'audits', ['questionnaire_version_id'])
    op.create_index('ix_audits_created_at', 'audits', ['created_at'])

    op.create_table(
        'audit_answers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('audit_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('value', sa.Text(), nullable=True, comment='回答値 (checkboxはJSON配列文字列)'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['audit_id'], ['audits.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('audit_id', 'question_id', name='uq_audit_question'),
    )
    op.create_index('ix_audit_answers_audit_id', 'audit_answers', ['audit_id'])
    op.create_index('ix_audit_answers_question_id', 'audit_answers', ['question_id'])

    # 変更履歴 (追記のみ)
    op.create_table(
        'change_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('facility_id', sa.String(36), nullable=True),
        sa.Column('audit_id', sa.Integer(), nullable=True),
        sa.Column('entity_type', CHANGE_ENTITY_TYPE, nullable=False),
        sa.Column('field_name', sa.String(100), nullable=False, comment='施設項目名 または question_key'),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.Integer(), nullable=True),
        sa.Column('changed_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['audit_id'], ['audits.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_change_logs_facility_id', 'change_logs', ['facility_id'])
    op.create_index('ix_change_logs_changed_at', 'change_logs', ['changed_at'])

    # 表示設定
    op.create_table(
        'tooltip_config',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('field_source', TOOLTIP_FIELD_SOURCE, nullable=False),
        sa.Column('field_key', sa.String(100), nullable=False),
        sa.Column('display_label', sa.String(255), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'filter_config',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('field_source', FILTER_FIELD_SOURCE, nullable=False),
        sa.Column('field_key', sa.String(100), nullable=False),
        sa.Column('display_label', sa.String(255), nullable=False),
        sa.Column('filter_type', FILTER_TYPE, nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('filter_config')
    op.drop_table('tooltip_config')
    op.drop_index('ix_change_logs_changed_at', table_name='change_logs')
    op.drop_index('ix_change_logs_facility_id', table_name='change_logs')
    op.drop_table('change_logs')
    op.drop_table('audit_answers')
    op.drop_table('audits')
    op.drop_table('questions')
    op.drop_table('sections')
    op.drop_table('questionnaire_versions')
    op.drop_table('facilities')
    op.drop_table('profiles')
    op.drop_table('users')
