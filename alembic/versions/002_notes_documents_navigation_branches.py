"""002 – Add notes, documents, navigation logs and branches.

Creates the branch table and links users to it, plus personal notes,
employee document records and the page-visit log.

Revision ID: 002_notes_documents_navigation_branches
Revises: 001_initial_schema
Create Date: 2026-10-19 12:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "002_notes_documents_navigation_branches"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        "CREATE TYPE document_category AS ENUM ('contract', 'id_proof', 'tax', 'other')"
    )

    # ══════════════════════════════════════════════════════════════════
    # 1. branches + users.branch_id
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS branches (
            id                       UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name                     VARCHAR(150) NOT NULL UNIQUE,
            code                     VARCHAR(30) NOT NULL UNIQUE,
            address                  TEXT,
            latitude                 DOUBLE PRECISION,
            longitude                DOUBLE PRECISION,
            geo_radius               INTEGER NOT NULL DEFAULT 100,
            geo_restriction_enabled  BOOLEAN NOT NULL DEFAULT FALSE,
            created_at               TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at               TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_branch_radius CHECK (geo_radius > 0)
        )
    """)
    op.execute(
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS branch_id UUID "
        "REFERENCES branches(id) ON DELETE SET NULL"
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_branch_id ON users (branch_id)")

    # ══════════════════════════════════════════════════════════════════
    # 2. notes
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS notes (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            team_id     UUID REFERENCES teams(id) ON DELETE SET NULL,
            title       VARCHAR(200) NOT NULL,
            content     TEXT NOT NULL,
            is_pinned   BOOLEAN NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_notes_user_id ON notes (user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_notes_team_id ON notes (team_id)")

    # ══════════════════════════════════════════════════════════════════
    # 3. documents
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS documents (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title        VARCHAR(200) NOT NULL,
            category     document_category NOT NULL DEFAULT 'other',
            file_url     TEXT NOT NULL,
            uploaded_by  UUID REFERENCES users(id) ON DELETE SET NULL,
            expires_at   TIMESTAMPTZ,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_documents_user_id ON documents (user_id)")

    # ══════════════════════════════════════════════════════════════════
    # 4. navigation_logs
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS navigation_logs (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            path        VARCHAR(500) NOT NULL,
            visited_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_navigation_logs_user_visited "
        "ON navigation_logs (user_id, visited_at)"
    )


def downgrade() -> None:
    for table in ("navigation_logs", "documents", "notes"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
    op.execute("ALTER TABLE users DROP COLUMN IF EXISTS branch_id")
    op.execute("DROP TABLE IF EXISTS branches CASCADE")
    op.execute("DROP TYPE IF EXISTS document_category")
