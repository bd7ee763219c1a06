"""001 – Initial schema: users, auth, attendance, leave, holidays, teams,
notifications, work updates and audit trail.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["employee", "marketing", "manager", "hr", "admin"]),
    ("user_status", ["pending", "active", "blocked"]),
    ("attendance_status", ["present", "late", "half_day", "absent"]),
    ("leave_type", ["sick", "casual", "vacation", "unpaid"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("notification_type", ["info", "success", "warning", "error"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. shift_policies ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE shift_policies (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name           VARCHAR(100) NOT NULL UNIQUE,
            start_time     TIME NOT NULL,
            end_time       TIME NOT NULL,
            grace_minutes  INTEGER NOT NULL DEFAULT 15,
            is_active      BOOLEAN NOT NULL DEFAULT TRUE,
            created_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at     TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 2. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email              VARCHAR(255) NOT NULL UNIQUE,
            username           VARCHAR(100) UNIQUE,
            full_name          VARCHAR(200) NOT NULL,
            password_hash      VARCHAR(255) NOT NULL,
            phone              VARCHAR(20),
            bio                TEXT,
            profile_photo_url  TEXT,
            role               user_role NOT NULL DEFAULT 'employee',
            status             user_status NOT NULL DEFAULT 'pending',
            approved_by        UUID REFERENCES users(id) ON DELETE SET NULL,
            approved_at        TIMESTAMPTZ,
            shift_id           UUID REFERENCES shift_policies(id) ON DELETE SET NULL,
            last_login_at      TIMESTAMPTZ,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_users_status ON users (status)")
    op.execute("CREATE INDEX ix_users_role ON users (role)")

    # ── 3. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id             UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash          VARCHAR(128) NOT NULL,
            refresh_token_hash  VARCHAR(128),
            ip_address          INET,
            user_agent          TEXT,
            expires_at          TIMESTAMPTZ NOT NULL,
            refresh_expires_at  TIMESTAMPTZ,
            is_revoked          BOOLEAN NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_token_hash ON user_sessions (token_hash)")
    op.execute(
        "CREATE INDEX ix_user_sessions_refresh_token_hash ON user_sessions (refresh_token_hash)"
    )
    op.execute("CREATE INDEX ix_user_sessions_user_id ON user_sessions (user_id)")

    # ── 4. password_reset_tokens ──────────────────────────────────────────
    op.execute("""
        CREATE TABLE password_reset_tokens (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash  VARCHAR(128) NOT NULL UNIQUE,
            expires_at  TIMESTAMPTZ NOT NULL,
            used_at     TIMESTAMPTZ,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 5. attendance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_records (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id       UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            date          DATE NOT NULL,
            login_time    TIMESTAMPTZ NOT NULL,
            logout_time   TIMESTAMPTZ,
            status        attendance_status NOT NULL DEFAULT 'present',
            work_minutes  INTEGER,
            notes         TEXT,
            latitude      DOUBLE PRECISION,
            longitude     DOUBLE PRECISION,
            ip_address    INET,
            updated_by    UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_attendance_user_date UNIQUE (user_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_records_date ON attendance_records (date)")

    # ── 6. holidays ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE holidays (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name          VARCHAR(150) NOT NULL,
            holiday_date  DATE NOT NULL UNIQUE,
            description   TEXT,
            created_by    UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 7. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            leave_type   leave_type NOT NULL,
            start_date   DATE NOT NULL,
            end_date     DATE NOT NULL,
            total_days   INTEGER NOT NULL,
            reason       TEXT NOT NULL,
            status       leave_status NOT NULL DEFAULT 'pending',
            reviewed_by  UUID REFERENCES users(id) ON DELETE SET NULL,
            reviewed_at  TIMESTAMPTZ,
            remarks      TEXT,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_leave_dates CHECK (end_date >= start_date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_user_status ON leave_requests (user_id, status)"
    )
    op.execute(
        "CREATE INDEX ix_leave_requests_dates ON leave_requests (start_date, end_date)"
    )

    # ── 8. teams / team_members ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE teams (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name         VARCHAR(150) NOT NULL UNIQUE,
            description  TEXT,
            leader_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            created_by   UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE team_members (
            id        UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            team_id   UUID NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
            user_id   UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            added_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_team_member UNIQUE (team_id, user_id)
        )
    """)
    op.execute("CREATE INDEX ix_team_members_user_id ON team_members (user_id)")

    # ── 9. notifications ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            recipient_id  UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            sender_id     UUID REFERENCES users(id) ON DELETE SET NULL,
            type          notification_type NOT NULL DEFAULT 'info',
            title         VARCHAR(200) NOT NULL,
            message       TEXT NOT NULL,
            action_url    VARCHAR(500),
            entity_type   VARCHAR(50),
            entity_id     UUID,
            is_read       BOOLEAN NOT NULL DEFAULT FALSE,
            read_at       TIMESTAMPTZ,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notifications_recipient_read ON notifications (recipient_id, is_read)"
    )

    # ── 10. work_updates ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE work_updates (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            date         DATE NOT NULL,
            title        VARCHAR(200),
            description  TEXT NOT NULL,
            hours_spent  DOUBLE PRECISION,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_work_update_user_date UNIQUE (user_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_work_updates_date ON work_updates (date)")

    # ── 11. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id     UUID REFERENCES users(id) ON DELETE SET NULL,
            action       VARCHAR(50) NOT NULL,
            entity_type  VARCHAR(50) NOT NULL,
            entity_id    UUID NOT NULL,
            old_values   JSONB,
            new_values   JSONB,
            ip_address   INET,
            user_agent   TEXT,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_audit_trail_entity ON audit_trail (entity_type, entity_id)"
    )
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail (actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail (created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action ON audit_trail (action)")

    # ── Seed: default shift ───────────────────────────────────────────────
    op.execute("""
        INSERT INTO shift_policies (name, start_time, end_time, grace_minutes)
        VALUES ('General', '09:30', '18:30', 15)
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "work_updates",
        "notifications",
        "team_members",
        "teams",
        "leave_requests",
        "holidays",
        "attendance_records",
        "password_reset_tokens",
        "user_sessions",
        "users",
        "shift_policies",
    ]
    for table in tables:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
