"""001 – Initial schema: all tables, indexes, enums, seed roles.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("gender_type", ["male", "female", "other"]),
    ("user_status", ["active", "inactive", "suspended", "pending"]),
    ("payment_frequency", ["monthly", "bi_weekly", "weekly"]),
    ("menu_status", ["active", "inactive"]),
    ("assignment_status", ["active", "transferred", "ended"]),
    (
        "assignment_action",
        ["created", "updated", "transferred", "ended", "reactivated"],
    ),
    (
        "attendance_status",
        ["present", "absent", "late", "half_day", "work_from_home"],
    ),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("payment_status", ["pending", "processing", "paid", "failed"]),
    ("payment_method", ["bank_transfer", "check", "cash", "online"]),
    (
        "calculation_mode",
        ["fixed", "percent_of_basic", "percent_of_gross", "tax_slab"],
    ),
    ("roster_status", ["draft", "published", "approved"]),
    ("notice_status", ["draft", "published", "archived"]),
    ("notice_priority", ["low", "normal", "high", "urgent"]),
]

TABLES = [
    "audit_trail",
    "eod_reports",
    "rosters",
    "notices",
    "states",
    "countries",
    "companies",
    "payrolls",
    "salary_deduction_rules",
    "leaves",
    "leave_types",
    "attendance",
    "assignment_history",
    "employee_assignments",
    "menu_parents",
    "role_menus",
    "menus",
    "user_sessions",
    "employees",
    "users",
    "designations",
    "departments",
    "roles",
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
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. roles ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE roles (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name          VARCHAR(100) NOT NULL UNIQUE,
            display_name  VARCHAR(150) NOT NULL,
            description   TEXT,
            parent_id     UUID REFERENCES roles(id) ON DELETE RESTRICT,
            level         INTEGER NOT NULL DEFAULT 0,
            path          VARCHAR(1000) NOT NULL DEFAULT '',
            permissions   JSONB DEFAULT '[]'::jsonb,
            is_active     BOOLEAN DEFAULT TRUE,
            created_at    TIMESTAMPTZ DEFAULT NOW(),
            updated_at    TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_roles_parent_id ON roles(parent_id)")
    op.execute("CREATE INDEX ix_roles_path      ON roles(path)")

    # ── 2. departments ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE departments (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name         VARCHAR(150) NOT NULL UNIQUE,
            description  TEXT,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 3. designations ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE designations (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            title          VARCHAR(150) NOT NULL UNIQUE,
            description    TEXT,
            department_id  UUID REFERENCES departments(id) ON DELETE SET NULL,
            is_active      BOOLEAN DEFAULT TRUE,
            created_at     TIMESTAMPTZ DEFAULT NOW(),
            updated_at     TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 4. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email            VARCHAR(255) NOT NULL UNIQUE,
            password_hash    VARCHAR(255) NOT NULL,
            first_name       VARCHAR(100) NOT NULL,
            last_name        VARCHAR(100) NOT NULL,
            gender           gender_type,
            phone            VARCHAR(30),
            work_timezone    VARCHAR(50) DEFAULT 'UTC',
            profile_picture  VARCHAR(500),
            position         VARCHAR(150),
            role_id          UUID REFERENCES roles(id) ON DELETE SET NULL,
            department_id    UUID REFERENCES departments(id) ON DELETE SET NULL,
            permissions      JSONB DEFAULT '[]'::jsonb,
            status           user_status DEFAULT 'active',
            last_login       TIMESTAMPTZ,
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 5. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id            UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            employee_code      VARCHAR(50) NOT NULL UNIQUE,
            designation_id     UUID REFERENCES designations(id) ON DELETE SET NULL,
            joining_date       DATE NOT NULL,
            date_of_birth      DATE,
            emergency_contact  JSONB,
            bank_details       JSONB,
            tax_information    JSONB,
            documents          JSONB DEFAULT '[]'::jsonb,
            salary_amount      NUMERIC(12,2),
            salary_currency    VARCHAR(3) DEFAULT 'USD',
            payment_frequency  payment_frequency DEFAULT 'monthly',
            is_active          BOOLEAN DEFAULT TRUE,
            created_at         TIMESTAMPTZ DEFAULT NOW(),
            updated_at         TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_employees_joining_date ON employees(joining_date)")

    # ── 6. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id             UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash          VARCHAR(128) NOT NULL,
            refresh_token_hash  VARCHAR(128),
            ip_address          INET,
            user_agent          TEXT,
            expires_at          TIMESTAMPTZ NOT NULL,
            is_revoked          BOOLEAN DEFAULT FALSE,
            created_at          TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_token_hash         ON user_sessions(token_hash)")
    op.execute("CREATE INDEX ix_user_sessions_refresh_token_hash ON user_sessions(refresh_token_hash)")

    # ── 7. menus + join tables ────────────────────────────────────────────
    op.execute("""
        CREATE TABLE menus (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(100) NOT NULL,
            slug        VARCHAR(120) NOT NULL UNIQUE,
            icon        VARCHAR(60),
            status      menu_status DEFAULT 'active',
            level       INTEGER NOT NULL DEFAULT 0,
            sort_order  INTEGER DEFAULT 0,
            created_by  UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE menu_parents (
            menu_id    UUID NOT NULL REFERENCES menus(id) ON DELETE CASCADE,
            parent_id  UUID NOT NULL REFERENCES menus(id) ON DELETE CASCADE,
            PRIMARY KEY (menu_id, parent_id)
        )
    """)
    op.execute("""
        CREATE TABLE role_menus (
            role_id  UUID NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
            menu_id  UUID NOT NULL REFERENCES menus(id) ON DELETE CASCADE,
            PRIMARY KEY (role_id, menu_id)
        )
    """)

    # ── 8. employee_assignments ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_assignments (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            supervisor_id   UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            subordinate_id  UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status          assignment_status DEFAULT 'active',
            assigned_by     UUID REFERENCES users(id) ON DELETE SET NULL,
            notes           TEXT,
            assigned_at     TIMESTAMPTZ DEFAULT NOW(),
            ended_at        TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX ix_assignments_supervisor_status
            ON employee_assignments(supervisor_id, status)
    """)
    op.execute("""
        CREATE INDEX ix_assignments_subordinate_status
            ON employee_assignments(subordinate_id, status)
    """)

    # ── 9. assignment_history ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE assignment_history (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            assignment_id   UUID REFERENCES employee_assignments(id) ON DELETE SET NULL,
            supervisor_id   UUID NOT NULL,
            subordinate_id  UUID NOT NULL,
            action          assignment_action NOT NULL,
            performed_by    UUID REFERENCES users(id) ON DELETE SET NULL,
            previous_data   JSONB,
            new_data        JSONB,
            reason          TEXT,
            ip_address      INET,
            user_agent      TEXT,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_assignment_history_supervisor  ON assignment_history(supervisor_id)")
    op.execute("CREATE INDEX ix_assignment_history_subordinate ON assignment_history(subordinate_id)")

    # ── 10. attendance ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id          UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            date                 DATE NOT NULL,
            clock_in             TIMESTAMPTZ,
            clock_out            TIMESTAMPTZ,
            total_hours          NUMERIC(5,2) DEFAULT 0,
            status               attendance_status DEFAULT 'present',
            location             VARCHAR(255),
            breaks               JSONB DEFAULT '[]'::jsonb,
            total_break_seconds  INTEGER DEFAULT 0,
            notes                TEXT,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_attendance_employee_date UNIQUE (employee_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_date ON attendance(date)")

    # ── 11. leave_types / leaves ──────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_types (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name         VARCHAR(100) NOT NULL UNIQUE,
            description  TEXT,
            leave_count  INTEGER NOT NULL DEFAULT 0,
            is_paid      BOOLEAN DEFAULT TRUE,
            is_active    BOOLEAN DEFAULT TRUE,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE leaves (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            leave_type_id     UUID NOT NULL REFERENCES leave_types(id),
            start_date        DATE NOT NULL,
            end_date          DATE NOT NULL,
            total_days        NUMERIC(5,1) NOT NULL,
            is_half_day       BOOLEAN DEFAULT FALSE,
            reason            TEXT NOT NULL,
            status            leave_status DEFAULT 'pending',
            breakdown         JSONB,
            approved_by       UUID REFERENCES users(id) ON DELETE SET NULL,
            approval_date     TIMESTAMPTZ,
            rejection_reason  TEXT,
            attachments       JSONB DEFAULT '[]'::jsonb,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leaves_date_order CHECK (end_date >= start_date)
        )
    """)
    op.execute("""
        CREATE INDEX ix_leaves_employee_dates
            ON leaves(employee_id, start_date, end_date)
    """)

    # ── 12. salary_deduction_rules ────────────────────────────────────────
    op.execute("""
        CREATE TABLE salary_deduction_rules (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name              VARCHAR(150) NOT NULL,
            code              VARCHAR(60) NOT NULL UNIQUE,
            is_applicable     BOOLEAN DEFAULT TRUE,
            calculation_mode  calculation_mode DEFAULT 'fixed',
            amount            NUMERIC(12,2) DEFAULT 0,
            tax_slab          JSONB DEFAULT '[]'::jsonb,
            active            BOOLEAN DEFAULT TRUE,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 13. payrolls ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE payrolls (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            month             SMALLINT NOT NULL,
            year              SMALLINT NOT NULL,
            gross_salary      NUMERIC(12,2) DEFAULT 0,
            basic_salary      NUMERIC(12,2) DEFAULT 0,
            hra               NUMERIC(12,2) DEFAULT 0,
            allowances        JSONB DEFAULT '[]'::jsonb,
            bonus             NUMERIC(12,2) DEFAULT 0,
            overtime_pay      NUMERIC(12,2) DEFAULT 0,
            deductions        JSONB DEFAULT '[]'::jsonb,
            working_days      NUMERIC(5,1) DEFAULT 0,
            present_days      NUMERIC(5,1) DEFAULT 0,
            paid_leave_days   NUMERIC(5,1) DEFAULT 0,
            lop_days          NUMERIC(5,1) DEFAULT 0,
            lop_amount        NUMERIC(12,2) DEFAULT 0,
            total_earnings    NUMERIC(12,2) DEFAULT 0,
            total_deductions  NUMERIC(12,2) DEFAULT 0,
            net_salary        NUMERIC(12,2) DEFAULT 0,
            payment_status    payment_status DEFAULT 'pending',
            payment_date      DATE,
            payment_method    payment_method DEFAULT 'bank_transfer',
            transaction_id    VARCHAR(120),
            payslip_url       VARCHAR(500),
            notes             TEXT,
            generated_by      UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_payroll_employee_period UNIQUE (employee_id, month, year),
            CONSTRAINT ck_payroll_month CHECK (month BETWEEN 1 AND 12)
        )
    """)
    op.execute("CREATE INDEX ix_payrolls_period ON payrolls(year, month)")

    # ── 14. companies ─────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE companies (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name                VARCHAR(200) NOT NULL,
            domain              VARCHAR(200) NOT NULL UNIQUE,
            logo                VARCHAR(500),
            description         TEXT,
            industry            VARCHAR(100),
            website             VARCHAR(255),
            address             JSONB DEFAULT '{}'::jsonb,
            contact_info        JSONB DEFAULT '{}'::jsonb,
            ceo_name            VARCHAR(150),
            ceo_talk            TEXT,
            email_sender        JSONB DEFAULT '{}'::jsonb,
            email_recipients    JSONB DEFAULT '{"to": [], "cc": [], "bcc": []}'::jsonb,
            grace_period        INTEGER DEFAULT 15,
            leave_allocations   JSONB DEFAULT '{"casual": 0, "medical": 0, "paid": 0}'::jsonb,
            payroll_components  JSONB DEFAULT '[]'::jsonb,
            created_at          TIMESTAMPTZ DEFAULT NOW(),
            updated_at          TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 15. countries / states ────────────────────────────────────────────
    op.execute("""
        CREATE TABLE countries (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            code2       VARCHAR(2) NOT NULL UNIQUE,
            code3       VARCHAR(3) NOT NULL UNIQUE,
            name        VARCHAR(150) NOT NULL,
            capital     VARCHAR(150),
            region      VARCHAR(100),
            subregion   VARCHAR(100),
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE states (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            country_id   UUID NOT NULL REFERENCES countries(id) ON DELETE CASCADE,
            code         VARCHAR(10) NOT NULL,
            name         VARCHAR(150) NOT NULL,
            subdivision  VARCHAR(100),
            CONSTRAINT uq_states_country_code UNIQUE (country_id, code)
        )
    """)

    # ── 16. notices ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notices (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            title        VARCHAR(200) NOT NULL,
            content      TEXT NOT NULL,
            author_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            status       notice_status DEFAULT 'draft',
            category     VARCHAR(60) DEFAULT 'general',
            priority     notice_priority DEFAULT 'normal',
            is_pinned    BOOLEAN DEFAULT FALSE,
            expiry_date  TIMESTAMPTZ,
            is_active    BOOLEAN DEFAULT TRUE,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 17. rosters ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE rosters (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            week_start_date  DATE NOT NULL,
            week_end_date    DATE NOT NULL,
            week_number      SMALLINT NOT NULL,
            year             SMALLINT NOT NULL,
            schedule         JSONB DEFAULT '{}'::jsonb,
            total_hours      NUMERIC(6,2) DEFAULT 0,
            notes            TEXT,
            status           roster_status DEFAULT 'draft',
            created_by       UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_roster_employee_week UNIQUE (employee_id, year, week_number)
        )
    """)
    op.execute("CREATE INDEX ix_rosters_week ON rosters(year, week_number)")

    # ── 18. eod_reports ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE eod_reports (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id    UUID REFERENCES employees(id) ON DELETE SET NULL,
            employee_name  VARCHAR(200) NOT NULL,
            position       VARCHAR(150),
            department     VARCHAR(150),
            date           DATE NOT NULL,
            activities     JSONB DEFAULT '[]'::jsonb,
            breaks         JSONB DEFAULT '[]'::jsonb,
            plans          TEXT,
            issues         TEXT,
            comments       TEXT,
            created_at     TIMESTAMPTZ DEFAULT NOW(),
            updated_at     TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_eod_reports_employee_name ON eod_reports(employee_name)")
    op.execute("CREATE INDEX ix_eod_reports_date          ON eod_reports(date)")

    # ── 19. audit_trail ───────────────────────────────────────────────────
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
    op.execute("CREATE INDEX ix_audit_trail_actor_id   ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity     ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")

    # ── Seed: root admin role ─────────────────────────────────────────────
    roles = sa.table(
        "roles",
        sa.column("name", sa.String),
        sa.column("display_name", sa.String),
        sa.column("level", sa.Integer),
        sa.column("path", sa.String),
    )
    op.bulk_insert(
        roles,
        [{"name": "admin", "display_name": "Administrator", "level": 0, "path": ""}],
    )
    op.execute("""
        UPDATE roles
           SET path = '/' || id::text,
               permissions = '["*"]'::jsonb
         WHERE name = 'admin'
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in TABLES:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
