"""002 – Holiday calendar and performance reviews.

Adds the holidays table (payroll drops observed holidays from a month's
working days) and performance_reviews.

Revision ID: 002_holidays_performance
Revises: 001_initial_schema
Create Date: 2026-10-18 16:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "002_holidays_performance"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ══════════════════════════════════════════════════════════════════
    # holidays
    # ══════════════════════════════════════════════════════════════════
    op.execute("CREATE TYPE holiday_type AS ENUM ('national', 'religious', 'company')")
    op.execute("""
        CREATE TABLE holidays (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name          VARCHAR(150) NOT NULL,
            date          DATE NOT NULL,
            description   TEXT,
            type          holiday_type DEFAULT 'company',
            is_recurring  BOOLEAN DEFAULT FALSE,
            year          SMALLINT NOT NULL,
            applies_to    JSONB DEFAULT '["all"]'::jsonb,
            created_by    UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at    TIMESTAMPTZ DEFAULT NOW(),
            updated_at    TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_holiday_date_name UNIQUE (date, name)
        )
    """)
    op.execute("CREATE INDEX ix_holidays_date ON holidays(date)")

    # ══════════════════════════════════════════════════════════════════
    # performance_reviews
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE performance_reviews (
            id                     UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id            UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            reviewer_id            UUID REFERENCES employees(id) ON DELETE SET NULL,
            period_start           DATE NOT NULL,
            period_end             DATE NOT NULL,
            goals                  JSONB DEFAULT '[]'::jsonb,
            ratings                JSONB DEFAULT '{}'::jsonb,
            reviewer_feedback      TEXT,
            employee_feedback      TEXT,
            promotion_recommended  BOOLEAN DEFAULT FALSE,
            created_by             UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at             TIMESTAMPTZ DEFAULT NOW(),
            updated_at             TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_performance_period_order CHECK (period_end >= period_start)
        )
    """)
    op.execute(
        "CREATE INDEX ix_performance_reviews_employee"
        " ON performance_reviews(employee_id, period_end)"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS performance_reviews CASCADE")
    op.execute("DROP TABLE IF EXISTS holidays CASCADE")
    op.execute("DROP TYPE IF EXISTS holiday_type")
