"""001: create patients table and updated_at trigger function

Revision ID: 001
Revises: 
Create Date: 2025-11-03
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # id_scope = '' when patient ids are numbered globally, tenant_id when
    # ID_TENANT_SCOPED is on. The unique constraint is what makes concurrent
    # allocation safe; do not drop it.
    op.execute("""
        CREATE TABLE patients (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id       TEXT            NOT NULL,
            id_scope        TEXT            NOT NULL DEFAULT '',
            patient_id      TEXT            NOT NULL,
            id_degraded     BOOLEAN         NOT NULL DEFAULT FALSE,
            first_name      TEXT            NOT NULL,
            last_name       TEXT            NOT NULL,
            date_of_birth   DATE            NOT NULL,
            phone           TEXT,
            email           TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_patients_scope_patient_id UNIQUE (id_scope, patient_id)
        );
    """)
    op.execute("""
        CREATE INDEX idx_patients_scope_patient_id_c
            ON patients (id_scope, patient_id COLLATE "C");
    """)
    op.execute("CREATE INDEX idx_patients_tenant ON patients (tenant_id, patient_id);")
    op.execute("""
        CREATE INDEX idx_patients_degraded ON patients (created_at)
            WHERE id_degraded;
    """)
    op.execute("""
        CREATE TRIGGER trg_patients_updated_at
            BEFORE UPDATE ON patients
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON COLUMN patients.id_degraded IS 'patient_id issued by the timestamp fallback; needs reconciliation';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS patients CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
