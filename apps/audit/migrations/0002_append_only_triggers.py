"""
Storage-level append-only guarantee for audit_log_entries.

Any UPDATE or DELETE, whether issued through the ORM or raw SQL, is
aborted by the database itself.
"""
from django.db import migrations

SQLITE_INSTALL = [
    """
    CREATE TRIGGER audit_log_entries_no_update
    BEFORE UPDATE ON audit_log_entries
    BEGIN
        SELECT RAISE(ABORT, 'audit_log_entries is append-only');
    END;
    """,
    """
    CREATE TRIGGER audit_log_entries_no_delete
    BEFORE DELETE ON audit_log_entries
    BEGIN
        SELECT RAISE(ABORT, 'audit_log_entries is append-only');
    END;
    """,
]

SQLITE_REMOVE = [
    "DROP TRIGGER IF EXISTS audit_log_entries_no_update;",
    "DROP TRIGGER IF EXISTS audit_log_entries_no_delete;",
]

POSTGRES_INSTALL = [
    """
    CREATE OR REPLACE FUNCTION audit_log_entries_reject_change()
    RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION 'audit_log_entries is append-only'
            USING ERRCODE = 'insufficient_privilege';
    END;
    $$ LANGUAGE plpgsql;
    """,
    """
    CREATE TRIGGER audit_log_entries_no_update
    BEFORE UPDATE ON audit_log_entries
    FOR EACH ROW EXECUTE FUNCTION audit_log_entries_reject_change();
    """,
    """
    CREATE TRIGGER audit_log_entries_no_delete
    BEFORE DELETE ON audit_log_entries
    FOR EACH ROW EXECUTE FUNCTION audit_log_entries_reject_change();
    """,
    """
    CREATE TRIGGER audit_log_entries_no_truncate
    BEFORE TRUNCATE ON audit_log_entries
    FOR EACH STATEMENT EXECUTE FUNCTION audit_log_entries_reject_change();
    """,
]

POSTGRES_REMOVE = [
    "DROP TRIGGER IF EXISTS audit_log_entries_no_truncate ON audit_log_entries;",
    "DROP TRIGGER IF EXISTS audit_log_entries_no_delete ON audit_log_entries;",
    "DROP TRIGGER IF EXISTS audit_log_entries_no_update ON audit_log_entries;",
    "DROP FUNCTION IF EXISTS audit_log_entries_reject_change();",
]

STATEMENTS = {
    'sqlite': (SQLITE_INSTALL, SQLITE_REMOVE),
    'postgresql': (POSTGRES_INSTALL, POSTGRES_REMOVE),
}


def _run(schema_editor, index):
    vendor = schema_editor.connection.vendor
    if vendor not in STATEMENTS:
        raise RuntimeError(f"No append-only triggers defined for database vendor '{vendor}'")
    for statement in STATEMENTS[vendor][index]:
        schema_editor.execute(statement.strip())


def install_triggers(apps, schema_editor):
    _run(schema_editor, 0)


def remove_triggers(apps, schema_editor):
    _run(schema_editor, 1)


class Migration(migrations.Migration):

    dependencies = [
        ('audit', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(install_triggers, remove_triggers),
    ]
