"""Schema diff — ALTER TABLE scripts between two versions of a table."""

from schemaforge.diff.diff_engine import (
    ChangeKind,
    ColumnChange,
    DiffEngine,
    SchemaDiff,
    compute_diff,
    diff_ddl,
    reconstruct_definition,
    render_statements,
)
