"""Tests for the MySQL / PostgreSQL / SQLite DDL parsers."""

import pytest

from schemaforge.errors import ParseError
from schemaforge.source_loader.base import SemanticType, SourceFormat
from schemaforge.source_loader.ddl_parser import (
    DDLParser,
    MySQLParser,
    PostgreSQLParser,
    SQLiteParser,
    mask_quoted,
    read_default_value,
)
from schemaforge.source_loader.ddl_scanner import (
    ColumnTokenizer,
    ScanError,
    find_matching_paren,
    split_column_list,
)


MYSQL_DDL = """\
-- user accounts
CREATE TABLE `users` (
  `id` BIGINT UNSIGNED NOT NULL AUTO_INCREMENT,
  `username` VARCHAR(50) NOT NULL COMMENT 'login name',
  `email` VARCHAR(255) DEFAULT NULL,
  `balance` DECIMAL(10,2) NOT NULL DEFAULT '0.00',
  `status` ENUM('active','in,active') DEFAULT 'active',
  `note` TEXT COMMENT 'it''s not null',
  `created_at` DATETIME DEFAULT CURRENT_TIMESTAMP,
  PRIMARY KEY (`id`),
  UNIQUE KEY `uk_username` (`username`),
  KEY `idx_email` (`email`)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
"""

POSTGRES_DDL = """\
CREATE TABLE IF NOT EXISTS public.accounts (
    id SERIAL PRIMARY KEY,
    external_id UUID NOT NULL DEFAULT gen_random_uuid(),
    email CHARACTER VARYING(255) UNIQUE,
    tags TEXT[],
    scores INTEGER ARRAY,
    matrix INTEGER[][],
    profile JSONB,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT now(),
    seq BIGINT GENERATED ALWAYS AS IDENTITY,
    amount DOUBLE PRECISION,
    state VARCHAR(10) DEFAULT 'new'::character varying
);

COMMENT ON COLUMN accounts.email IS 'primary contact';
COMMENT ON COLUMN other_table.email IS 'ignored';
"""

SQLITE_DDL = """\
CREATE TABLE notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    body,
    rating REAL DEFAULT 0.0,
    payload BLOB,
    flags CUSTOMINT,
    label NVARCHAR(20)
) WITHOUT ROWID;
"""


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------

class TestColumnListScanner:

    def test_split_keeps_type_args_together(self):
        parts = split_column_list("a DECIMAL(10,2), b INT")
        assert parts == ["a DECIMAL(10,2)", "b INT"]

    def test_split_keeps_enum_literals_together(self):
        parts = split_column_list("s ENUM('a,b', 'c'), t TEXT")
        assert parts == ["s ENUM('a,b', 'c')", "t TEXT"]

    def test_split_ignores_parens_in_quotes(self):
        parts = split_column_list("c TEXT DEFAULT ')', d INT")
        assert parts == ["c TEXT DEFAULT ')'", "d INT"]

    def test_split_unterminated_paren(self):
        with pytest.raises(ScanError):
            split_column_list("a DECIMAL(10,2")

    def test_split_unterminated_quote(self):
        with pytest.raises(ScanError):
            split_column_list("a TEXT DEFAULT 'x")

    def test_find_matching_paren(self):
        text = "(a (b) 'c)' d)"
        assert find_matching_paren(text, 0) == len(text) - 1

    def test_find_matching_paren_unterminated(self):
        assert find_matching_paren("(a (b)", 0) == -1


class TestColumnTokenizer:

    def test_name_type_args_constraints(self):
        tokens = ColumnTokenizer().tokenize("`price` DECIMAL(10, 2) NOT NULL")
        assert tokens.name == "price"
        assert tokens.type_name == "DECIMAL"
        assert tokens.type_args == "10, 2"
        assert tokens.constraints == "NOT NULL"
        assert tokens.definition == "DECIMAL(10, 2) NOT NULL"

    def test_multi_word_type(self):
        tokens = ColumnTokenizer().tokenize("ts TIMESTAMP WITHOUT TIME ZONE NOT NULL")
        assert tokens.type_name == "TIMESTAMP WITHOUT TIME ZONE"
        assert tokens.constraints == "NOT NULL"

    def test_multi_word_type_after_args(self):
        tokens = ColumnTokenizer().tokenize("ts TIMESTAMP(3) WITH TIME ZONE")
        assert tokens.type_name == "TIMESTAMP WITH TIME ZONE"
        assert tokens.type_args == "3"

    def test_array_suffix(self):
        tokens = ColumnTokenizer().tokenize("tags TEXT[] NOT NULL")
        assert tokens.raw_type == "TEXT[]"
        assert tokens.constraints == "NOT NULL"

    def test_typeless_column(self):
        tokens = ColumnTokenizer().tokenize("body NOT NULL")
        assert tokens.type_name == ""
        assert tokens.constraints == "NOT NULL"

    def test_no_name(self):
        assert ColumnTokenizer().tokenize("(x) INT") is None


class TestHelpers:

    def test_mask_quoted_keeps_length(self):
        text = "COMMENT 'not null' NOT NULL"
        masked = mask_quoted(text)
        assert len(masked) == len(text)
        assert "not null" not in masked
        assert masked.endswith("NOT NULL")

    def test_read_default_value_literal_with_cast(self):
        text = " 'x'::text NOT NULL"
        assert read_default_value(text, 0) == "'x'::text"

    def test_read_default_value_function(self):
        assert read_default_value(" now() NOT NULL", 0) == "now()"

    def test_read_default_value_expression(self):
        assert read_default_value(" (1 + 2) NOT NULL", 0) == "(1 + 2)"


# ---------------------------------------------------------------------------
# MySQL
# ---------------------------------------------------------------------------

class TestMySQLParser:

    def setup_method(self):
        self.schema = MySQLParser().parse(MYSQL_DDL)

    def test_table_name_and_format(self):
        assert self.schema.source_name == "users"
        assert self.schema.source_format == SourceFormat.MYSQL

    def test_column_count_and_order(self):
        assert self.schema.field_names == [
            "id", "username", "email", "balance", "status", "note", "created_at",
        ]
        assert [f.ordinal_position for f in self.schema.fields] == list(range(7))

    def test_primary_key_from_table_constraint(self):
        id_field = self.schema.get_field("id")
        assert id_field.is_primary_key
        assert not id_field.nullable
        assert id_field.is_auto_increment
        assert id_field.is_unsigned
        assert id_field.semantic_type == SemanticType.INTEGER
        assert id_field.raw_type == "BIGINT"

    def test_unique_key_from_table_constraint(self):
        assert self.schema.get_field("username").is_unique
        assert not self.schema.get_field("email").is_unique

    def test_varchar_size_and_comment(self):
        username = self.schema.get_field("username")
        assert username.raw_type == "VARCHAR(50)"
        assert username.size == 50
        assert username.comment == "login name"
        assert not username.nullable

    def test_default_values(self):
        assert self.schema.get_field("email").default_value == "NULL"
        assert self.schema.get_field("email").nullable
        assert self.schema.get_field("balance").default_value == "'0.00'"
        assert self.schema.get_field("created_at").default_value == "CURRENT_TIMESTAMP"

    def test_decimal_is_float(self):
        balance = self.schema.get_field("balance")
        assert balance.semantic_type == SemanticType.FLOAT
        assert balance.type_args == "10,2"

    def test_enum_with_comma_in_literal(self):
        status = self.schema.get_field("status")
        assert status.type_args == "'active','in,active'"
        assert status.semantic_type == SemanticType.STRING

    def test_comment_text_does_not_set_flags(self):
        note = self.schema.get_field("note")
        assert note.comment == "it's not null"
        assert note.nullable

    def test_datetime(self):
        assert self.schema.get_field("created_at").semantic_type == SemanticType.DATETIME

    def test_raw_definition_is_kept(self):
        username = self.schema.get_field("username")
        assert username.raw_definition == "VARCHAR(50) NOT NULL COMMENT 'login name'"

    def test_lookup_is_case_insensitive(self):
        assert self.schema.get_field("USERNAME") is self.schema.get_field("username")

    def test_unknown_type_preserved(self):
        schema = MySQLParser().parse("CREATE TABLE t (g GEOMETRY NOT NULL)")
        geometry = schema.get_field("g")
        assert geometry.semantic_type == SemanticType.UNKNOWN
        assert geometry.raw_type == "GEOMETRY"

    def test_column_named_key(self):
        schema = MySQLParser().parse("CREATE TABLE t (id INT, key VARCHAR(10))")
        assert schema.field_names == ["id", "key"]

    def test_index_named_after_type(self):
        schema = MySQLParser().parse(
            "CREATE TABLE t (id INT, created DATETIME, KEY date (created), INDEX int (id))"
        )
        assert schema.field_names == ["id", "created"]

    def test_column_named_key_with_enum_type(self):
        schema = MySQLParser().parse("CREATE TABLE t (id INT, key ENUM('a','b'))")
        assert schema.field_names == ["id", "key"]


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------

class TestPostgreSQLParser:

    def setup_method(self):
        self.schema = PostgreSQLParser().parse(POSTGRES_DDL)

    def test_schema_qualified_name(self):
        assert self.schema.source_name == "accounts"

    def test_serial_is_auto_increment(self):
        id_field = self.schema.get_field("id")
        assert id_field.is_auto_increment
        assert id_field.is_primary_key
        assert id_field.semantic_type == SemanticType.INTEGER

    def test_identity_is_auto_increment(self):
        assert self.schema.get_field("seq").is_auto_increment

    def test_uuid_default_function(self):
        ext = self.schema.get_field("external_id")
        assert ext.semantic_type == SemanticType.STRING
        assert ext.default_value == "gen_random_uuid()"
        assert not ext.nullable

    def test_multi_word_types(self):
        assert self.schema.get_field("email").raw_type == "CHARACTER VARYING(255)"
        assert self.schema.get_field("email").semantic_type == SemanticType.STRING
        assert self.schema.get_field("amount").semantic_type == SemanticType.FLOAT
        created = self.schema.get_field("created_at")
        assert created.raw_type == "TIMESTAMP WITH TIME ZONE"
        assert created.semantic_type == SemanticType.DATETIME

    def test_array_types(self):
        tags = self.schema.get_field("tags")
        assert tags.semantic_type == SemanticType.JSON_ARRAY
        assert tags.element_type == SemanticType.STRING
        assert tags.array_depth == 1
        assert tags.nested_schema is None
        scores = self.schema.get_field("scores")
        assert scores.raw_type == "INTEGER[]"
        assert scores.element_type == SemanticType.INTEGER
        assert self.schema.get_field("matrix").array_depth == 2

    def test_jsonb_is_string(self):
        profile = self.schema.get_field("profile")
        assert profile.semantic_type == SemanticType.STRING
        assert profile.nested_schema is None

    def test_cast_default(self):
        assert self.schema.get_field("state").default_value == "'new'::character varying"

    def test_comment_on_column(self):
        assert self.schema.get_field("email").comment == "primary contact"
        assert self.schema.get_field("tags").comment is None


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

class TestSQLiteParser:

    def setup_method(self):
        self.schema = SQLiteParser().parse(SQLITE_DDL)

    def test_all_columns(self):
        assert self.schema.field_names == [
            "id", "title", "body", "rating", "payload", "flags", "label",
        ]

    def test_autoincrement(self):
        id_field = self.schema.get_field("id")
        assert id_field.is_auto_increment
        assert id_field.is_primary_key

    def test_typeless_column(self):
        body = self.schema.get_field("body")
        assert body.raw_type == ""
        assert body.semantic_type == SemanticType.UNKNOWN

    def test_affinity_fallback(self):
        assert self.schema.get_field("flags").semantic_type == SemanticType.INTEGER
        assert self.schema.get_field("payload").semantic_type == SemanticType.BINARY
        assert self.schema.get_field("rating").semantic_type == SemanticType.FLOAT
        assert self.schema.get_field("label").semantic_type == SemanticType.STRING

    def test_bracket_quoted_identifiers(self):
        schema = SQLiteParser().parse('CREATE TABLE [my table] ([first name] TEXT, "last" TEXT)')
        assert schema.source_name == "my table"
        assert schema.field_names == ["first name", "last"]


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestParseFailures:

    def test_no_create_table(self):
        with pytest.raises(ParseError, match="No CREATE TABLE statement found"):
            MySQLParser().parse("SELECT 1;")

    def test_empty_input(self):
        with pytest.raises(ParseError):
            MySQLParser().parse("   ")

    def test_unterminated_column_list(self):
        with pytest.raises(ParseError, match="Unterminated"):
            MySQLParser().parse("CREATE TABLE t (id INT, name VARCHAR(10)")

    def test_parse_result_never_raises(self):
        result = MySQLParser().parse_result("not ddl at all")
        assert not result.ok
        assert result.fields == []
        assert "CREATE TABLE" in result.error

    def test_malformed_column_is_skipped(self):
        result = MySQLParser().parse_result("CREATE TABLE t (id INT, (oops) INT, name TEXT)")
        assert result.ok
        assert [f.name for f in result.fields] == ["id", "name"]
        assert [f.ordinal_position for f in result.fields] == [0, 1]
        assert len(result.warnings) == 1

    def test_typeless_column_skipped_outside_sqlite(self):
        result = MySQLParser().parse_result("CREATE TABLE t (id INT, name NOT NULL)")
        assert [f.name for f in result.fields] == ["id"]
        assert result.warnings

    def test_duplicate_column_is_skipped(self):
        result = MySQLParser().parse_result("CREATE TABLE t (id INT, ID VARCHAR(5), x INT)")
        assert [f.name for f in result.fields] == ["id", "x"]
        assert any("duplicate" in w.lower() for w in result.warnings)

    def test_multiple_statements_use_first(self):
        ddl = "CREATE TABLE a (x INT);\nCREATE TABLE b (y INT);"
        result = MySQLParser().parse_result(ddl)
        assert result.table_name == "a"
        assert any("Multiple" in w for w in result.warnings)


class TestForDialect:

    @pytest.mark.parametrize("name, cls", [
        ("mysql", MySQLParser),
        ("postgresql", PostgreSQLParser),
        ("postgres", PostgreSQLParser),
        (SourceFormat.SQLITE, SQLiteParser),
    ])
    def test_for_dialect(self, name, cls):
        assert isinstance(DDLParser.for_dialect(name), cls)

    def test_for_dialect_rejects_documents(self):
        with pytest.raises(ValueError):
            DDLParser.for_dialect("json")

    def test_can_parse(self):
        assert MySQLParser().can_parse("create table if not exists t (id int)")
        assert not MySQLParser().can_parse('{"a": 1}')

    def test_n_columns_give_n_fields(self):
        columns = ", ".join(f"c{i} INT" for i in range(25))
        schema = MySQLParser().parse(f"CREATE TABLE wide ({columns})")
        assert len(schema.fields) == 25
        assert [f.ordinal_position for f in schema.fields] == list(range(25))
