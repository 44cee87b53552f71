"""Tests for the Go struct generator."""

from schemaforge.generator.struct_generator import StructGenerator, StructOptions
from schemaforge.source_loader.config_loader import DocumentParser
from schemaforge.source_loader.ddl_parser import MySQLParser, PostgreSQLParser
from schemaforge.source_loader.json_inferer import JSONSchemaInferer


SAMPLE_JSON = '{"user_id": 1, "name": "x", "address": {"city": "y"}, "tags": ["a"]}'

MYSQL_DDL = """\
CREATE TABLE `user_accounts` (
  `id` BIGINT UNSIGNED NOT NULL AUTO_INCREMENT,
  `username` VARCHAR(50) NOT NULL COMMENT 'login name',
  `score` DOUBLE DEFAULT '0',
  `created_at` DATETIME,
  PRIMARY KEY (`id`),
  UNIQUE KEY `uk_username` (`username`)
);
"""


def field_line(name, go_type, tag, name_width, type_width, depth=1):
    return "\t" * depth + f"{name.ljust(name_width)} {go_type.ljust(type_width)} {tag}"


def line_for(output, go_name):
    return next(ln for ln in output.splitlines() if ln.strip().startswith(go_name + " "))


# ---------------------------------------------------------------------------
# JSON input
# ---------------------------------------------------------------------------

class TestStructFromJSON:

    def setup_method(self):
        self.result = JSONSchemaInferer("Response").parse_result(SAMPLE_JSON)

    def generate(self, **options):
        generator = StructGenerator(StructOptions(**options))
        return generator.generate(self.result.schema, self.result.nested_structs)

    def test_separate_nested_structs(self):
        expected = "\n".join([
            "package model",
            "",
            "// Response is generated from JSON input",
            "type Response struct {",
            field_line("UserID", "int", '`json:"user_id"`', 7, 8),
            field_line("Name", "string", '`json:"name"`', 7, 8),
            field_line("Address", "Address", '`json:"address"`', 7, 8),
            field_line("Tags", "[]string", '`json:"tags"`', 7, 8),
            "}",
            "",
            "// Address is a nested struct of Response",
            "type Address struct {",
            '\tCity string `json:"city"`',
            "}",
        ]) + "\n"
        assert self.generate() == expected

    def test_inline_nested_structs(self):
        output = self.generate(inline_nested_structs=True)
        assert '\tAddress struct {\n\t\tCity string `json:"city"`\n\t} `json:"address"`' in output
        assert "type Address struct" not in output

    def test_inline_array_of_objects(self):
        result = JSONSchemaInferer().parse_result('{"items": [{"id": 1}]}')
        output = StructGenerator(StructOptions(inline_nested_structs=True)).generate(result.schema)
        assert "\tItems []struct {\n\t\tID int `json:\"id\"`\n\t} `json:\"items\"`" in output

    def test_nested_structs_collected_from_schema(self):
        output = StructGenerator().generate(self.result.schema)
        assert "type Address struct {" in output

    def test_package_and_struct_name(self):
        output = self.generate(package_name="api", struct_name="Payload")
        assert output.startswith("package api\n")
        assert "type Payload struct {" in output

    def test_no_table_name_method_for_json(self):
        assert "TableName" not in self.generate()

    def test_no_time_import_without_datetimes(self):
        assert "import" not in self.generate()

    def test_go_name_collisions(self):
        result = JSONSchemaInferer().parse_result('{"user_id": 1, "userId": 2}')
        output = StructGenerator().generate(result.schema)
        assert "\tUserID " in output
        assert "\tUserID2 " in output

    def test_unknown_values_use_interface(self):
        result = JSONSchemaInferer().parse_result('{"x": null, "m": [[1]]}')
        output = StructGenerator().generate(result.schema)
        assert "interface{}" in line_for(output, "X")
        assert "[][]int" in line_for(output, "M")

    def test_idempotent(self):
        assert self.generate() == self.generate()


# ---------------------------------------------------------------------------
# DDL input
# ---------------------------------------------------------------------------

class TestStructFromDDL:

    def setup_method(self):
        self.schema = MySQLParser().parse(MYSQL_DDL)

    def test_struct_named_after_table(self):
        output = StructGenerator().generate(self.schema)
        assert "// UserAccounts maps to the user_accounts table" in output
        assert "type UserAccounts struct {" in output

    def test_time_import(self):
        output = StructGenerator().generate(self.schema)
        assert 'package model\n\nimport "time"\n' in output
        assert "time.Time" in line_for(output, "CreatedAt")

    def test_integer_width_and_unsigned(self):
        output = StructGenerator().generate(self.schema)
        assert " uint64 " in line_for(output, "ID")
        assert " float64 " in line_for(output, "Score")

    def test_gorm_tags(self):
        output = StructGenerator().generate(self.schema)
        assert '`json:"id" gorm:"column:id;primaryKey;autoIncrement"`' in output
        assert 'gorm:"column:username;not null;unique;size:50"' in output
        assert "gorm:\"column:score;default:'0'\"" in output
        assert 'gorm:"column:created_at"' in output

    def test_trailing_comment(self):
        output = StructGenerator().generate(self.schema)
        assert line_for(output, "Username").endswith("// login name")

    def test_table_name_method(self):
        output = StructGenerator().generate(self.schema)
        assert output.endswith(
            "func (UserAccounts) TableName() string {\n"
            '\treturn "user_accounts"\n'
            "}\n"
        )

    def test_table_name_method_disabled(self):
        output = StructGenerator(StructOptions(generate_table_name_method=False)).generate(self.schema)
        assert "TableName" not in output

    def test_struct_name_override(self):
        output = StructGenerator(StructOptions(struct_name="Account")).generate(self.schema)
        assert "type Account struct {" in output
        assert "func (Account) TableName() string {" in output

    def test_postgres_arrays(self):
        schema = PostgreSQLParser().parse("CREATE TABLE t (tags TEXT[], grid INTEGER[][])")
        output = StructGenerator().generate(schema)
        assert " []string " in line_for(output, "Tags")
        assert " [][]int32 " in line_for(output, "Grid")

    def test_columns_are_aligned(self):
        output = StructGenerator().generate(self.schema)
        body = [ln for ln in output.splitlines() if ln.startswith("\t") and "`" in ln]
        tag_columns = {ln.index("`") for ln in body}
        assert len(tag_columns) == 1

    def test_idempotent(self):
        generator = StructGenerator()
        assert generator.generate(self.schema) == generator.generate(self.schema)


# ---------------------------------------------------------------------------
# Config input
# ---------------------------------------------------------------------------

class TestStructFromConfig:

    def test_yaml_tags(self):
        result = DocumentParser("yaml", root_name="Config").parse_result("host: x\nport: 80\n")
        output = StructGenerator().generate(result.schema)
        assert '`json:"host" yaml:"host"`' in output
        assert "type Config struct {" in output

    def test_toml_tags(self):
        result = DocumentParser("toml", root_name="Config").parse_result('name = "x"\n')
        output = StructGenerator().generate(result.schema)
        assert '`json:"name" toml:"name"`' in output

    def test_xml_tags(self):
        result = DocumentParser("xml", root_name="Config").parse_result("<app><name>x</name></app>")
        output = StructGenerator().generate(result.schema, result.nested_structs)
        assert '`json:"name" xml:"name"`' in output
        assert "type App struct {" in output

    def test_xml_attribute_and_text_tags(self):
        text = '<app><server port="80">web</server></app>'
        result = DocumentParser("xml", root_name="Config").parse_result(text)
        output = StructGenerator().generate(result.schema, result.nested_structs)
        assert 'xml:"port,attr"' in output
        assert 'xml:",chardata"' in output
        assert 'xml:"@_port"' not in output
        assert 'xml:"#text"' not in output
