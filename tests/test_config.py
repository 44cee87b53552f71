"""Tests for configuration loading."""

from schemaforge.config import ForgeConfig, get_config, set_config


class TestForgeConfig:

    def test_defaults(self):
        config = ForgeConfig()
        assert config.struct_name == "Response"
        assert config.config_struct_name == "Config"
        assert config.message_name == "Message"
        assert config.indent == 4
        assert config.dialect_priority == ("postgresql", "mysql", "sqlite")
        assert config.preserve_definitions

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SCHEMAFORGE_STRUCT_NAME", "Root")
        monkeypatch.setenv("SCHEMAFORGE_INDENT", "2")
        monkeypatch.setenv("SCHEMAFORGE_INLINE_NESTED", "yes")
        monkeypatch.setenv("SCHEMAFORGE_PRESERVE_DEFINITIONS", "false")
        monkeypatch.setenv("SCHEMAFORGE_DIALECT_PRIORITY", "SQLite, mysql")
        monkeypatch.setenv("SCHEMAFORGE_LOG_LEVEL", "debug")
        config = ForgeConfig.from_env()
        assert config.struct_name == "Root"
        assert config.indent == 2
        assert config.inline_nested_structs
        assert not config.preserve_definitions
        assert config.dialect_priority == ("sqlite", "mysql")
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self, monkeypatch):
        monkeypatch.delenv("SCHEMAFORGE_STRUCT_NAME", raising=False)
        monkeypatch.delenv("SCHEMAFORGE_DIALECT_PRIORITY", raising=False)
        config = ForgeConfig.from_env()
        assert config.struct_name == "Response"
        assert config.dialect_priority == ("postgresql", "mysql", "sqlite")


class TestSingleton:

    def test_set_and_get(self):
        custom = ForgeConfig(package_name="dto")
        set_config(custom)
        assert get_config() is custom

    def test_reset_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SCHEMAFORGE_PACKAGE_NAME", "entity")
        set_config(None)
        assert get_config().package_name == "entity"
        assert get_config() is get_config()
