import pytest

from schemaforge.config import ForgeConfig, set_config


@pytest.fixture(autouse=True)
def default_config():
    """Run every test against the built-in defaults, not the caller's environment."""
    set_config(ForgeConfig())
    yield
    set_config(None)
