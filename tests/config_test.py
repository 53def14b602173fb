"""
Tests for the Config classes from the config module
"""
import os

import pytest

from rolodex.config import BaseConfig, RolodexConfig
from rolodex.data import DbBackend, MemoryAdapter, get_db_adapter
from rolodex.errors import ValidationError

ROLODEX_VARS = ("MONGO_URI", "MONGO_DATABASE", "DB_BACKEND", "SYNC_MAX_WORKERS")


@pytest.fixture
def _env_setup():
    """
    declare an environment
    """
    os.environ["VAR_1"] = "value1"
    os.environ["TO_LIST_VAR"] = "A,B,C"
    os.environ["JSON_STRING"] = '{"some_key":"some_value"}'
    yield
    del os.environ["VAR_1"]
    del os.environ["TO_LIST_VAR"]
    del os.environ["JSON_STRING"]


@pytest.fixture
def _rolodex_env():
    """
    clear the rolodex settings, restoring them afterwards
    """
    saved = {key: os.environ.pop(key) for key in ROLODEX_VARS if key in os.environ}
    yield os.environ
    for key in ROLODEX_VARS:
        os.environ.pop(key, None)
    os.environ.update(saved)


def test_create_config(_env_setup):
    """
    Test retrieving the vars and asserting their values
    """
    config = BaseConfig()
    assert config.get_env_var("VAR_1") == "value1"
    assert config.get_env_var("TO_LIST_VAR") == "A,B,C"
    assert config.get_env_var("NONEXISTENT_VAR") is None
    assert "VAR_1" in config.get_env_vars()


def test_var_to_list(_env_setup):
    """
    Test converting a comma-delimited string into a list
    """
    config = BaseConfig()
    assert config.convert_var_into_list("TO_LIST_VAR") is True
    assert config.get_env_var("TO_LIST_VAR") == ["A", "B", "C"]
    assert config.convert_var_into_list("NONEXISTENT_VAR") is False


def test_var_from_json(_env_setup):
    """
    Test converting a json string into a pythonic type
    """
    config = BaseConfig()
    assert config.convert_var_from_json_string("JSON_STRING") is True
    assert config.get_env_var("JSON_STRING") == {"some_key": "some_value"}

    config.env_vars["BROKEN_JSON"] = "{not json"
    assert config.convert_var_from_json_string("BROKEN_JSON") is False


class TestRolodexConfig:

    def test_defaults(self, _rolodex_env):
        config = RolodexConfig()

        assert config.get_env_var("MONGO_URI") == "mongodb://localhost:27017"
        assert config.get_env_var("MONGO_DATABASE") == "rolodex"
        assert config.get_env_var("DB_BACKEND") == "mongodb"
        assert config.sync_max_workers == 1

    def test_environment_overrides(self, _rolodex_env):
        _rolodex_env["DB_BACKEND"] = "memory"
        _rolodex_env["SYNC_MAX_WORKERS"] = "8"

        config = RolodexConfig()

        assert config.sync_max_workers == 8
        assert isinstance(get_db_adapter(config), MemoryAdapter)

    @pytest.mark.parametrize("key,value", [
        ("DB_BACKEND", "cassandra"),
        ("SYNC_MAX_WORKERS", "many"),
        ("SYNC_MAX_WORKERS", "0"),
    ])
    def test_invalid_settings(self, _rolodex_env, key, value):
        _rolodex_env[key] = value

        with pytest.raises(ValidationError):
            RolodexConfig()


def test_mongodb_backend_is_built_from_config(_rolodex_env, mocker):
    mongo_client = mocker.patch("rolodex.data.mongodb.MongoClient")
    _rolodex_env["MONGO_URI"] = "mongodb://db.internal:27017"
    _rolodex_env["MONGO_DATABASE"] = "contacts"

    adapter = get_db_adapter(RolodexConfig())

    assert adapter.db_name == "contacts"
    assert mongo_client.call_args[0][0] == "mongodb://db.internal:27017"
    assert str(DbBackend.MONGODB) == "mongodb"
