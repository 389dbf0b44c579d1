"""Unit tests for migration configuration and logging setup."""

import logging

import pytest
import yaml

from hubmigrate.config import load_config, validate_config, get_default_config
from hubmigrate.config.db_config import ENV_OVERRIDES
from hubmigrate.config.logging_config import (
    ROOT_LOGGER_NAME, MigrationLoggerAdapter, setup_migration_logging
)
from hubmigrate.core import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep HUBMIGRATE_* variables from the host out of the tests."""
    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def writer(data, name='hub.yaml'):
        path = tmp_path / name
        with open(path, 'w') as f:
            yaml.dump(data, f)
        return path
    return writer


class TestLoadConfig:
    """Test loading configuration from defaults, YAML and environment."""

    def test_defaults(self):
        config = load_config()

        assert config['database']['type'] == 'sqlite'
        assert config['versioning']['settings_table'] == 'setting'
        assert config['versioning']['version_key'] == 'migration_version'
        assert config['logging']['level'] == 'INFO'

    def test_defaults_are_copies(self):
        config = get_default_config()
        config['database']['type'] = 'postgresql'
        assert get_default_config()['database']['type'] == 'sqlite'

    def test_yaml_merges_over_defaults(self, write_config):
        path = write_config({
            'database': {'path': 'custom/app.db'},
            'versioning': {'version_key': 'schema_version'}
        })

        config = load_config(path)

        assert config['database']['path'] == 'custom/app.db'
        assert config['database']['type'] == 'sqlite'
        assert config['versioning']['version_key'] == 'schema_version'
        assert config['versioning']['settings_table'] == 'setting'

    def test_empty_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        assert load_config(path)['database']['path'] == 'data/hub.db'

    def test_environment_overrides_yaml(self, write_config, monkeypatch):
        path = write_config({'database': {'path': 'from_yaml.db'}})
        monkeypatch.setenv('HUBMIGRATE_DB_PATH', 'from_env.db')
        monkeypatch.setenv('HUBMIGRATE_LOG_LEVEL', 'DEBUG')

        config = load_config(path)

        assert config['database']['path'] == 'from_env.db'
        assert config['logging']['level'] == 'DEBUG'

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / 'missing.yaml')

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text("database: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_invalid_values_rejected(self, write_config):
        path = write_config({'database': {'type': 'oracle'}})
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_env_value_rejected(self, monkeypatch):
        monkeypatch.setenv('HUBMIGRATE_LOG_LEVEL', 'LOUD')
        with pytest.raises(ConfigurationError):
            load_config()


class TestValidateConfig:
    """Test configuration validation rules."""

    def test_default_config_is_valid(self):
        assert validate_config(get_default_config())

    def test_url_without_path_is_valid(self):
        config = get_default_config()
        config['database']['path'] = None
        config['database']['url'] = 'sqlite:///hub.db'
        assert validate_config(config)

    @pytest.mark.parametrize("section,key,value", [
        ('database', 'type', 'mysql'),
        ('database', 'engine_args', ['pool_size', 5]),
        ('versioning', 'settings_table', ''),
        ('versioning', 'version_key', '   '),
        ('logging', 'level', 'VERBOSE'),
    ])
    def test_invalid_values(self, section, key, value):
        config = get_default_config()
        config[section][key] = value
        assert not validate_config(config)

    def test_missing_path_and_url(self):
        config = get_default_config()
        config['database']['path'] = None
        assert not validate_config(config)


class TestLoggingSetup:
    """Test logger configuration and the migration adapter."""

    @pytest.fixture(autouse=True)
    def reset_logger(self):
        yield
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_level_and_handlers(self, tmp_path):
        log_file = tmp_path / 'logs' / 'migrate.log'
        logger = setup_migration_logging({'logging': {'level': 'debug', 'log_file': str(log_file)}})

        assert logger.name == ROOT_LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert log_file.parent.is_dir()

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_migration_logging({'logging': {'level': 'INFO'}})
        logger = setup_migration_logging({'logging': {'level': 'WARNING'}})

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_adapter_adds_database_context(self, tmp_path):
        log_file = tmp_path / 'migrate.log'
        setup_migration_logging({'logging': {'level': 'INFO', 'log_file': str(log_file)}})

        adapter = MigrationLoggerAdapter(logging.getLogger(f'{ROOT_LOGGER_NAME}.test'), {'db_path': str(tmp_path / 'hub.db')})
        adapter.info("hello")

        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()
        assert '[hub]' in log_file.read_text()
        assert 'hello' in log_file.read_text()
