"""
Test cases for YAML configuration loading and validation.
"""

import pytest
from tablesync.config.config_loader import ConfigLoader, resolve_env_vars

VALID_CONFIG = """
datastores:
  local:
    type: postgres
    connection:
      host: localhost
      port: 5432
      user: app
      password: ${LOCAL_DB_PASSWORD:secret}
      database: app_local
  remote:
    type: mysql
    description: Head office
    connection:
      host: ${REMOTE_DB_HOST}
      port: ${REMOTE_DB_PORT:3306}
      user: sync
      database: app
sync:
  local: local
  remote: remote
  tables:
    - Customers
    - Orders
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "sync.yaml"
    path.write_text(VALID_CONFIG)
    return path


class TestResolveEnvVars:

    def test_substitutes_variable(self, monkeypatch):
        monkeypatch.setenv('DB_HOST', 'db.internal')
        assert resolve_env_vars('${DB_HOST}') == 'db.internal'

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv('DB_HOST', raising=False)
        assert resolve_env_vars('${DB_HOST:localhost}') == 'localhost'
        assert resolve_env_vars('${DB_HOST}') == ''

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv('DB_USER', 'admin')
        resolved = resolve_env_vars({'a': ['${DB_USER}', 1], 'b': {'c': '${DB_USER}'}})
        assert resolved == {'a': ['admin', 1], 'b': {'c': 'admin'}}

    def test_plain_values_untouched(self):
        assert resolve_env_vars('plain') == 'plain'
        assert resolve_env_vars(5432) == 5432


class TestLoadFromYaml:
    """Test loading a complete configuration file"""

    def test_loads_datastores_and_tables(self, config_file, monkeypatch):
        monkeypatch.setenv('REMOTE_DB_HOST', 'office.example.com')
        monkeypatch.delenv('LOCAL_DB_PASSWORD', raising=False)
        monkeypatch.delenv('REMOTE_DB_PORT', raising=False)

        config = ConfigLoader.load_from_yaml(str(config_file))

        assert config.tables == ['Customers', 'Orders']
        assert config.local.type == 'postgres'
        assert config.local.connection.password == 'secret'
        assert config.remote.connection.host == 'office.example.com'
        assert config.remote.connection.port == 3306
        assert config.remote.description == 'Head office'
        assert ConfigLoader.validate_config(config) == []

    def test_empty_file_rejected(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        with pytest.raises(ValueError, match="Empty or invalid YAML file"):
            ConfigLoader.load_from_yaml(str(path))

    def test_undefined_datastore_rejected(self):
        with pytest.raises(ValueError, match="Remote datastore 'hq' is not defined"):
            ConfigLoader.load_from_dict({
                'datastores': {'local': {'type': 'postgres'}},
                'sync': {'remote': 'hq', 'tables': ['People']},
            })

    def test_single_table_string(self):
        config = ConfigLoader.load_from_dict({
            'datastores': {'local': {'type': 'postgres'}, 'remote': {'type': 'postgres'}},
            'sync': {'tables': 'People'},
        })
        assert config.tables == ['People']


class TestValidateConfig:
    """Test configuration validation issues"""

    def base_dict(self):
        return {
            'datastores': {
                'local': {'type': 'postgres', 'connection': {'host': 'h', 'user': 'u', 'database': 'd'}},
                'remote': {'type': 'mysql', 'connection': {'host': 'h', 'user': 'u', 'dbname': 'd'}},
            },
            'sync': {'tables': ['People']},
        }

    def test_valid(self):
        assert ConfigLoader.validate_config(ConfigLoader.load_from_dict(self.base_dict())) == []

    def test_no_tables(self):
        data = self.base_dict()
        data['sync']['tables'] = []

        issues = ConfigLoader.validate_config(ConfigLoader.load_from_dict(data))

        assert "At least one table must be listed under 'sync.tables'" in issues

    def test_duplicate_tables(self):
        data = self.base_dict()
        data['sync']['tables'] = ['People', 'Orders', 'People']

        issues = ConfigLoader.validate_config(ConfigLoader.load_from_dict(data))

        assert "Tables listed more than once: ['People']" in issues

    def test_same_store_on_both_sides(self):
        data = self.base_dict()
        data['sync']['remote'] = 'local'

        issues = ConfigLoader.validate_config(ConfigLoader.load_from_dict(data))

        assert "Local and remote must be different datastores" in issues

    def test_unsupported_type_and_missing_fields(self):
        data = self.base_dict()
        data['datastores']['remote'] = {'type': 'oracle', 'connection': {}}

        issues = ConfigLoader.validate_config(ConfigLoader.load_from_dict(data))

        assert any("unsupported type 'oracle'" in i for i in issues)
        assert "Datastore 'remote' must specify host" in issues
        assert "Datastore 'remote' must specify user" in issues
        assert "Datastore 'remote' must specify database/dbname" in issues
