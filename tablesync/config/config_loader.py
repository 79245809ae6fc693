import os
import yaml
from typing import Any, Dict, List

from ..core.enums import DatastoreType
from ..core.models import ConnectionConfig, DataStore, SyncJobConfig


def resolve_env_vars(value: Any) -> Any:
    """Substitute ``${VAR}`` and ``${VAR:default}`` strings from the environment"""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]  # Remove ${ and }
        default_value = ""
        if ":" in env_var:
            env_var, default_value = env_var.split(":", 1)
        return os.getenv(env_var, default_value)
    elif isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [resolve_env_vars(item) for item in value]
    return value


class ConfigLoader:
    """Load and validate sync job configurations"""

    @staticmethod
    def load_from_yaml(file_path: str) -> SyncJobConfig:
        """Load configuration from YAML file"""
        with open(file_path, 'r') as file:
            config_dict = yaml.safe_load(file)

        if config_dict is None:
            raise ValueError(f"Empty or invalid YAML file: {file_path}")

        return ConfigLoader.load_from_dict(config_dict)

    @staticmethod
    def load_datastores_from_dict(config_dict: Dict[str, Any]) -> Dict[str, DataStore]:
        datastores = {}
        for store_name, store_config in (config_dict.get('datastores') or {}).items():
            # Resolve environment variables in connection config
            resolved_config = resolve_env_vars(store_config or {})
            connection_data = dict(resolved_config.get('connection') or {})
            # Substituted values arrive as strings
            if isinstance(connection_data.get('port'), str) and connection_data['port'].isdigit():
                connection_data['port'] = int(connection_data['port'])

            datastores[store_name] = DataStore(
                name=store_name,
                type=resolved_config.get('type', ''),
                connection=ConnectionConfig(**connection_data),
                description=resolved_config.get('description'),
                tags=resolved_config.get('tags', [])
            )
        return datastores

    @staticmethod
    def load_from_dict(config_dict: Dict[str, Any]) -> SyncJobConfig:
        """Load configuration from dictionary"""
        datastores = ConfigLoader.load_datastores_from_dict(config_dict)
        sync_section = config_dict.get('sync') or {}

        local_name = sync_section.get('local', 'local')
        remote_name = sync_section.get('remote', 'remote')
        if local_name not in datastores:
            raise ValueError(f"Local datastore '{local_name}' is not defined under 'datastores'")
        if remote_name not in datastores:
            raise ValueError(f"Remote datastore '{remote_name}' is not defined under 'datastores'")

        tables = sync_section.get('tables') or []
        if isinstance(tables, str):
            tables = [tables]

        return SyncJobConfig(
            name=sync_section.get('name', 'tablesync'),
            local=datastores[local_name],
            remote=datastores[remote_name],
            tables=[str(t) for t in tables],
        )

    @staticmethod
    def validate_config(config: SyncJobConfig) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if not config.tables:
            issues.append("At least one table must be listed under 'sync.tables'")

        duplicates = sorted({t for t in config.tables if config.tables.count(t) > 1})
        if duplicates:
            issues.append(f"Tables listed more than once: {duplicates}")

        if config.local.name == config.remote.name:
            issues.append("Local and remote must be different datastores")

        supported = [t.value for t in DatastoreType]
        for datastore in (config.local, config.remote):
            name = datastore.name
            if datastore.type not in supported:
                issues.append(f"Datastore '{name}' has unsupported type '{datastore.type}', expected one of {supported}")

            conn = datastore.connection
            if not conn.host:
                issues.append(f"Datastore '{name}' must specify host")
            if not conn.user:
                issues.append(f"Datastore '{name}' must specify user")
            if not (conn.database or conn.dbname):
                issues.append(f"Datastore '{name}' must specify database/dbname")

        return issues
