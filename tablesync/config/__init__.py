from .config_loader import ConfigLoader, resolve_env_vars

__all__ = ['ConfigLoader', 'resolve_env_vars']
