"""Monitor configuration.

Example usage:
    from dataperf.config import build_monitor_config, load_monitor_config

    config = build_monitor_config(database_type="mysql", batch_size=50)
    config = load_monitor_config("settings.yaml")
"""

from .loader import load_monitor_config, substitute_env_vars
from .settings import MonitorConfig, build_monitor_config

__all__ = [
    "MonitorConfig",
    "build_monitor_config",
    "load_monitor_config",
    "substitute_env_vars",
]
