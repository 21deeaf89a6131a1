from .config_store import AppConfig, ConfigStore, EnabledTools, ToolPaths

__all__ = ["AppConfig", "ConfigStore", "EnabledTools", "ToolPaths"]
