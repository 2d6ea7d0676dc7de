from .json_source_config_repository import JsonFileSourceConfigRepository

__all__ = ["JsonFileSourceConfigRepository"]
