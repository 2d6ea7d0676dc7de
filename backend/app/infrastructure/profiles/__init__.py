from .yaml_profile_source import YamlProfileSource

__all__ = ["YamlProfileSource"]
