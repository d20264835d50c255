"""Default configuration files and loaders.

Domain defaults are stored in JSON so keyword rules, allocation targets,
alert texts and factory presets can be tuned without code changes.
"""

from .defaults import get_config_value, get_tracker_config, load_config

__all__ = ['load_config', 'get_tracker_config', 'get_config_value']
