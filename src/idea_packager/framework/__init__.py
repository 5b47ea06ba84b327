"""
Framework Layer - configuration shared by the index and the packaging pipeline.
"""

from .configuration import PackagerSettings, ConfigurationBuilder

__all__ = ["PackagerSettings", "ConfigurationBuilder"]
