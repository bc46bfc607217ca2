"""tfproj configuration module."""

from tfproj.config.schema import TfProjConfig
from tfproj.config.loader import load_config, load_default_config

__all__ = ["TfProjConfig", "load_config", "load_default_config"]
