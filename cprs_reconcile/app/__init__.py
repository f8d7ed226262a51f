"""Application-level utilities (environment, settings)."""

from .configuration import RuntimeConfig, load_runtime_config
from .environment import Paths, build_default_paths
from .settings import AppSettings
