"""Application-level building blocks (asset paths, settings, configuration)."""

from .collaborators import Collaborators
from .configuration import RuntimeConfig, load_runtime_config
from .environment import AssetPaths, Plugin, build_asset_paths
from .settings import OutcomeStatus, SettingsOutcome, SettingsStore
