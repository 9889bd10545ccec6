"""fargin: project scaffolding and record keeping for LLM-driven development."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fargin")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from fargin.core import DevCycleConfig, ProjectConfig
from fargin.features import Feature, FeatureManager

__all__ = ["DevCycleConfig", "Feature", "FeatureManager", "ProjectConfig", "__version__"]
