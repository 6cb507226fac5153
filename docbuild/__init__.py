"""Generate appledoc HTML documentation and open the result."""
from __future__ import annotations

from .config import BuildConfig, ConfigurationError
from .invoker import DocBuildInvoker, InvocationResult, build_command

__version__ = "0.1.0"

__all__ = [
    "BuildConfig",
    "ConfigurationError",
    "DocBuildInvoker",
    "InvocationResult",
    "build_command",
]
