"""
Pluggable application modules.
"""

from .base import LoadedModule, Module
from .loader import DEFAULT_PACKAGE, ModuleLoader

__all__ = ["DEFAULT_PACKAGE", "LoadedModule", "Module", "ModuleLoader"]
