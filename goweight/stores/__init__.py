"""Storage helpers used by the size reconciler."""

from .module_cache import ModuleCache, directory_size, escape_module_path, resolve_module_cache_root

__all__ = ["ModuleCache", "directory_size", "escape_module_path", "resolve_module_cache_root"]
