"""
Library config module. Values come from the packaged config.yaml with
environment variable overrides.
"""

# Local
from . import validation
from .config import library_config


def __getattr__(name):
    """Read anything that isn't a module attribute from the library config"""
    if name not in library_config and not hasattr(dict, name):
        raise AttributeError(f"cloudres.config has no key {name}")
    return getattr(library_config, name)


__all__ = list(library_config)
