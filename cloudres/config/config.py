"""
The library config is read once, when cloudres is first imported. Values come
from the packaged config.yaml and any key may be replaced from the environment.
"""

# Standard
import os

# First Party
import aconfig
import alog

# Local
from .validation import get_invalid_params

CONFIG_DIR = os.path.dirname(__file__)


def _load_packaged_yaml(file_name: str, override_env_vars: bool) -> aconfig.Config:
    return aconfig.Config.from_yaml(
        os.path.join(CONFIG_DIR, file_name),
        override_env_vars=override_env_vars,
    )


library_config = _load_packaged_yaml("config.yaml", override_env_vars=True)

# The constraints themselves can't be changed from the environment
validation_config = _load_packaged_yaml(
    "config_validation.yaml", override_env_vars=False
)
_invalid = get_invalid_params(library_config, validation_config)
assert not _invalid, f"Invalid cloudres config value(s) for: {', '.join(_invalid)}"

# Logging starts out from the library config. Each provisioning call may refine
# it from the annotations of its resource.
alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter="json" if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
