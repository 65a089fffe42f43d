"""
Shared module to hold constant values for the library
"""

# Log config annotations
LOG_DEFAULT_LEVEL_NAME = "cloudres.integreatly.org/log-default-level"
LOG_FILTERS_NAME = "cloudres.integreatly.org/log-filters"
LOG_THREAD_ID_NAME = "cloudres.integreatly.org/log-thread-id"
LOG_JSON_NAME = "cloudres.integreatly.org/log-json"

# Resource types that a strategy store holds strategies for
POSTGRES_RESOURCE_TYPE = "postgres"

# Deployment strategy names used to select a provider
OPENSHIFT_DEPLOYMENT_STRATEGY = "openshift"

# Tiers present in the built-in default strategy mapping
DEFAULT_TIERS = ["development", "production"]

# Key in a CR spec holding the tier
SPEC_TIER = "tier"

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."
