"""
Providers that run the requested resources inside the cluster
"""

# Local
from .defaults import (
    PostgresDefaults,
    build_default_postgres_containers,
    build_default_postgres_deployment,
    build_default_postgres_pvc,
    build_default_postgres_secret,
    build_default_postgres_service,
    env_var_from_secret,
    env_var_from_value,
)
from .postgres import OpenShiftPostgresProvider, PostgresConnectionDetails
