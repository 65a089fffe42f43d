"""
Providers create the workload behind a resource request for one deployment
strategy
"""

# Standard
from typing import List, Optional

# Local
from ..exceptions import ConfigUnavailable
from .base import DeploymentDetails, PostgresInstance, PostgresProvider
from .openshift import OpenShiftPostgresProvider, PostgresConnectionDetails


def get_postgres_provider(
    strategy: str,
    providers: Optional[List[PostgresProvider]] = None,
) -> PostgresProvider:
    """Select the provider for a deployment strategy

    Args:
        strategy:  str
            The deployment strategy of the request
        providers:  Optional[List[PostgresProvider]]
            The providers to choose from. Defaults to every built-in provider.

    Returns:
        provider:  PostgresProvider
            The first provider that supports the strategy

    Raises:
        ConfigUnavailable:  If no provider supports the strategy
    """
    if providers is None:
        providers = [OpenShiftPostgresProvider()]
    for provider in providers:
        if provider.supports_strategy(strategy):
            return provider
    raise ConfigUnavailable(f"no postgres provider found for strategy {strategy}")
