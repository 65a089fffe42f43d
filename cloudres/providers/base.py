"""
Base interface for the providers that create a Postgres workload for a
provisioning request
"""

# Standard
from typing import Dict, Optional
import abc

# Forward declaration for Session
SESSION_TYPE = "Session"


class DeploymentDetails(abc.ABC):
    """Connection information for a provisioned resource"""

    @abc.abstractmethod
    def data(self) -> Dict[str, bytes]:
        """The connection information as key -> bytes, the way it is stored in
        a Secret for the consumer
        """


class PostgresInstance:
    """A Postgres workload that is ready for use"""

    def __init__(self, deployment_details: DeploymentDetails):
        self.deployment_details = deployment_details

    def __repr__(self):
        return f"PostgresInstance({type(self.deployment_details).__name__})"


class PostgresProvider(abc.ABC):
    """A provider creates the workload behind a Postgres request using one
    deployment strategy
    """

    @abc.abstractmethod
    def get_name(self) -> str:
        """Unique name of the provider"""

    @abc.abstractmethod
    def supports_strategy(self, strategy: str) -> bool:
        """Whether the provider handles the given deployment strategy"""

    @abc.abstractmethod
    def create_postgres(self, session: SESSION_TYPE) -> Optional[PostgresInstance]:
        """Make sure the workload for the session's resource exists

        Args:
            session:  Session
                The session for the current call

        Returns:
            instance:  Optional[PostgresInstance]
                The ready instance, or None if the workload is not ready yet and
                the call should be repeated
        """

    @abc.abstractmethod
    def delete_postgres(self, session: SESSION_TYPE):
        """Tear down the workload for the session's resource"""
