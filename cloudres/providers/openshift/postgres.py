"""
Provider that runs Postgres as a workload inside the cluster itself
"""

# Standard
from typing import Callable, Dict, List, Optional, Tuple

# First Party
import alog

# Local
from ... import config
from ...apply import OperationResult, create_or_update
from ...constants import OPENSHIFT_DEPLOYMENT_STRATEGY, POSTGRES_RESOURCE_TYPE
from ...exceptions import ClusterError, OperationAborted, assert_cluster
from ...managed_object import ManagedObject, PodController
from ...session import Session
from ...strategy import ConfigMapStrategyStore, PostgresStrategy, StrategyStore
from ...utils import add_finalizer
from ...verify_resources import verify_deployment_available
from ..base import DeploymentDetails, PostgresInstance, PostgresProvider
from .defaults import (
    PostgresDefaults,
    build_default_postgres_deployment,
    build_default_postgres_pvc,
    build_default_postgres_secret,
    build_default_postgres_service,
)

log = alog.use_channel("OSPG")

# Signature of the default object builders
DEFAULT_BUILDER = Callable[[str, str, PostgresDefaults], ManagedObject]

# Objects are reconciled in this order so that the claim and the credentials
# exist before the deployment that uses them
POSTGRES_OBJECT_BUILDERS: List[DEFAULT_BUILDER] = [
    build_default_postgres_pvc,
    build_default_postgres_secret,
    build_default_postgres_deployment,
    build_default_postgres_service,
]


class PostgresConnectionDetails(DeploymentDetails):
    """Connection details of a Postgres workload inside the cluster"""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        user: str,
        password: str,
        host: str,
        port: int,
        database: str,
    ):
        self.user = user
        self.password = password
        self.host = host
        self.port = port
        self.database = database

    @classmethod
    def for_workload(
        cls,
        name: str,
        namespace: str,
        defaults: PostgresDefaults,
    ) -> "PostgresConnectionDetails":
        """Details for the workload with the given name, reached through its
        service's in-cluster DNS name
        """
        return cls(
            user=defaults.user,
            password=defaults.password,
            host=f"{name}.{namespace}.svc.cluster.local",
            port=defaults.port,
            database=name,
        )

    @property
    def uri(self) -> str:
        return (
            f"postgres://{self.user}:{self.password}@{self.host}:{self.port}"
            f"/{self.database}"
        )

    def data(self) -> Dict[str, bytes]:
        return {"uri": self.uri.encode("utf-8")}


class OpenShiftPostgresProvider(PostgresProvider):
    """Provider for the openshift deployment strategy. Each call registers the
    finalizer, loads the strategy for the requested tier, reconciles the
    claim, credentials, deployment and service, then reports whether the
    deployment is available.
    """

    def __init__(
        self,
        strategy_store: Optional[StrategyStore] = None,
        defaults: Optional[PostgresDefaults] = None,
    ):
        """
        Args:
            strategy_store:  Optional[StrategyStore]
                Where to read strategies from. When not given, the strategy
                ConfigMap is read through the session of each call.
            defaults:  Optional[PostgresDefaults]
                Values for the default objects. When not given, they come from
                the library config.
        """
        self._strategy_store = strategy_store
        self.defaults = defaults or PostgresDefaults.from_config()

    ## Interface ###############################################################

    def get_name(self) -> str:
        return OPENSHIFT_DEPLOYMENT_STRATEGY

    def supports_strategy(self, strategy: str) -> bool:
        return strategy == OPENSHIFT_DEPLOYMENT_STRATEGY

    @alog.logged_function(log.debug)
    def create_postgres(self, session: Session) -> Optional[PostgresInstance]:
        if session.deletion_timestamp is None:
            add_finalizer(session, config.finalizer)

        strategy = self.get_postgres_strategy(session)
        self.reconcile_objects(session, strategy)
        return self.get_instance(session)

    def delete_postgres(self, session: Session):
        log.info(
            "Nothing to delete for postgres %s/%s", session.namespace, session.name
        )

    ## Steps ###################################################################

    def get_postgres_strategy(self, session: Session) -> PostgresStrategy:
        """Load and decode the strategy for the session's tier"""
        store = self._strategy_store or ConfigMapStrategyStore(session)
        session.check_active("read postgres strategy")
        strategy_config = store.read_strategy(
            POSTGRES_RESOURCE_TYPE, session.tier, session.namespace
        )
        log.debug2(
            "Found strategy for tier [%s] in region [%s]",
            session.tier,
            strategy_config.region,
        )
        return PostgresStrategy.from_raw(strategy_config.raw_strategy)

    def reconcile_objects(
        self,
        session: Session,
        strategy: PostgresStrategy,
    ) -> List[Tuple[ManagedObject, OperationResult]]:
        """Create or update each object in order, stopping at the first
        failure
        """
        results = []
        for builder in POSTGRES_OBJECT_BUILDERS:
            desired = builder(session.name, session.namespace, self.defaults)
            override = strategy.override_for(desired)
            if override is None:
                log.debug2("No override for %s. Using default", desired.kind)
                owned_value = desired.get_mutable()
            else:
                log.debug2("Using strategy override for %s", desired.kind)
                owned_value = override

            result = create_or_update(
                session, desired, lambda obj, val=owned_value: obj.set_mutable(val)
            )
            log.debug("%s %s: %s", desired.kind, desired.name, result.value)
            results.append((desired, result))
        return results

    def get_instance(self, session: Session) -> Optional[PostgresInstance]:
        """Return the instance if the deployment is available, None otherwise"""
        try:
            deployment = PodController.fetch(session, session.name, session.namespace)
        except (ClusterError, OperationAborted):
            raise
        except Exception as err:  # pylint: disable=broad-except
            raise ClusterError(
                f"failed to get postgres deployment {session.name}"
            ) from err
        assert_cluster(
            deployment is not None,
            f"failed to get postgres deployment {session.name}",
        )

        if not verify_deployment_available(deployment.definition):
            log.info("Postgres deployment %s is not available yet", session.name)
            return None

        log.info("Found available postgres deployment %s", session.name)
        return PostgresInstance(
            PostgresConnectionDetails.for_workload(
                session.name, session.namespace, self.defaults
            )
        )
