"""
Package exports
"""

# Local
from . import config
from .apply import OperationResult, create_or_update
from .deploy_manager import (
    DeployManagerBase,
    DryRunDeployManager,
    OpenshiftDeployManager,
)
from .exceptions import (
    ClusterError,
    CloudResError,
    ConfigMalformed,
    ConfigUnavailable,
    FinalizerUpdateFailed,
    ObjectApplyFailed,
    OperationAborted,
    assert_cluster,
    assert_config,
)
from .managed_object import (
    Credentials,
    ManagedObject,
    NetworkEndpoint,
    PodController,
    StorageClaim,
)
from .providers import (
    OpenShiftPostgresProvider,
    PostgresInstance,
    PostgresProvider,
    get_postgres_provider,
)
from .session import Session, configure_logging, generate_id, setup_deploy_manager
from .strategy import (
    ConfigMapStrategyStore,
    PostgresStrategy,
    StrategyConfig,
    StrategyStore,
)
from .verify_resources import verify_deployment_available
