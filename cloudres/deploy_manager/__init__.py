"""
The DeployManager is the abstraction in charge of reading and writing objects in
the cluster
"""

# Local
from .base import DeployManagerBase
from .dry_run_deploy_manager import DryRunDeployManager
from .openshift_deploy_manager import OpenshiftDeployManager
from .owner_references import update_owner_references
