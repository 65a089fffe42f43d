"""
This module holds the core session state for an individual provisioning call
"""

# Standard
from typing import List, Optional, Tuple
import base64
import logging
import threading
import time
import uuid

# First Party
import aconfig
import alog

# Local
from . import config, constants
from .deploy_manager import (
    DeployManagerBase,
    DryRunDeployManager,
    OpenshiftDeployManager,
)
from .exceptions import OperationAborted
from .log_format import CloudResJsonFormatter

log = alog.use_channel("SESSION")

# Sentinel for "look in the namespace of the requesting resource"
_OWN_NAMESPACE = object()

# Sections of the requesting resource that the cluster always populates
_REQUIRED_CR_PATHS = [
    ["kind"],
    ["apiVersion"],
    ["metadata"],
    ["metadata", "name"],
    ["metadata", "namespace"],
]


class Session:
    """A session is the context for a single provisioning call. It holds the
    owning resource, the deploy manager used to talk to the cluster, and the
    caller's cancellation signals.
    """

    # No attributes beyond these can be assigned
    __slots__ = [
        "__id",
        "__cr_manifest",
        "__deploy_manager",
        "__deadline",
        "__cancel_event",
    ]

    def __init__(  # pylint: disable=too-many-arguments
        self,
        reconciliation_id: str,
        cr_manifest: aconfig.Config,
        deploy_manager: DeployManagerBase,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Construct a session object to hold the state for a call

        Args:
            reconciliation_id:  str
                The unique ID for this call
            cr_manifest:  aconfig.Config
                The full manifest of the resource requesting the database
            deploy_manager:  DeployManagerBase
                Performs every read and write against the cluster
            deadline:  Optional[float]
                Point in time.monotonic() seconds after which every external
                call is aborted
            cancel_event:  Optional[threading.Event]
                Event that the caller sets to abort the call
        """
        if not isinstance(cr_manifest, aconfig.Config):
            cr_manifest = aconfig.Config(cr_manifest, override_env_vars=False)
        self._check_required_sections(cr_manifest)

        self.__id = reconciliation_id
        self.__cr_manifest = cr_manifest
        self.__deploy_manager = deploy_manager
        self.__deadline = deadline
        self.__cancel_event = cancel_event

    ## Properties ##############################################################

    @property
    def id(self) -> str:  # pylint: disable=invalid-name
        """The unique reconciliation ID"""
        return self.__id

    @property
    def cr_manifest(self) -> aconfig.Config:
        """The full manifest of the owning resource"""
        return self.__cr_manifest

    @property
    def spec(self) -> aconfig.Config:
        return self.cr_manifest.get("spec", aconfig.Config({}))

    @property
    def metadata(self) -> aconfig.Config:
        return self.cr_manifest.metadata

    @property
    def kind(self) -> str:
        return self.cr_manifest.kind

    @property
    def api_version(self) -> str:
        return self.cr_manifest.apiVersion

    @property
    def name(self) -> str:
        """The metadata.name of the owning resource. This is also the name of
        every per-instance object and of the database itself.
        """
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def tier(self) -> Optional[str]:
        """The spec.tier used to select a strategy"""
        return self.spec.get(constants.SPEC_TIER)

    @property
    def deletion_timestamp(self) -> Optional[str]:
        return self.metadata.get("deletionTimestamp")

    @property
    def finalizers(self) -> List[str]:
        """The metadata.finalizers for the owning resource"""
        # Always a list held by the manifest so callers can append to it
        return self.metadata.setdefault("finalizers", [])

    @property
    def deploy_manager(self) -> DeployManagerBase:
        return self.__deploy_manager

    @property
    def deadline(self) -> Optional[float]:
        return self.__deadline

    ## Cancellation ############################################################

    def check_active(self, operation: str):
        """Raise OperationAborted if the caller cancelled the call or its
        deadline has passed. This is run before every external call.

        Args:
            operation:  str
                Description of the external call about to be made
        """
        if self.__cancel_event is not None and self.__cancel_event.is_set():
            log.info("Aborting [%s]: call cancelled", operation)
            raise OperationAborted(f"{operation} aborted: call was cancelled")
        if self.__deadline is not None and time.monotonic() >= self.__deadline:
            log.info("Aborting [%s]: deadline exceeded", operation)
            raise OperationAborted(f"{operation} aborted: deadline exceeded")

    ## Cluster Access ##########################################################

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = _OWN_NAMESPACE,
    ) -> Tuple[bool, Optional[dict]]:
        """Read one object through the deploy manager once the call is known
        to still be active

        Args:
            kind:  str
                Kind of the object
            name:  str
                metadata.name of the object
            api_version:  Optional[str]
                apiVersion of the kind
            namespace:  Optional[str]
                Where to look. Unless given, the requesting resource's
                namespace is used. None reads a cluster scoped object.

        Returns:
            success:  bool
                False if the read itself failed
            current_state:  Optional[dict]
                The object as the cluster holds it, None if it does not exist
        """
        if namespace is _OWN_NAMESPACE:
            namespace = self.namespace
        self.check_active(f"fetch {kind} {name}")
        return self.deploy_manager.get_object_current_state(
            kind=kind,
            name=name,
            namespace=namespace,
            api_version=api_version,
        )

    def deploy(
        self,
        resource_definitions: List[dict],
        manage_owner_references: bool = True,
        raise_on_failure: bool = False,
    ) -> Tuple[bool, bool]:
        """Write the given objects to the cluster through the deploy manager"""
        self.check_active(
            "persist "
            + ", ".join(
                f"{res.get('kind')} {res.get('metadata', {}).get('name')}"
                for res in resource_definitions
            )
        )
        return self.deploy_manager.deploy(
            resource_definitions,
            manage_owner_references=manage_owner_references,
            raise_on_failure=raise_on_failure,
        )

    ## Implementation Details ##################################################

    @staticmethod
    def _check_required_sections(cr_manifest: aconfig.Config):
        """The kube API guarantees these sections on every stored object, so a
        manifest without them did not come from the cluster
        """
        for path in _REQUIRED_CR_PATHS:
            section = cr_manifest
            for key in path:
                assert (
                    isinstance(section, dict) and key in section
                ), f"Resource manifest has no {'.'.join(path)}"
                section = section[key]


## Call Setup ##################################################################


def generate_id() -> str:
    """Generates a unique human readable id for a provisioning call

    Returns:
        id: str
            A unique base32 encoded id
    """
    call_id = base64.b32encode(uuid.uuid4().bytes).decode("utf-8")[:22]
    log.debug("New call id: %s", call_id)
    return call_id


def configure_logging(cr_manifest: aconfig.Config, reconciliation_id: str):
    """Configure the logging for a given call using annotation overrides on
    the owning resource

    Args:
        cr_manifest: aconfig.Config
            The resource to get annotation overrides from
        reconciliation_id: str
            The unique id for the call
    """
    # NOTE: Safe fetching since this may run before the CR is validated
    annotations = cr_manifest.get("metadata", {}).get("annotations", {})
    default_level = annotations.get(constants.LOG_DEFAULT_LEVEL_NAME, config.log_level)
    filters = annotations.get(constants.LOG_FILTERS_NAME, config.log_filters)
    log_json = annotations.get(constants.LOG_JSON_NAME, str(config.log_json))
    log_thread_id = annotations.get(
        constants.LOG_THREAD_ID_NAME, str(config.log_thread_id)
    )

    # Convert boolean args
    log_json = (log_json or "").lower() == "true"
    log_thread_id = (log_thread_id or "").lower() == "true"

    # Keep the old handler so that output keeps going to the same place
    handler_generator = None
    if logging.root.handlers:
        old_handler = logging.root.handlers[0]

        def handler_generator():
            return old_handler

    alog.configure(
        default_level=default_level,
        filters=filters,
        formatter=CloudResJsonFormatter(cr_manifest, reconciliation_id)
        if log_json
        else "pretty",
        thread_id=log_thread_id,
        handler_generator=handler_generator,
    )


def setup_deploy_manager(cr_manifest: aconfig.Config) -> DeployManagerBase:
    """Construct the deploy manager for a call based on the library config

    Args:
        cr_manifest: aconfig.Config
            The resource to be used as an owner reference

    Returns:
        deploy_manager: DeployManagerBase
            The deploy_manager to be used during the call
    """
    if config.dry_run:
        log.debug("Using DryRunDeployManager")
        return DryRunDeployManager(owner_cr=cr_manifest)

    log.debug("Using OpenshiftDeployManager")
    return OpenshiftDeployManager(owner_cr=cr_manifest)
