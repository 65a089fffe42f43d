"""
Live cluster access through the openshift DynamicClient. Objects are created
with POST and updated with a full PUT that carries the resourceVersion that
was read, so a concurrent writer turns into a conflict instead of a lost
update.
"""

# Standard
from typing import Iterable, List, Optional, Tuple
import copy

# Third Party
from openshift.dynamic import DynamicClient
from openshift.dynamic.apply import LAST_APPLIED_CONFIG_ANNOTATION, recursive_diff
from openshift.dynamic.exceptions import (
    ForbiddenError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes

# First Party
import alog

# Local
from ..exceptions import assert_cluster
from .base import DeployManagerBase
from .owner_references import update_owner_references

log = alog.use_channel("OSFTD")

# Field manager recorded on every write
FIELD_MANAGER = "cloudres"

# Metadata the server rewrites on every write. It never counts as a change.
_SERVER_METADATA = [
    "resourceVersion",
    "generation",
    "managedFields",
    "uid",
    "creationTimestamp",
]


class OpenshiftDeployManager(DeployManagerBase):
    """Deploy manager backed by a live cluster"""

    def __init__(self, owner_cr: Optional[dict] = None, client=None):
        """
        Args:
            owner_cr:  Optional[dict]
                When given, every object this manager writes is owned by this
                CR
            client:  Optional[DynamicClient]
                The client to use. By default one is built on first use from
                the in-cluster service account, or from the local kubeconfig
                when running outside of a cluster.
        """
        self._owner_cr = owner_cr
        self._client = client

    @property
    def client(self) -> DynamicClient:
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    ## Interface ###############################################################

    @alog.logged_function(log.debug)
    def deploy(
        self,
        resource_definitions: List[dict],
        manage_owner_references: bool = True,
        raise_on_failure: bool = False,
        **_,
    ) -> Tuple[bool, bool]:
        """Write each manifest in order. A conflict on a stale resourceVersion
        is a failure like any other; it is not retried here.
        """
        assert isinstance(resource_definitions, list), "Deploy takes a list"

        # Never mutate the caller's manifests
        manifests = copy.deepcopy(resource_definitions)
        self._strip_last_applied(manifests)

        changed = False
        for manifest in manifests:
            try:
                if manage_owner_references and self._owner_cr:
                    update_owner_references(self, self._owner_cr, manifest)
                changed = self._apply(manifest) or changed
            except Exception as err:  # pylint: disable=broad-except
                log.warning(
                    "Writing %s/%s failed: %s",
                    manifest.get("kind"),
                    manifest.get("metadata", {}).get("name"),
                    err,
                    exc_info=True,
                )
                if raise_on_failure:
                    raise
                return False, changed
        return True, changed

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, Optional[dict]]:
        handle = self._get_resource_handle(kind, api_version, namespace)
        if handle is None:
            return True, None
        try:
            return True, handle.get(name=name, namespace=namespace).to_dict()
        except ForbiddenError:
            log.debug("Not allowed to read %s in namespace [%s]", kind, namespace)
            return False, None
        except NotFoundError:
            log.debug3("%s/%s does not exist in [%s]", kind, name, namespace)
            return True, None

    def set_status(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        status: dict,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, bool]:
        handle = self._get_resource_handle(kind, api_version, namespace)
        if handle is None:
            return False, False
        try:
            current = handle.get(name=name, namespace=namespace).to_dict()
            if current.get("status") == status:
                log.debug2("Status of %s/%s is unchanged", kind, name)
                return True, False
            current["status"] = status
            handle.status.replace(body=current)
        except Exception as err:  # pylint: disable=broad-except
            log.warning(
                "Writing the status of %s/%s failed: %s",
                kind,
                name,
                err,
                exc_info=True,
            )
            return False, False
        log.debug2("Wrote the status of %s/%s in [%s]", kind, name, namespace)
        return True, True

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client() -> DynamicClient:
        try:
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            log.debug("Using the in-cluster service account")
            return DynamicClient(kubernetes.client.ApiClient(kube_config))
        except kubernetes.config.ConfigException:
            log.debug("Not in a cluster. Using the local kubeconfig")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(
        self,
        kind: str,
        api_version: Optional[str],
        namespace: Optional[str] = None,
    ) -> Optional[Resource]:
        """Find the API resource serving kind, or None if the cluster serves
        no single match
        """
        try:
            handle = self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError) as err:
            log.debug("No unique API resource for %s %s: %s", api_version, kind, err)
            return None
        if not namespace:
            handle.namespaced = False
        return handle

    @staticmethod
    def _strip_last_applied(manifests: Iterable[dict]):
        """Drop the client-side apply annotation, which this manager never
        maintains
        """
        for manifest in manifests:
            annotations = manifest.get("metadata", {}).get("annotations") or {}
            if annotations.pop(LAST_APPLIED_CONFIG_ANNOTATION, None) is not None:
                log.debug3("Dropped %s", LAST_APPLIED_CONFIG_ANNOTATION)
                if not annotations:
                    del manifest["metadata"]["annotations"]

    @classmethod
    def _comparable(cls, manifest: dict) -> dict:
        manifest = copy.deepcopy(manifest)
        metadata = manifest.get("metadata", {})
        for field in _SERVER_METADATA:
            metadata.pop(field, None)
        manifest.pop("status", None)
        cls._strip_last_applied([manifest])
        return manifest

    @classmethod
    def _manifest_diff(cls, manifest_a: dict, manifest_b: dict) -> bool:
        """True if the manifests differ in anything but server owned fields"""
        diff = recursive_diff(cls._comparable(manifest_a), cls._comparable(manifest_b))
        return bool(diff)

    def _apply(self, manifest: dict) -> bool:
        """Create or replace one object

        Args:
            manifest:  dict
                The full manifest to write

        Returns:
            changed:  bool
                Whether the object in the cluster changed
        """
        kind = manifest.get("kind")
        api_version = manifest.get("apiVersion")
        metadata = manifest.get("metadata", {})
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        assert kind and api_version and name, "Manifest needs kind, apiVersion, name"

        success, current = self.get_object_current_state(
            kind=kind, name=name, namespace=namespace, api_version=api_version
        )
        assert_cluster(success, f"Failed to read {api_version}.{kind}/{name}")
        if current is not None and not self._manifest_diff(current, manifest):
            log.debug2("%s/%s is unchanged", kind, name)
            return False

        handle = self._get_resource_handle(kind, api_version, namespace)
        assert_cluster(handle is not None, f"No API resource for {api_version}.{kind}")

        # managedFields belong to the server
        metadata.pop("managedFields", None)
        if current is None:
            log.debug2("POST %s/%s in [%s]", kind, name, namespace)
            handle.create(
                body=manifest, namespace=namespace, field_manager=FIELD_MANAGER
            )
            return True

        log.debug2("PUT %s/%s in [%s]", kind, name, namespace)
        written = handle.replace(
            body=manifest, name=name, namespace=namespace, field_manager=FIELD_MANAGER
        ).to_dict()
        return self._manifest_diff(current, written)
