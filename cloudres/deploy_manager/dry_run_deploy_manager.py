"""
In-memory stand-in for a cluster. Objects live in a nested map keyed by
namespace, kind, apiVersion and name, and every write is recorded so that
tests can check what was written and in which order.
"""

# Standard
from datetime import datetime
from threading import RLock
from typing import List, Optional, Tuple
import copy
import random
import uuid

# First Party
import alog

# Local
from ..exceptions import ClusterError
from .base import DeployManagerBase
from .owner_references import update_owner_references

log = alog.use_channel("DRYRN")

# Metadata fields that the cluster assigns and that never count as a change
_SYSTEM_METADATA_FIELDS = ["resourceVersion", "uid", "creationTimestamp"]


class DryRunDeployManager(DeployManagerBase):
    """Deploy manager that keeps the whole cluster in memory"""

    def __init__(
        self,
        resources: Optional[List[dict]] = None,
        owner_cr: Optional[dict] = None,
        strict_resource_version: bool = False,
        generate_resource_version: bool = True,
    ):
        """
        Args:
            resources:  Optional[List[dict]]
                Objects that are present in the cluster before any call
            owner_cr:  Optional[dict]
                If given, deployed objects get an ownerReference to this CR
            strict_resource_version:  bool
                If true, a deploy carrying a resourceVersion that does not match
                the stored one is rejected as a conflict
            generate_resource_version:  bool
                If true, a new resourceVersion is generated on every change
        """
        self._owner_cr = owner_cr
        self._objects = {}
        self._lock = RLock()
        self.strict_resource_version = strict_resource_version
        self.generate_resource_version = generate_resource_version

        # Ordered (kind, namespace, name) of every write made through deploy
        self.deploy_log = []

        # Seed the provided resources as-is, including any status
        self._store_all(
            copy.deepcopy(resources or []),
            manage_owner_references=False,
            keep_status=False,
        )

    ## Interface ###############################################################

    def deploy(
        self,
        resource_definitions,
        manage_owner_references=True,
        raise_on_failure=False,
        **_,
    ):
        log.info("DRY RUN writing %d object(s)", len(resource_definitions))
        try:
            return self._store_all(
                copy.deepcopy(resource_definitions),
                manage_owner_references=manage_owner_references,
                record=True,
            )
        except ClusterError as err:
            log.warning("DRY RUN write failed: %s", err)
            if raise_on_failure:
                raise
            return False, False

    def get_object_current_state(self, kind, name, namespace=None, api_version=None):
        log.info("DRY RUN read %s/%s in [%s]", kind, name, namespace)
        found = self._lookup(kind, name, namespace, api_version)
        return True, copy.deepcopy(found)

    def set_status(
        self,
        kind,
        name,
        namespace,
        status,
        api_version=None,
    ):  # pylint: disable=too-many-arguments
        log.info("DRY RUN status of %s/%s in [%s]: %s", kind, name, namespace, status)
        with self._lock:
            found = copy.deepcopy(self._lookup(kind, name, namespace, api_version))
            if found is None:
                log.debug("%s/%s not present in [%s]", kind, name, namespace)
                return False, False
            changed = found.get("status") != status
            found["status"] = status
            found["metadata"].pop("resourceVersion", None)
            self._store_all([found], manage_owner_references=False, keep_status=False)
        return True, changed

    ## Implementation Details ##################################################

    def _lookup(
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        api_version: Optional[str],
    ) -> Optional[dict]:
        """Find the stored object. Without an api_version the name has to be
        unique across all versions of the kind.
        """
        by_version = self._objects.get(namespace, {}).get(kind, {})
        matches = [
            entries[name]
            for version, entries in by_version.items()
            if name in entries and api_version in (None, version)
        ]
        log.debug3("%d stored match(es) for %s/%s", len(matches), kind, name)
        return matches[0] if len(matches) == 1 else None

    @staticmethod
    def _strip_system_fields(resource: dict) -> dict:
        resource = copy.deepcopy(resource)
        for field in _SYSTEM_METADATA_FIELDS:
            resource.get("metadata", {}).pop(field, None)
        return resource

    def _store_all(
        self,
        resource_definitions: List[dict],
        manage_owner_references: bool = True,
        keep_status: bool = True,
        record: bool = False,
    ) -> Tuple[bool, bool]:
        changes = False
        for resource in resource_definitions:
            if manage_owner_references and self._owner_cr:
                update_owner_references(self, self._owner_cr, resource)
            with self._lock:
                changes = self._store(resource, keep_status) or changes
                if record:
                    metadata = resource["metadata"]
                    self.deploy_log.append(
                        (
                            resource.get("kind"),
                            metadata.get("namespace"),
                            metadata.get("name"),
                        )
                    )
        return True, changes

    def _store(self, resource: dict, keep_status: bool) -> bool:
        """Put one object into the cluster map and report whether it changed"""
        kind = resource.get("kind")
        api_version = resource.get("apiVersion")
        metadata = resource.setdefault("metadata", {})
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        log.debug2("DRY RUN storing %s/%s in [%s]", kind, name, namespace)
        log.debug4(resource)

        entries = (
            self._objects.setdefault(namespace, {})
            .setdefault(kind, {})
            .setdefault(api_version, {})
        )
        current = entries.get(name)

        if current is None:
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata.setdefault(
                "creationTimestamp", datetime.now().strftime("%Y-%m-%dT%H:%M:%SZ")
            )
        else:
            current_metadata = current.get("metadata", {})
            stored_version = current_metadata.get("resourceVersion")
            given_version = metadata.get("resourceVersion")
            if (
                self.strict_resource_version
                and stored_version
                and given_version
                and stored_version != given_version
            ):
                raise ClusterError(
                    f"Conflict deploying {kind}/{name}: resourceVersion "
                    f"{given_version} is out of date"
                )

            # Identity fields are owned by the cluster
            for field in ["uid", "creationTimestamp"]:
                if field in current_metadata:
                    metadata[field] = current_metadata[field]

            # Status is a subresource and is not written by deploy
            if keep_status:
                resource.pop("status", None)
                if "status" in current:
                    resource["status"] = copy.deepcopy(current["status"])

        changed = current is None or self._strip_system_fields(
            current
        ) != self._strip_system_fields(resource)
        if not changed:
            log.debug2("No change for %s/%s", kind, name)
            metadata["resourceVersion"] = current["metadata"].get("resourceVersion")
        elif self.generate_resource_version:
            metadata["resourceVersion"] = str(random.randint(1, 100000)).zfill(6)
        entries[name] = resource
        return changed
