"""
Objects created for a resource request are owned by the request's CR so that
the cluster garbage collects them with it. The deploy managers use this module
to attach that ownership before writing.
"""

# First Party
import alog

# Local
from ..exceptions import assert_cluster
from .base import DeployManagerBase

log = alog.use_channel("OWNRF")

# Fields every object must carry for an ownership link to be made
_REQUIRED_PATHS = [
    ("kind",),
    ("apiVersion",),
    ("metadata", "name"),
    ("metadata", "namespace"),
]


def update_owner_references(
    deploy_manager: DeployManagerBase,
    owner_cr: dict,
    child_obj: dict,
):
    """Set the child's ownerReferences to those it already has in the cluster
    plus one for owner_cr. Ownership can't cross namespaces, so a child in
    another namespace only keeps its existing references.
    """
    _validate_object_struct(owner_cr)
    _validate_object_struct(child_obj)

    child_meta = child_obj["metadata"]
    current_meta = _current_metadata(deploy_manager, child_obj)
    existing = list(current_meta.get("ownerReferences") or [])
    owner_uid = owner_cr["metadata"].get("uid")
    child_uid = child_meta.get("uid") or current_meta.get("uid")

    if owner_uid is not None and owner_uid == child_uid:
        log.debug2("Not referencing %s from itself", child_meta["name"])
        return

    same_namespace = child_meta["namespace"] == owner_cr["metadata"]["namespace"]
    already_owned = any(ref.get("uid") == owner_uid for ref in existing)
    if same_namespace and not already_owned:
        log.debug2(
            "Referencing owner %s from %s/%s",
            owner_cr["metadata"]["name"],
            child_obj["kind"],
            child_meta["name"],
        )
        existing.append(_make_owner_reference(owner_cr))

    log.debug4("ownerReferences for %s: %s", child_meta["name"], existing)
    child_meta["ownerReferences"] = existing


## Implementation Details ######################################################


def _current_metadata(deploy_manager: DeployManagerBase, child_obj: dict) -> dict:
    """Read the child's metadata as it is in the cluster. A child that does
    not exist yet has empty metadata.
    """
    kind = child_obj["kind"]
    api_version = child_obj["apiVersion"]
    name = child_obj["metadata"]["name"]
    success, content = deploy_manager.get_object_current_state(
        kind=kind,
        name=name,
        api_version=api_version,
        namespace=child_obj["metadata"]["namespace"],
    )
    assert_cluster(
        success, f"Failed to read ownerReferences of {api_version}.{kind}/{name}"
    )
    return (content or {}).get("metadata") or {}


def _validate_object_struct(obj: dict):
    """Make sure the object has a kind, apiVersion, name and namespace"""
    for path in _REQUIRED_PATHS:
        value = obj
        for part in path:
            assert isinstance(value, dict) and part in value, (
                f"Object is missing '{'.'.join(path)}'"
            )
            value = value[part]


def _make_owner_reference(owner_cr: dict) -> dict:
    """Build the ownerReferences entry pointing at owner_cr. The CR is not
    marked as the controller, so other owners can reference the same object.
    """
    metadata = owner_cr.get("metadata", {})
    return {
        "apiVersion": owner_cr.get("apiVersion"),
        "kind": owner_cr.get("kind"),
        "name": metadata.get("name"),
        "uid": metadata.get("uid"),
        "blockOwnerDeletion": True,
    }
