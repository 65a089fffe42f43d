"""
Tests for attaching the owning CR to provisioned objects
"""

# Standard
import copy

# Third Party
import pytest

# Local
from cloudres.deploy_manager.owner_references import (
    _make_owner_reference,
    update_owner_references,
)
from cloudres.exceptions import ClusterError
from cloudres.test_helpers.helpers import (
    SOME_OTHER_NAMESPACE,
    TEST_INSTANCE_UID,
    TEST_NAMESPACE,
    MockDeployManager,
    setup_cr,
)

## Helpers #####################################################################

OWNER = setup_cr()


def make_secret(namespace=TEST_NAMESPACE, uid="54321"):
    return {
        "kind": "Secret",
        "apiVersion": "v1",
        "metadata": {"name": "db1", "namespace": namespace, "uid": uid},
        "data": {},
    }


def drop_key(obj, key):
    obj = copy.deepcopy(obj)
    parts = key.split(".")
    dct = obj
    for part in parts[:-1]:
        dct = dct[part]
    del dct[parts[-1]]
    return obj


REQUIRED_KEYS = ["kind", "apiVersion", "metadata.name", "metadata.namespace"]

## update_owner_references #####################################################


def test_add_owner_ref():
    """Make sure a child without references gets one for the CR"""
    child = make_secret()
    update_owner_references(MockDeployManager(), OWNER, child)
    assert child["metadata"]["ownerReferences"] == [_make_owner_reference(OWNER)]


def test_other_namespace_not_referenced():
    """Make sure no cross-namespace reference is written"""
    child = make_secret(namespace=SOME_OTHER_NAMESPACE)
    update_owner_references(MockDeployManager(), OWNER, child)
    assert child["metadata"]["ownerReferences"] == []


def test_existing_ref_not_duplicated():
    """Make sure a reference already held by the cluster copy is not repeated"""
    current = make_secret()
    current["metadata"]["ownerReferences"] = [_make_owner_reference(OWNER)]
    dm = MockDeployManager(resources=[current])
    child = make_secret()
    update_owner_references(dm, OWNER, child)
    assert child["metadata"]["ownerReferences"] == [_make_owner_reference(OWNER)]


def test_other_owners_kept():
    """Make sure references to other owners on the cluster copy survive"""
    other_owner = setup_cr(name="db-other")
    other_owner["metadata"]["uid"] = "67890"
    current = make_secret()
    current["metadata"]["ownerReferences"] = [_make_owner_reference(other_owner)]
    dm = MockDeployManager(resources=[current])
    child = make_secret()
    update_owner_references(dm, OWNER, child)
    assert child["metadata"]["ownerReferences"] == [
        _make_owner_reference(other_owner),
        _make_owner_reference(OWNER),
    ]


def test_self_reference_skipped():
    """Make sure the CR is never made its own owner"""
    child = make_secret(uid=TEST_INSTANCE_UID)
    update_owner_references(MockDeployManager(), OWNER, child)
    assert "ownerReferences" not in child["metadata"]


@pytest.mark.parametrize("key", REQUIRED_KEYS)
def test_owner_missing_keys(key):
    """Make sure an owner without its identity is a programming error"""
    with pytest.raises(AssertionError):
        update_owner_references(
            MockDeployManager(), drop_key(OWNER, key), make_secret()
        )


@pytest.mark.parametrize("key", REQUIRED_KEYS)
def test_child_missing_keys(key):
    """Make sure a child without its identity is a programming error"""
    with pytest.raises(AssertionError):
        update_owner_references(
            MockDeployManager(), OWNER, drop_key(make_secret(), key)
        )


def test_lookup_failure():
    """Make sure a failed lookup of the child is a ClusterError"""
    with pytest.raises(ClusterError):
        update_owner_references(
            MockDeployManager(get_state_fail=True), OWNER, make_secret()
        )


## _make_owner_reference #######################################################


def test_make_owner_reference():
    """Make sure the reference names the CR and blocks its deletion"""
    assert _make_owner_reference(OWNER) == {
        "apiVersion": "integreatly.org/v1alpha1",
        "kind": "Postgres",
        "name": "db1",
        "uid": TEST_INSTANCE_UID,
        "blockOwnerDeletion": True,
    }
