"""
Tests for the exception types and assertion helpers
"""

# Third Party
import pytest

# Local
from cloudres.exceptions import (
    ClusterError,
    CloudResExpectedError,
    CloudResFatalError,
    ConfigMalformed,
    ConfigUnavailable,
    FinalizerUpdateFailed,
    ObjectApplyFailed,
    OperationAborted,
    assert_cluster,
    assert_config,
)


@pytest.mark.parametrize(
    "exc_class",
    [ConfigUnavailable, ConfigMalformed, ClusterError, FinalizerUpdateFailed],
)
def test_fatal_errors(exc_class):
    """Make sure the fatal errors are marked as fatal"""
    err = exc_class("oops")
    assert isinstance(err, CloudResFatalError)
    assert err.is_fatal_error
    assert str(err) == "oops"


def test_operation_aborted_not_fatal():
    """Make sure a cancelled call is expected to resolve on a later call"""
    err = OperationAborted("cancelled")
    assert isinstance(err, CloudResExpectedError)
    assert not err.is_fatal_error


def test_object_apply_failed_message():
    """Make sure the kind, name and action are carried on the error"""
    err = ObjectApplyFailed("Deployment", "db1", "created")
    assert err.is_fatal_error
    assert err.kind == "Deployment"
    assert err.name == "db1"
    assert err.action == "created"
    assert str(err) == "failed to create or update Deployment db1, action was created"


def test_object_apply_failed_no_action():
    """Make sure the action is optional"""
    err = ObjectApplyFailed("Service", "db1")
    assert str(err) == "failed to create or update Service db1"
    assert err.action is None


def test_assert_config():
    """Make sure assert_config raises ConfigMalformed only on a false
    condition
    """
    assert_config(True, "fine")
    with pytest.raises(ConfigMalformed):
        assert_config(False, "not fine")


def test_assert_cluster():
    """Make sure assert_cluster raises ClusterError only on a false condition"""
    assert_cluster(True, "fine")
    with pytest.raises(ClusterError):
        assert_cluster(False, "not fine")
