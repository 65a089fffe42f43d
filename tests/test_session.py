"""
Tests for all functionality of the Session object
"""

# Standard
from unittest import mock
import threading
import time

# Third Party
import pytest

# First Party
import aconfig

# Local
from cloudres import config, constants
from cloudres.deploy_manager import DryRunDeployManager, OpenshiftDeployManager
from cloudres.exceptions import OperationAborted
from cloudres.log_format import CloudResJsonFormatter
from cloudres.session import (
    Session,
    configure_logging,
    generate_id,
    setup_deploy_manager,
)
from cloudres.test_helpers.helpers import (
    TEST_NAMESPACE,
    MockDeployManager,
    library_config,
    setup_cr,
    setup_session,
)

################
## Properties ##
################


def test_constructed_properties():
    """Make sure all properties derived from the constructor args are populated
    correctly
    """
    rec_id = "1ab"
    cr = setup_cr()
    dm = MockDeployManager()
    session = Session(rec_id, cr, dm, deadline=12.5)
    assert session.id == rec_id
    assert session.cr_manifest == cr
    assert session.deploy_manager == dm
    assert session.deadline == 12.5


def test_cr_properties():
    """Make sure all properties derived from the CR manifest are populated
    correctly
    """
    cr = setup_cr(
        name="db2",
        namespace="ns2",
        tier="development",
        metadata={"deletionTimestamp": "2020-01-01T00:00:00Z"},
    )
    session = setup_session(full_cr=cr)
    assert session.name == "db2"
    assert session.namespace == "ns2"
    assert session.tier == "development"
    assert session.kind == "Postgres"
    assert session.api_version == "integreatly.org/v1alpha1"
    assert session.deletion_timestamp == "2020-01-01T00:00:00Z"
    assert session.finalizers == []


def test_cr_dict_converted():
    """Make sure a plain dict manifest is converted to a Config"""
    session = Session("1ab", dict(setup_cr()), MockDeployManager())
    assert isinstance(session.cr_manifest, aconfig.Config)


@pytest.mark.parametrize(
    "field",
    [["kind"], ["apiVersion"], ["metadata"], ["metadata", "name"]],
)
def test_invalid_cr(field):
    """Make sure a manifest missing required fields is rejected"""
    cr = dict(setup_cr())
    cr["metadata"] = dict(cr["metadata"])
    if len(field) == 1:
        del cr[field[0]]
    else:
        del cr[field[0]][field[1]]
    with pytest.raises(AssertionError):
        Session("1ab", cr, MockDeployManager())


##################
## Cancellation ##
##################


def test_check_active_no_limits():
    """Make sure a session without deadline or cancel event is always active"""
    setup_session().check_active("anything")


def test_check_active_cancelled():
    """Make sure a set cancel event aborts the call"""
    event = threading.Event()
    session = setup_session(cancel_event=event)
    session.check_active("before cancel")
    event.set()
    with pytest.raises(OperationAborted):
        session.check_active("after cancel")


def test_check_active_deadline():
    """Make sure a passed deadline aborts the call"""
    session = setup_session(deadline=time.monotonic() + 3600)
    session.check_active("before deadline")
    session = setup_session(deadline=time.monotonic() - 1)
    with pytest.raises(OperationAborted):
        session.check_active("after deadline")


def test_aborted_session_makes_no_cluster_calls():
    """Make sure the cluster wrappers check the session before any call"""
    dm = MockDeployManager()
    event = threading.Event()
    event.set()
    session = setup_session(deploy_manager=dm, cancel_event=event)
    with pytest.raises(OperationAborted):
        session.get_object_current_state("ConfigMap", "foo", api_version="v1")
    with pytest.raises(OperationAborted):
        session.deploy([setup_cr()])
    assert not dm.get_object_current_state.called
    assert not dm.deploy.called


####################
## Cluster Access ##
####################


def test_get_object_current_state_default_namespace():
    """Make sure fetches default to the session namespace"""
    dm = MockDeployManager()
    session = setup_session(deploy_manager=dm)
    session.get_object_current_state("ConfigMap", "foo", api_version="v1")
    dm.get_object_current_state.assert_called_once_with(
        kind="ConfigMap", name="foo", namespace=TEST_NAMESPACE, api_version="v1"
    )


def test_get_object_current_state_other_namespace():
    """Make sure an explicit namespace is passed through"""
    dm = MockDeployManager()
    session = setup_session(deploy_manager=dm)
    session.get_object_current_state(
        "ConfigMap", "foo", api_version="v1", namespace="other"
    )
    assert dm.get_object_current_state.call_args[1]["namespace"] == "other"


def test_deploy_passthrough():
    """Make sure deploy passes its flags through to the deploy manager"""
    dm = MockDeployManager()
    session = setup_session(deploy_manager=dm)
    obj = {
        "kind": "ConfigMap",
        "apiVersion": "v1",
        "metadata": {"name": "foo", "namespace": TEST_NAMESPACE},
    }
    assert session.deploy([obj], raise_on_failure=True) == (True, True)
    dm.deploy.assert_called_once_with(
        [obj], manage_owner_references=True, raise_on_failure=True
    )


################
## Call Setup ##
################


def test_generate_id():
    """Make sure ids are short and unique"""
    first = generate_id()
    assert len(first) == 22
    assert first != generate_id()


def test_setup_deploy_manager():
    """Make sure the dry_run config selects the deploy manager"""
    cr = setup_cr()
    with library_config(dry_run=True):
        assert isinstance(setup_deploy_manager(cr), DryRunDeployManager)
    assert isinstance(setup_deploy_manager(cr), OpenshiftDeployManager)


def test_configure_logging_annotations():
    """Make sure logging annotations on the resource override the library
    config
    """
    cr = setup_cr(
        metadata={
            "annotations": {
                constants.LOG_DEFAULT_LEVEL_NAME: "debug",
                constants.LOG_FILTERS_NAME: "SESSION:debug4",
                constants.LOG_JSON_NAME: "true",
                constants.LOG_THREAD_ID_NAME: "false",
            }
        }
    )
    with mock.patch("alog.configure") as configure_mock:
        configure_logging(cr, "1ab")
    kwargs = configure_mock.call_args[1]
    assert kwargs["default_level"] == "debug"
    assert kwargs["filters"] == "SESSION:debug4"
    assert isinstance(kwargs["formatter"], CloudResJsonFormatter)
    assert kwargs["formatter"].reconciliation_id == "1ab"
    assert kwargs["thread_id"] is False


def test_configure_logging_defaults():
    """Make sure the library config is used without annotations"""
    with mock.patch("alog.configure") as configure_mock:
        configure_logging(setup_cr(), "1ab")
    kwargs = configure_mock.call_args[1]
    assert kwargs["formatter"] == "pretty"
    assert kwargs["default_level"] == config.log_level
    assert kwargs["filters"] == config.log_filters
