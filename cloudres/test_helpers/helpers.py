"""
Shared fixtures and fakes for testing code built on cloudres
"""

# Standard
from contextlib import contextmanager
from typing import Dict, Optional
from unittest import mock
import copy
import inspect
import json
import os
import uuid

# First Party
import aconfig
import alog

# Local
from cloudres.config import library_config as _library_config
from cloudres.deploy_manager.dry_run_deploy_manager import DryRunDeployManager
from cloudres.exceptions import ConfigUnavailable
from cloudres.session import Session
from cloudres.strategy import StrategyConfig, StrategyStore

log = alog.use_channel("TEST")


def configure_logging():
    """Set up logging from the LOG_* environment variables. Logging is off
    unless LOG_LEVEL is set.
    """
    alog.configure(
        default_level=os.environ.get("LOG_LEVEL", "off"),
        filters=os.environ.get("LOG_FILTERS", ""),
        formatter=(
            "json" if os.environ.get("LOG_JSON", "").lower() == "true" else "pretty"
        ),
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "db1"
TEST_INSTANCE_UID = "12345678-1234-1234-1234-123456789012"
TEST_NAMESPACE = "ns1"
SOME_OTHER_NAMESPACE = "somewhere"
TEST_TIER = "production"

## Requests and Sessions #######################################################


def setup_cr(
    kind="Postgres",
    api_version="integreatly.org/v1alpha1",
    name=TEST_INSTANCE_NAME,
    namespace=TEST_NAMESPACE,
    tier=TEST_TIER,
    **kwargs,
) -> aconfig.Config:
    """Build a resource request CR. Any extra top level sections are merged in
    underneath the generated identity.
    """
    manifest = dict(kwargs)
    manifest.setdefault("kind", kind)
    manifest.setdefault("apiVersion", api_version)
    metadata = manifest.setdefault("metadata", {})
    metadata.setdefault("name", name)
    metadata.setdefault("namespace", namespace)
    metadata.setdefault("uid", TEST_INSTANCE_UID)
    manifest.setdefault("spec", {}).setdefault("tier", tier)
    return aconfig.Config(manifest, override_env_vars=False)


def setup_session(
    full_cr=None,
    deploy_manager=None,
    namespace=TEST_NAMESPACE,
    deploy_initial_cr=True,
    **kwargs,
) -> Session:
    """Build a Session for a request. Unless a deploy manager is given, the
    request is served by a MockDeployManager that already holds the CR.
    """
    full_cr = full_cr or setup_cr(namespace=namespace)
    if deploy_manager is None:
        deploy_manager = MockDeployManager(
            resources=[full_cr] if deploy_initial_cr else None
        )
    return Session(
        reconciliation_id=str(uuid.uuid4()),
        cr_manifest=full_cr,
        deploy_manager=deploy_manager,
        **kwargs,
    )


@contextmanager
def library_config(**overrides):
    """Replace top level library config values for the duration of the
    context
    """
    missing = object()
    previous = {key: _library_config.get(key, missing) for key in overrides}
    for key, value in overrides.items():
        _library_config[key] = value
    try:
        yield
    finally:
        for key, value in previous.items():
            if value is missing:
                del _library_config[key]
            else:
                _library_config[key] = value


## Fakes #######################################################################


def get_failable_method(fail_flag, method, failure_return=False):
    """Wrap method so that it fails according to fail_flag

    Args:
        fail_flag:  Any
            An exception (class or instance) is raised. A callable is called
            first and its result is returned unless it is None. The string
            "assert" raises an AssertionError. Any other truthy value makes
            the call return failure_return without running method.
        method:  Callable
            The real implementation
        failure_return:  Any
            What a failed call returns

    Returns:
        failable_method:  Callable
            The wrapped method
    """
    raises = isinstance(fail_flag, Exception) or (
        inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
    )

    def failable_method(*args, **kwargs):
        if raises:
            raise fail_flag
        if fail_flag == "assert":
            raise AssertionError(f"Configured to fail {method.__name__}")
        if callable(fail_flag):
            result = fail_flag()
            if result is not None:
                return result
        elif fail_flag:
            log.debug3("Failing %s with %s", method.__name__, failure_return)
            return failure_return
        return method(*args, **kwargs)

    return failable_method


class MockDeployManager(DryRunDeployManager):
    """DryRunDeployManager whose public operations are mock.Mocks, so tests can
    inspect calls and make any operation fail or raise
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        deploy_fail=False,
        deploy_raise=False,
        get_state_fail=False,
        get_state_raise=False,
        set_status_fail=False,
        set_status_raise=False,
        resources=None,
        **kwargs,
    ):
        resources = resources or []
        for resource in resources:
            resource.setdefault("apiVersion", "v1")
        super().__init__(resources, **kwargs)

        self.deploy = mock.Mock(
            side_effect=get_failable_method(
                "assert" if deploy_raise else deploy_fail,
                super().deploy,
                (False, False),
            )
        )
        self.get_object_current_state = mock.Mock(
            side_effect=get_failable_method(
                "assert" if get_state_raise else get_state_fail,
                super().get_object_current_state,
                (False, None),
            )
        )
        self.set_status = mock.Mock(
            side_effect=get_failable_method(
                "assert" if set_status_raise else set_status_fail,
                super().set_status,
                (False, False),
            )
        )

    ## Direct cluster access that bypasses the mocks ###########################

    def get_obj(self, kind, name, namespace=None, api_version=None):
        return super().get_object_current_state(kind, name, namespace, api_version)[1]

    def set_deployment_available(self, name, namespace=TEST_NAMESPACE, status="True"):
        """Give a Deployment the Available condition the cluster reports once
        its pods are ready
        """
        return super().set_status(
            "Deployment",
            name,
            namespace,
            {"conditions": [{"type": "Available", "status": status}]},
            api_version="apps/v1",
        )


class StaticStrategyStore(StrategyStore):
    """Strategy store holding fixed strategies keyed by (resource type, tier).
    A dict or list strategy is JSON encoded, bytes are returned as they are.
    """

    def __init__(self, strategies: Optional[Dict[tuple, object]] = None):
        self.strategies = strategies or {}
        self.reads = []

    def read_strategy(self, resource_type, tier, namespace=None):
        self.reads.append((resource_type, tier, namespace))
        if (resource_type, tier) not in self.strategies:
            raise ConfigUnavailable(f"no strategy for {resource_type}/{tier}")
        strategy = self.strategies[(resource_type, tier)]
        if isinstance(strategy, (dict, list)):
            strategy = json.dumps(strategy).encode("utf-8")
        return StrategyConfig(region="", raw_strategy=copy.deepcopy(strategy))


def make_strategy_config_map(
    strategies: Dict[str, dict],
    name: str = "cloud-resources-openshift-strategies",
    namespace: str = TEST_NAMESPACE,
) -> dict:
    """Build a strategy ConfigMap from resource type -> {tier: entry}"""
    return {
        "kind": "ConfigMap",
        "apiVersion": "v1",
        "metadata": {"name": name, "namespace": namespace},
        "data": {
            resource_type: json.dumps(tiers)
            for resource_type, tiers in strategies.items()
        },
    }
