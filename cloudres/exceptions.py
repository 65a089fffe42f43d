"""
This module implements custom exceptions
"""

# Standard
from typing import Optional

## Base Error ##################################################################


class CloudResError(Exception):
    """Base class for all cloudres exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should end the current
        provisioning call without any expectation that the same call will
        resolve it on its own
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class CloudResFatalError(CloudResError):
    """A CloudResFatalError is one that indicates an unexpected failure during a
    provisioning call. The caller decides whether and when to call again.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigUnavailable(CloudResFatalError):
    """Exception raised when the strategy store cannot provide a strategy for
    the requested resource type and tier
    """


class ConfigMalformed(CloudResFatalError):
    """Exception raised when a strategy document cannot be decoded"""


class ClusterError(CloudResFatalError):
    """Exception caused when a cluster operation fails in an unexpected way"""


class ObjectApplyFailed(CloudResFatalError):
    """Exception indicating that a managed object could not be persisted"""

    def __init__(
        self,
        kind: str,
        name: str,
        action: Optional[str] = None,
        message: str = "",
    ):
        self.kind = kind
        self.name = name
        self.action = action
        message = message or f"failed to create or update {kind} {name}"
        if action is not None:
            message = f"{message}, action was {action}"
        super().__init__(message)


class FinalizerUpdateFailed(CloudResFatalError):
    """Exception indicating that the deletion-protection finalizer could not be
    registered on the owning resource
    """


## Expected Errors #############################################################


class CloudResExpectedError(CloudResError):
    """A CloudResExpectedError is one that indicates an expected failure
    condition that should cause a provisioning call to terminate, but is
    expected to resolve in a subsequent call.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class OperationAborted(CloudResExpectedError):
    """Exception raised when the caller cancels a call or its deadline passes"""


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigMalformed. This should
    be used when decoding a strategy document which requires that certain
    conditions be true.
    """
    if not condition:
        raise ConfigMalformed(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ClusterError. This should
    be used when an operation in the cluster (such as fetching an existing
    secret) must succeed.
    """
    if not condition:
        raise ClusterError(message)
