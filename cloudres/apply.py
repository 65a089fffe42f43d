"""
Idempotent create-or-update of a single managed object
"""

# Standard
from enum import Enum
from typing import Callable
import copy

# First Party
import alog

# Local
from .exceptions import ObjectApplyFailed, OperationAborted
from .managed_object import ManagedObject

log = alog.use_channel("APPLY")

# Forward declaration for Session
SESSION_TYPE = "Session"

# Signature of the function that writes the provider-owned field onto an object
MUTATE_FUNCTION = Callable[[ManagedObject], None]


class OperationResult(Enum):
    """What create_or_update did to the object"""

    NONE = "unchanged"
    CREATED = "created"
    UPDATED = "updated"


def create_or_update(
    session: SESSION_TYPE,
    desired: ManagedObject,
    mutate_fn: MUTATE_FUNCTION,
) -> OperationResult:
    """Make sure the object identified by desired exists and that mutate_fn's
    view of it is persisted.

    If the object does not exist, mutate_fn is applied to desired and the
    result is created. If it exists, mutate_fn is applied to the fetched
    object so that system fields (uid, resourceVersion, status, ...) are kept,
    and the result is only persisted if the mutation changed anything.

    Args:
        session:  Session
            The session for the current call
        desired:  ManagedObject
            Object carrying the identity (and default content) to reconcile
        mutate_fn:  Callable[[ManagedObject], None]
            In-place mutation that writes the provider-owned field

    Returns:
        result:  OperationResult
            NONE, CREATED or UPDATED

    Raises:
        ObjectApplyFailed:  If the fetch, mutation or persist fails. The
            original error is the cause.
        OperationAborted:  If the call is cancelled before an external call
    """
    kind, name = desired.kind, desired.name
    action = OperationResult.NONE
    try:
        current = type(desired).fetch(session, name, desired.namespace)
        if current is None:
            log.debug2("%s/%s not found. Creating", kind, name)
            target = desired
            action = OperationResult.CREATED
        else:
            target = current
            action = OperationResult.UPDATED

        before = copy.deepcopy(target.definition)
        _mutate(target, mutate_fn)

        if action is OperationResult.UPDATED and target.definition == before:
            log.debug("%s/%s is up to date", kind, name)
            return OperationResult.NONE

        log.debug3("Persisting %s", target.definition)
        success, _ = session.deploy(
            [target.definition],
            raise_on_failure=True,
        )
        if not success:
            raise ObjectApplyFailed(kind, name, action.value)

    except (ObjectApplyFailed, OperationAborted):
        raise
    except Exception as err:  # pylint: disable=broad-except
        log.warning("Failed to create or update %s/%s: %s", kind, name, err)
        raise ObjectApplyFailed(kind, name, action.value) from err

    log.info("%s %s %s", kind, name, action.value)
    return action


def _mutate(target: ManagedObject, mutate_fn: MUTATE_FUNCTION):
    """Run the mutation and make sure it did not move the object"""
    identity = target.identity
    mutate_fn(target)
    if target.identity != identity:
        raise ValueError(
            f"Mutation cannot change the identity of {identity} to {target.identity}"
        )
