"""
Common utilities shared across the library
"""

# Standard
from typing import Any
import base64
import binascii
import copy

# First Party
import alog

# Local
from . import constants
from .exceptions import FinalizerUpdateFailed, OperationAborted

log = alog.use_channel("CRUTL")


# Forward declaration for Session
SESSION_TYPE = "Session"

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict from which the key will be read
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or None if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__:
            return dflt
        if not isinstance(dct, dict):
            intermediate = constants.NESTED_DICT_DELIM.join(parts[: i + 1])
            raise TypeError(f"Intermediate key {intermediate} is not a dict")
    return dct.get(parts[-1], dflt)


## Secrets #####################################################################


def b64_secret(val) -> str:
    """Encode a str or bytes value the way kubernetes stores Secret data"""
    if isinstance(val, str):
        val = val.encode("utf-8")
    return base64.b64encode(val).decode("utf-8")


def b64_secret_decode(val) -> bytes:
    """Decode a single Secret data value. Raises ValueError on invalid
    base64 content.
    """
    if isinstance(val, str):
        val = val.encode("utf-8")
    try:
        return base64.b64decode(val, validate=True)
    except binascii.Error as err:
        raise ValueError(f"Invalid base64 secret value: {err}") from err


## Finalizers ##################################################################


def add_finalizer(session: SESSION_TYPE, finalizer: str) -> bool:
    """This helper adds a finalizer to the resource that owns the current
    session and persists it

    Args:
        session:  Session
            The session for the current call
        finalizer: str
            The finalizer to be added

    Returns:
        added:  bool
            True if the finalizer was newly added, False if already present
    """
    if finalizer in session.finalizers:
        log.debug2("Finalizer [%s] already present", finalizer)
        return False

    log.debug("Adding finalizer: %s", finalizer)

    manifest = copy.deepcopy(dict(session.cr_manifest))
    manifest.setdefault("metadata", {}).setdefault("finalizers", []).append(finalizer)
    try:
        success, _ = session.deploy(
            [manifest],
            manage_owner_references=False,
            raise_on_failure=True,
        )
    except OperationAborted:
        raise
    except Exception as err:  # pylint: disable=broad-except
        raise FinalizerUpdateFailed(
            f"failed to add finalizer {finalizer} to instance {session.name}: {err}"
        ) from err
    if not success:
        raise FinalizerUpdateFailed(
            f"failed to add finalizer {finalizer} to instance {session.name}"
        )

    # Once successfully added to the cluster, add it to the session
    session.finalizers.append(finalizer)
    return True
