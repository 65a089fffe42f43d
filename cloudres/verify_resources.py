"""
Helpers for reading the readiness conditions of objects in the cluster
"""

# Standard
from typing import List, Optional

# First Party
import alog

log = alog.use_channel("VERIF")

AVAILABLE_CONDITION_KEY = "Available"


def get_conditions(object_state: Optional[dict], type_val: str) -> List[dict]:
    """Get the list of conditions of the given type from an object state"""
    status = (object_state or {}).get("status") or {}
    return [
        cond for cond in status.get("conditions") or [] if cond.get("type") == type_val
    ]


def check_condition(
    condition: dict, expected_status: bool, expected_reason: Optional[str] = None
) -> bool:
    """Check that a condition has the expected status (and optionally reason).
    String statuses are compared case-insensitively.
    """

    def is_expected_status() -> bool:
        obj_status = condition.get("status")
        if obj_status is None:
            return False
        if isinstance(obj_status, str):
            return obj_status.lower() == str(expected_status).lower()
        return bool(obj_status) == expected_status

    def is_expected_reason() -> bool:
        if expected_reason is None:
            return True
        return condition.get("reason") == expected_reason

    return is_expected_status() and is_expected_reason()


def verify_deployment_available(object_state: Optional[dict]) -> bool:
    """A Deployment is available once any of its Available conditions has
    status True
    """
    conditions = get_conditions(object_state, AVAILABLE_CONDITION_KEY)
    log.debug3("Available conditions: %s", conditions)
    return any(check_condition(cond, True) for cond in conditions)
