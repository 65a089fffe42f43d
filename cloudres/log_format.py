"""
Json log records for provisioning calls, tagged with the resource they belong
to
"""

# First Party
from alog import AlogJsonFormatter


def _resource_fields(resource: dict) -> dict:
    """Pull the identifying fields of a manifest into log record attributes"""
    metadata = resource.get("metadata") or {}
    return {
        "kind": resource.get("kind"),
        "apiVersion": resource.get("apiVersion"),
        "resourceName": metadata.get("name"),
        "resourceNamespace": metadata.get("namespace"),
        "resourceVersion": metadata.get("resourceVersion"),
        "tier": (resource.get("spec") or {}).get("tier"),
    }


class CloudResJsonFormatter(AlogJsonFormatter):
    """Json formatter for a single provisioning call. A record logged with an
    explicit `resource` extra is tagged with that resource, all others with
    the resource being provisioned.
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "kind",
        "apiVersion",
        "resourceName",
        "resourceNamespace",
        "resourceVersion",
        "tier",
        "reconciliationId",
    ]

    def __init__(self, manifest=None, reconciliation_id=None):
        super().__init__()
        self.manifest = manifest
        self.reconciliation_id = reconciliation_id

    def format(self, record):
        resource = getattr(record, "resource", None) or self.manifest
        if resource:
            for attr, value in _resource_fields(resource).items():
                setattr(record, attr, value)
        if self.reconciliation_id:
            record.reconciliationId = self.reconciliation_id
        return super().format(record)
