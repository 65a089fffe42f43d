"""
Strategy loading: look up the strategy document for a resource type and tier
in a strategy store and decode it into typed overrides
"""

# Standard
from dataclasses import dataclass
from typing import Dict, Optional, Type, Union
import abc
import copy
import json

# First Party
import alog

# Local
from . import config, constants
from .exceptions import (
    ConfigMalformed,
    ConfigUnavailable,
    OperationAborted,
    assert_config,
)
from .managed_object import (
    Credentials,
    ManagedObject,
    NetworkEndpoint,
    PodController,
    StorageClaim,
)
from .utils import b64_secret_decode

log = alog.use_channel("STRAT")

# Forward declaration for Session
SESSION_TYPE = "Session"


@dataclass(frozen=True)
class StrategyConfig:
    """The region and undecoded strategy document for one resource type and
    tier
    """

    region: str
    raw_strategy: bytes


## Stores ######################################################################


class StrategyStore(abc.ABC):
    """A strategy store maps (resource type, tier) to a StrategyConfig"""

    @abc.abstractmethod
    def read_strategy(
        self,
        resource_type: str,
        tier: str,
        namespace: Optional[str] = None,
    ) -> StrategyConfig:
        """Look up the strategy for a resource type and tier

        Args:
            resource_type:  str
                The kind of resource, e.g. "postgres"
            tier:  str
                The tier requested by the owning resource
            namespace:  Optional[str]
                Namespace of the request. Namespaced stores look here unless
                they are configured with a fixed namespace.

        Returns:
            strategy_config:  StrategyConfig
                The matching strategy

        Raises:
            ConfigUnavailable:  If the store has no entry or cannot be read
            ConfigMalformed:  If the store's entry cannot be decoded
        """


# Built-in strategies used when no strategy ConfigMap exists in the cluster
DEFAULT_STRATEGY_DATA = {
    constants.POSTGRES_RESOURCE_TYPE: json.dumps(
        {tier: {"region": "", "strategy": {}} for tier in constants.DEFAULT_TIERS}
    ),
}


class ConfigMapStrategyStore(StrategyStore):
    """Strategy store backed by a ConfigMap. Each data key is a resource type
    whose value is a JSON object mapping tier to
    {"region": <str>, "strategy": <object>}.
    """

    def __init__(
        self,
        session: SESSION_TYPE,
        config_map_name: Optional[str] = None,
        config_map_namespace: Optional[str] = None,
    ):
        self._session = session
        self.config_map_name = config_map_name or config.strategy.config_map_name
        self.config_map_namespace = (
            config_map_namespace or config.strategy.config_map_namespace or None
        )

    def read_strategy(
        self,
        resource_type: str,
        tier: str,
        namespace: Optional[str] = None,
    ) -> StrategyConfig:
        namespace = self.config_map_namespace or namespace or self._session.namespace
        log.debug(
            "Reading %s strategy for tier [%s] from %s/%s",
            resource_type,
            tier,
            namespace,
            self.config_map_name,
        )
        try:
            success, content = self._session.get_object_current_state(
                kind="ConfigMap",
                name=self.config_map_name,
                api_version="v1",
                namespace=namespace,
            )
        except OperationAborted:
            raise
        except Exception as err:  # pylint: disable=broad-except
            raise ConfigUnavailable(
                f"failed to read strategy config map {namespace}/{self.config_map_name}"
            ) from err
        if not success:
            raise ConfigUnavailable(
                f"failed to read strategy config map {namespace}/{self.config_map_name}"
            )
        if content is None:
            log.debug2("No strategy config map found. Using defaults")
            data = DEFAULT_STRATEGY_DATA
        else:
            data = content.get("data") or {}

        raw_tiers = data.get(resource_type)
        if raw_tiers is None:
            raise ConfigUnavailable(
                f"strategy for resource type {resource_type} is not defined"
            )
        try:
            tiers = json.loads(raw_tiers)
        except ValueError as err:
            raise ConfigMalformed(
                f"failed to decode strategies for resource type {resource_type}"
            ) from err
        assert_config(
            isinstance(tiers, dict),
            f"strategies for resource type {resource_type} must be an object",
        )

        tier_entry = tiers.get(tier)
        if tier_entry is None:
            raise ConfigUnavailable(
                f"no strategy found for deployment type {resource_type} "
                f"and deployment tier {tier}"
            )
        assert_config(
            isinstance(tier_entry, dict),
            f"strategy for {resource_type} tier {tier} must be an object",
        )

        # A missing strategy is empty, an explicit null decodes to no overrides
        raw_strategy = (
            json.dumps(tier_entry["strategy"]).encode("utf-8")
            if "strategy" in tier_entry
            else b""
        )
        return StrategyConfig(
            region=tier_entry.get("region") or "",
            raw_strategy=raw_strategy,
        )


## Postgres Strategy ###########################################################

# The field holding the override for each managed object variant
_VARIANT_FIELDS = {
    PodController: "deployment_spec",
    NetworkEndpoint: "service_spec",
    StorageClaim: "pvc_spec",
    Credentials: "secret_data",
}

# Accepted strategy keys (lower-cased) and the field they populate. The long
# form carries a "postgres" prefix.
_POSTGRES_STRATEGY_KEYS = {
    prefix + variant.STRATEGY_KEY.lower(): field
    for variant, field in _VARIANT_FIELDS.items()
    for prefix in ["", "postgres"]
}


@dataclass(frozen=True)
class PostgresStrategy:
    """Decoded Postgres strategy. A field that is None means no override, so
    the default is used for that kind.
    """

    deployment_spec: Optional[dict] = None
    service_spec: Optional[dict] = None
    pvc_spec: Optional[dict] = None
    secret_data: Optional[Dict[str, str]] = None

    @classmethod
    def from_raw(cls, raw: Union[bytes, str, None]) -> "PostgresStrategy":
        """Decode a raw strategy document. A null document has no overrides.

        Raises:
            ConfigMalformed:  If the document is empty, is not a JSON object,
                holds a non-object override, or holds secret values that are
                not base64
        """
        if not raw:
            raise ConfigMalformed("failed to unmarshal strategy: empty strategy")
        try:
            document = json.loads(raw)
        except ValueError as err:
            raise ConfigMalformed(f"failed to unmarshal strategy: {err}") from err
        if document is None:
            log.debug2("Strategy is null. Using defaults for every kind")
            return cls()
        assert_config(
            isinstance(document, dict),
            "failed to unmarshal strategy: strategy must be an object",
        )

        fields = {}
        for key, value in document.items():
            field = _POSTGRES_STRATEGY_KEYS.get(key.lower())
            if field is None:
                log.debug2("Ignoring unknown strategy key [%s]", key)
                continue
            if value is None:
                continue
            assert_config(
                isinstance(value, dict),
                f"failed to unmarshal strategy: {key} must be an object",
            )
            fields[field] = value

        secret_data = fields.get("secret_data")
        if secret_data is not None:
            for key, value in secret_data.items():
                assert_config(
                    isinstance(value, str),
                    f"failed to unmarshal strategy: secret value {key} is not a str",
                )
                try:
                    b64_secret_decode(value)
                except ValueError as err:
                    raise ConfigMalformed(
                        f"failed to unmarshal strategy: {key} is not base64"
                    ) from err

        log.debug3("Decoded strategy overrides: %s", list(fields))
        return cls(**fields)

    def override_for(
        self,
        variant: Union[Type[ManagedObject], ManagedObject, str],
    ) -> Optional[dict]:
        """Get a copy of the override for a managed object variant, given as
        the variant class, an instance, or its kind. Returns None when there
        is no override.
        """
        if isinstance(variant, str):
            kind = variant
        else:
            kind = variant.KIND
        for variant_class, field in _VARIANT_FIELDS.items():
            if variant_class.KIND == kind:
                return copy.deepcopy(getattr(self, field))
        raise ValueError(f"No strategy override for kind {kind}")
