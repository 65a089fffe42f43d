"""
Typed representations of the kubernetes objects managed by a provider. Each
variant knows its kind, apiVersion, and the one field that the provider owns
and overwrites on every call.
"""

# Standard
from typing import List, Optional, Tuple, Type
import copy

# First Party
import alog

# Local
from .exceptions import assert_cluster

log = alog.use_channel("MGOBJ")

# Forward declaration for Session
SESSION_TYPE = "Session"


class ManagedObject:
    """Base struct for a kubernetes object managed by a provider"""

    # The kind/apiVersion that every instance of the variant has
    KIND = None
    API_VERSION = None

    # The top-level field that the provider owns. Everything else in the
    # object is left as found in the cluster.
    MUTABLE_FIELD = None

    # The key used in a strategy document to override the mutable field
    STRATEGY_KEY = None

    def __init__(self, definition: dict):
        definition = dict(definition)
        definition.setdefault("kind", self.KIND)
        definition.setdefault("apiVersion", self.API_VERSION)
        self.definition = definition

        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"
        assert (
            self.KIND is None or self.kind == self.KIND
        ), f"Cannot construct {type(self).__name__} from kind {self.kind}"

    ## Properties ##############################################################

    @property
    def kind(self) -> str:
        return self.definition.get("kind")

    @property
    def api_version(self) -> str:
        return self.definition.get("apiVersion")

    @property
    def metadata(self) -> dict:
        return self.definition.setdefault("metadata", {})

    @property
    def name(self) -> str:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")

    @property
    def identity(self) -> Tuple[str, Optional[str], str]:
        """The (kind, namespace, name) triple that locates the object"""
        return (self.kind, self.namespace, self.name)

    ## Mutable Field ###########################################################

    def get_mutable(self):
        """Get the value of the provider-owned field"""
        return self.definition.get(self.MUTABLE_FIELD)

    def set_mutable(self, value):
        """Overwrite the provider-owned field. The previous value is discarded
        entirely.
        """
        self.definition[self.MUTABLE_FIELD] = copy.deepcopy(value)

    ## Lookup ##################################################################

    @classmethod
    def fetch(
        cls,
        session: SESSION_TYPE,
        name: str,
        namespace: Optional[str] = None,
    ) -> Optional["ManagedObject"]:
        """Fetch the current state of an object of this variant

        Args:
            session:  Session
                The session for the current call
            name:  str
                The name of the object
            namespace:  Optional[str]
                The namespace of the object. Defaults to the session namespace.

        Returns:
            current:  Optional[ManagedObject]
                The typed current object, or None if it does not exist
        """
        namespace = namespace or session.namespace
        success, content = session.get_object_current_state(
            kind=cls.KIND,
            name=name,
            namespace=namespace,
            api_version=cls.API_VERSION,
        )
        assert_cluster(
            success, f"Failed to fetch current state of {cls.KIND} {name}"
        )
        if content is None:
            log.debug2("No %s/%s in %s", cls.KIND, name, namespace)
            return None
        return cls(content)

    @staticmethod
    def from_definition(definition: dict) -> "ManagedObject":
        """Wrap a manifest in the variant that matches its kind"""
        kind = definition.get("kind")
        for variant in MANAGED_OBJECT_VARIANTS:
            if variant.KIND == kind:
                return variant(definition)
        raise ValueError(f"Unsupported managed object kind: {kind}")

    ## Builtins ################################################################

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.namespace}/{self.name}"

    def __repr__(self):
        return str(self)

    def __hash__(self):
        """Hash on the identity so that the object's key in a map does not
        depend on its content
        """
        return hash(str(self))

    def __eq__(self, other):
        return hash(self) == hash(other)


class StorageClaim(ManagedObject):
    """A PersistentVolumeClaim holding the database files"""

    KIND = "PersistentVolumeClaim"
    API_VERSION = "v1"
    MUTABLE_FIELD = "spec"
    STRATEGY_KEY = "pvcSpec"


class Credentials(ManagedObject):
    """A Secret holding the database credentials. The provider owns its data;
    values are base64 encoded as kubernetes stores them.
    """

    KIND = "Secret"
    API_VERSION = "v1"
    MUTABLE_FIELD = "data"
    STRATEGY_KEY = "secretData"

    @property
    def secret_type(self) -> Optional[str]:
        return self.definition.get("type")


class PodController(ManagedObject):
    """A Deployment running the database engine"""

    KIND = "Deployment"
    API_VERSION = "apps/v1"
    MUTABLE_FIELD = "spec"
    STRATEGY_KEY = "deploymentSpec"


class NetworkEndpoint(ManagedObject):
    """A Service exposing the database inside the cluster"""

    KIND = "Service"
    API_VERSION = "v1"
    MUTABLE_FIELD = "spec"
    STRATEGY_KEY = "serviceSpec"


# The closed set of variants that from_definition chooses between
MANAGED_OBJECT_VARIANTS: List[Type[ManagedObject]] = [
    StorageClaim,
    Credentials,
    PodController,
    NetworkEndpoint,
]
