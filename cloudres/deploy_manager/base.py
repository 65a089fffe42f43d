"""
The DeployManager is the boundary between the providers and the cluster's
object API. Everything a provider reads or writes goes through one.
"""

# Standard
from typing import List, Optional, Tuple
import abc


class DeployManagerBase(abc.ABC):
    """
    Interface for reading and writing cluster objects. Failures are reported
    through the success flag of each call unless the caller asks for the
    error to be raised.
    """

    @abc.abstractmethod
    def deploy(
        self,
        resource_definitions: List[dict],
        manage_owner_references: bool = True,
        raise_on_failure: bool = False,
    ) -> Tuple[bool, bool]:
        """Write each manifest to the cluster in the given order, creating it
        when missing and replacing it otherwise. Nothing after the first
        failed write is attempted.

        Args:
            resource_definitions:  List[dict]
                The full manifests to write
            manage_owner_references:  bool
                Whether to reference the manager's owner CR from the written
                objects
            raise_on_failure:  bool
                Raise the error behind a failed write instead of returning a
                false success flag

        Returns:
            success:  bool
                True when every manifest was written
            changed:  bool
                True when any write changed the object in the cluster
        """

    @abc.abstractmethod
    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Read one object by name

        Args:
            kind:  str
                Kind of the object
            name:  str
                Name of the object
            namespace:  Optional[str]
                Namespace of the object, None for cluster scoped kinds
            api_version:  Optional[str]
                The apiVersion to read. Any version matches when not given.

        Returns:
            success:  bool
                False if the read itself failed
            current_state:  Optional[dict]
                The object's manifest, or None when it does not exist
        """

    @abc.abstractmethod
    def set_status(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        status: dict,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, bool]:
        """Replace the status subresource of one object

        Args:
            kind:  str
                Kind of the object
            name:  str
                Name of the object
            namespace:  Optional[str]
                Namespace of the object
            status:  dict
                The complete new status
            api_version:  Optional[str]
                The apiVersion of the object

        Returns:
            success:  bool
                False if the object is missing or the write failed
            changed:  bool
                True when the new status differs from the old one
        """
