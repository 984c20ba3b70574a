"""Base classes and data structures used to fetch the running services."""
import abc
from typing import List

from attrs import define

from seedy.core.reference import ImageReference


@define(frozen=True, kw_only=True)
class ServiceDescriptor:
    """A snapshot of a running service taken while processing a single
    event.

    Arguments:
        service_id: the identifier assigned by the orchestrator.
        name: the service's name.
        image_ref: the image reference the service is configured with.
        version: the service's object version when the snapshot was taken.
    """

    service_id: str
    name: str
    image_ref: ImageReference
    version: int = 0


class InventoryClient(abc.ABC):
    """Base class for all the clients listing the services running on an
    orchestrator."""

    @abc.abstractmethod
    def list_services(self) -> List[ServiceDescriptor]:
        """Fetches all the services currently running.

        Every call queries the orchestrator, results are never cached.
        Services whose image cannot be parsed are left out.

        Returns:
            The running services, in the order returned by the orchestrator.

        Raises:
            InventoryError: if the orchestrator cannot be reached.
        """
        raise NotImplementedError
