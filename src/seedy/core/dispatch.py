"""Base classes and functions used to redeploy the services matching a push
event."""
import abc
import enum
from typing import List, Optional, Sequence

from attrs import define

from seedy.core.errors import DispatchError
from seedy.core.events import ImagePushEvent
from seedy.core.inventory import ServiceDescriptor
from seedy.utils import error, print_exception, success


@enum.unique
class ErrorKind(enum.Enum):
    """Describes why the orchestrator did not accept an update.

    Attributes:

    * `TIMEOUT`: the orchestrator did not answer in time.
    * `TRANSPORT`: the orchestrator could not be reached.
    * `NOT_FOUND`: the service disappeared after the inventory was fetched.
    * `REJECTED`: the orchestrator refused the update.
    * `AUTH`: the registry credentials could not be retrieved.
    * `UNEXPECTED`: the update failed with an error of any other kind.
    """

    TIMEOUT = "TIMEOUT"
    TRANSPORT = "TRANSPORT"
    NOT_FOUND = "NOT_FOUND"
    REJECTED = "REJECTED"
    AUTH = "AUTH"
    UNEXPECTED = "UNEXPECTED"


@define(frozen=True, kw_only=True)
class UpdateOutcome:
    """The result of a single update request.

    Arguments:
        service_id: the service the update was sent to.
        image: the image specification sent to the orchestrator.
        succeeded: whether the orchestrator accepted the update.
        error: the category of the failure, if any.
        message: a description of the failure, if any.
    """

    service_id: str
    image: str
    succeeded: bool
    error: Optional[ErrorKind] = None
    message: Optional[str] = None


class Dispatcher(abc.ABC):
    """Base class for all the clients sending forced updates to an
    orchestrator.

    Arguments:
        qualified: build the new image specification using the repository
            prefixed by the registry host.
    """

    def __init__(self, qualified: bool = False):
        self.qualified = qualified

    @abc.abstractmethod
    def update(self, service: ServiceDescriptor, image: str, event: ImagePushEvent):
        """Asks the orchestrator to redeploy a service with a new image.

        The call returns as soon as the orchestrator accepts the request,
        without waiting for the redeploy to complete.

        Arguments:
            service: the service to redeploy.
            image: the new image specification, pinned to a digest.
            event: the push event that triggered the update.

        Raises:
            DispatchError: if the orchestrator did not accept the update.
        """
        raise NotImplementedError

    def dispatch(self, service: ServiceDescriptor, event: ImagePushEvent) -> UpdateOutcome:
        """Redeploys a service with the image described by an event.

        Arguments:
            service: the service to redeploy.
            event: the push event.

        Returns:
            The outcome of the update. Failures are reported in the
            outcome rather than raised.
        """
        image = event.image_spec(qualified=self.qualified)

        try:
            self.update(service, image, event)

        except DispatchError as exc:
            error(
                f"failed to update service service_id={service.service_id} "
                f"image={image} kind={exc.kind.value}: {exc}"
            )

            return UpdateOutcome(
                service_id=service.service_id,
                image=image,
                succeeded=False,
                error=exc.kind,
                message=str(exc),
            )

        except Exception as exc:  # pylint: disable=broad-except
            print_exception(
                f"unexpected error updating service service_id={service.service_id} image={image}"
            )

            return UpdateOutcome(
                service_id=service.service_id,
                image=image,
                succeeded=False,
                error=ErrorKind.UNEXPECTED,
                message=str(exc),
            )

        success(f"updated service service_id={service.service_id} image={image}")

        return UpdateOutcome(service_id=service.service_id, image=image, succeeded=True)


def dispatch_all(
    dispatcher: Dispatcher,
    services: Sequence[ServiceDescriptor],
    event: ImagePushEvent,
) -> List[UpdateOutcome]:
    """Sends an update for each service, one at a time.

    Every service gets exactly one attempt, a failure does not stop the
    updates of the remaining services.

    Arguments:
        dispatcher: the client used to send the updates.
        services: the services to redeploy.
        event: the push event.

    Returns:
        One outcome per service, in the same order as `services`.
    """
    return [dispatcher.dispatch(service, event) for service in services]
