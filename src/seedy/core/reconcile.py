"""A single pass of the pipeline reconciling a push event with the running
services."""
import enum
from typing import List, Optional

from attrs import define, field

from seedy.core.dispatch import Dispatcher, UpdateOutcome, dispatch_all
from seedy.core.errors import DecodeError, InventoryError
from seedy.core.events import ImagePushEvent, decode
from seedy.core.inventory import InventoryClient
from seedy.core.matcher import match
from seedy.utils import debug, error, log


@enum.unique
class ReconcileStatus(enum.Enum):
    """Describes how far a notification went through the pipeline.

    Attributes:

    * `IGNORED`: the notification does not describe a successful push.
    * `MALFORMED`: the notification could not be decoded.
    * `INVENTORY_FAILED`: the running services could not be listed.
    * `NO_MATCH`: no running service uses the pushed reference.
    * `DISPATCHED`: an update has been attempted for every matching service.
    * `FAILED`: the processing stopped on an unexpected error.
    """

    IGNORED = "IGNORED"
    MALFORMED = "MALFORMED"
    INVENTORY_FAILED = "INVENTORY_FAILED"
    NO_MATCH = "NO_MATCH"
    DISPATCHED = "DISPATCHED"
    FAILED = "FAILED"


@define(frozen=True, kw_only=True)
class ReconcileResult:
    """Summary of the processing of one notification.

    Arguments:
        status: how far the notification went through the pipeline.
        event: the decoded push event, if any.
        outcomes: the result of every update attempted.
    """

    status: ReconcileStatus
    event: Optional[ImagePushEvent] = None
    outcomes: List[UpdateOutcome] = field(factory=list)

    @property
    def failed(self) -> List[UpdateOutcome]:
        """Returns the updates not accepted by the orchestrator."""
        return [outcome for outcome in self.outcomes if not outcome.succeeded]


class Reconciler:
    """Drives a notification through decoding, inventory, matching and
    dispatching.

    Arguments:
        inventory: the client used to list the running services.
        dispatcher: the client used to redeploy the matching services.
        qualified: match services using the repository prefixed by the
            registry host.
    """

    def __init__(self, inventory: InventoryClient, dispatcher: Dispatcher, qualified: bool = False):
        self.inventory = inventory
        self.dispatcher = dispatcher
        self.qualified = qualified

    def reconcile(self, payload: bytes | str) -> ReconcileResult:
        """Processes a single notification.

        Errors are logged and reported in the result, never raised.

        Arguments:
            payload: the raw notification.

        Returns:
            The summary of the processing.
        """
        try:
            event = decode(payload)

        except DecodeError as exc:
            error(f"skipping malformed notification: {exc}")
            return ReconcileResult(status=ReconcileStatus.MALFORMED)

        if event is None:
            debug("skipping notification not describing a successful push")
            return ReconcileResult(status=ReconcileStatus.IGNORED)

        log(
            f"received push repository={event.repository_name} "
            f"tag={event.image_tag} digest={event.image_digest}"
        )

        reference = event.reference(qualified=self.qualified)

        try:
            services = self.inventory.list_services()

        except InventoryError as exc:
            error(f"could not list services for image={reference}: {exc}")
            return ReconcileResult(status=ReconcileStatus.INVENTORY_FAILED, event=event)

        matched = match(event, services, qualified=self.qualified)
        if not matched:
            debug(f"no service matching image={reference}")
            return ReconcileResult(status=ReconcileStatus.NO_MATCH, event=event)

        outcomes = dispatch_all(self.dispatcher, matched, event)

        return ReconcileResult(status=ReconcileStatus.DISPATCHED, event=event, outcomes=outcomes)
