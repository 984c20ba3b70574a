"""Selection of the services affected by a push event."""
from typing import List, Sequence

from seedy.core.events import ImagePushEvent
from seedy.core.inventory import ServiceDescriptor


def match(
    event: ImagePushEvent,
    services: Sequence[ServiceDescriptor],
    qualified: bool = False,
) -> List[ServiceDescriptor]:
    """Finds the services running the image reference described by an event.

    Repository and tag must be equal byte-for-byte; there is no prefix or
    case-insensitive matching. Events without a tag never match.

    Arguments:
        event: the push event.
        services: a snapshot of the running services.
        qualified: compare using the repository prefixed by the registry host.

    Returns:
        The matching services, in the same order as `services`.
    """
    reference = event.reference(qualified=qualified)
    if reference is None:
        return []

    matched = []
    seen = set()

    for service in services:
        if service.image_ref != reference or service.service_id in seen:
            continue

        seen.add(service.service_id)
        matched.append(service)

    return matched
