"""Helpers for reading Docker Swarm service specs."""
from typing import Any, Mapping, Optional

import docker
import requests

from seedy.core.dispatch import ErrorKind
from seedy.core.reference import strip_digest

# label set by `docker stack deploy` with the image as written in the compose file.
STACK_IMAGE_LABEL = "com.docker.stack.image"


def service_image(spec: Mapping[str, Any]) -> Optional[str]:
    """Extracts the image a service has been deployed with.

    The image in the stack label is preferred, as the container spec of a
    stack service is usually pinned to a digest by the Docker daemon. The
    label is returned as it is, while the digest is stripped from the
    container spec's image.

    Arguments:
        spec: the service spec as returned by the Docker API.

    Returns:
        The image (i.e. `app:latest`). None if the service has no image.
    """
    image = spec.get("Labels", {}).get(STACK_IMAGE_LABEL)
    if image:
        return image

    container_spec = spec.get("TaskTemplate", {}).get("ContainerSpec") or {}
    image = container_spec.get("Image")
    if not image:
        return None

    return strip_digest(image)


def error_kind(exc: Exception) -> ErrorKind:
    """Classifies an error raised by the Docker client.

    Arguments:
        exc: the exception raised by the Docker client.

    Returns:
        The kind of error.
    """
    if isinstance(exc, requests.exceptions.Timeout):
        return ErrorKind.TIMEOUT

    if isinstance(exc, docker.errors.NotFound):
        return ErrorKind.NOT_FOUND

    if isinstance(exc, docker.errors.APIError):
        return ErrorKind.REJECTED

    return ErrorKind.TRANSPORT
