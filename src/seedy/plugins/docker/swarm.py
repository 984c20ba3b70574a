"""Inventory and dispatcher for services running on Docker Swarm."""
from typing import List, Optional, Tuple

import docker
import requests

from seedy.core.dispatch import Dispatcher, ErrorKind
from seedy.core.errors import CredentialsError, DispatchError, InventoryError
from seedy.core.events import ImagePushEvent
from seedy.core.inventory import InventoryClient, ServiceDescriptor
from seedy.core.reference import ImageReference
from seedy.plugins.aws.ecr import EcrCredentials
from seedy.plugins.docker.utils import error_kind, service_image
from seedy.utils import debug


class SwarmInventory(InventoryClient):
    """Lists the services running on a Docker Swarm cluster.

    Arguments:
        client: the Docker client connected to a Swarm manager.
        label: consider only the services with this label key and value.
    """

    def __init__(self, client: docker.DockerClient, label: Optional[Tuple[str, str]] = None):
        self.client = client
        self.label = label

    def list_services(self) -> List[ServiceDescriptor]:
        filters = {}
        if self.label is not None:
            key, value = self.label
            filters["label"] = f"{key}={value}"

        try:
            services = self.client.services.list(filters=filters)

        except (docker.errors.DockerException, requests.exceptions.RequestException) as exc:
            raise InventoryError(f"could not list services: {exc}") from exc

        descriptors = []

        for service in services:
            spec = service.attrs.get("Spec", {})
            image = service_image(spec)

            if image is None:
                debug(f"skipping service without image service_id={service.id}")
                continue

            try:
                image_ref = ImageReference.parse(image)

            except ValueError as exc:
                debug(f"skipping service service_id={service.id}: {exc}")
                continue

            descriptors.append(
                ServiceDescriptor(
                    service_id=service.id,
                    name=spec.get("Name", service.id),
                    image_ref=image_ref,
                    version=service.attrs.get("Version", {}).get("Index", 0),
                )
            )

        return descriptors


class SwarmDispatcher(Dispatcher):
    """Forces Docker Swarm services to redeploy with a new image.

    Only the image of the service is changed, the rest of the current
    service spec is kept as it is.

    Arguments:
        client: the Docker client connected to a Swarm manager.
        credentials: when set, log in to the event's ECR registry before
            updating a service so that the nodes can pull the image.
        qualified: build the image using the repository prefixed by the
            registry host.
    """

    def __init__(
        self,
        client: docker.DockerClient,
        credentials: Optional[EcrCredentials] = None,
        qualified: bool = False,
    ):
        super().__init__(qualified=qualified)

        self.client = client
        self.credentials = credentials

    def _login(self, service: ServiceDescriptor, event: ImagePushEvent):
        if self.credentials is None:
            return

        if not event.registry_id or not event.region:
            raise DispatchError(
                f"push event for {event.repository_name} has no registry to log in to",
                service_id=service.service_id,
                kind=ErrorKind.AUTH,
            )

        try:
            creds = self.credentials.get(event.registry_id, event.region)
            self.client.login(
                username=creds.username,
                password=creds.password,
                registry=creds.registry or event.registry_host,
                reauth=True,
            )

        except CredentialsError as exc:
            raise DispatchError(str(exc), service_id=service.service_id, kind=ErrorKind.AUTH) from exc

        except (docker.errors.DockerException, requests.exceptions.RequestException) as exc:
            raise DispatchError(
                f"registry login failed: {exc}",
                service_id=service.service_id,
                kind=ErrorKind.AUTH,
            ) from exc

    def update(self, service: ServiceDescriptor, image: str, event: ImagePushEvent):
        self._login(service, event)

        try:
            current = self.client.services.get(service.service_id)
            current.update(image=image, force_update=True)

        except (docker.errors.DockerException, requests.exceptions.RequestException) as exc:
            raise DispatchError(
                f"failed to update service {service.name}: {exc}",
                service_id=service.service_id,
                kind=error_kind(exc),
            ) from exc
