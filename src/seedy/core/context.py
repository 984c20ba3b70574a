"""Definition of the context capturing all the clients needed to run seedy."""
from typing import Any, Optional

import boto3
import docker
import requests
from attrs import define
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError

from seedy.core.config import Config
from seedy.core.consumer import Consumer
from seedy.core.errors import QueueError, StartupError
from seedy.core.reconcile import Reconciler
from seedy.plugins.aws.ecr import EcrCredentials
from seedy.plugins.aws.sqs import SqsMessageSource
from seedy.plugins.docker.swarm import SwarmDispatcher, SwarmInventory
from seedy.utils import warning

# extra seconds given to a long poll before botocore gives up on the socket.
LONG_POLL_GRACE = 10


@define(frozen=True, kw_only=True)
class Context:
    """Contains the configuration and all the clients needed to run seedy.

    Arguments:
        config: seedy's configuration.
        docker_client: client connected to a Docker Swarm manager.
        sqs_client: boto3 SQS client. None when no queue is needed.
    """

    config: Config
    docker_client: Any
    sqs_client: Any = None

    def inventory(self) -> SwarmInventory:
        """Creates the client listing the running services."""
        return SwarmInventory(self.docker_client, label=self.config.orchestrator.label)

    def dispatcher(self) -> SwarmDispatcher:
        """Creates the client sending the forced updates."""
        credentials = None
        if self.config.orchestrator.registry_auth:
            credentials = EcrCredentials(client_factory=self._ecr_client)

            # bare images resolve to Docker Hub, the ECR login never applies to them.
            if not self.config.orchestrator.qualified_images:
                warning(
                    "registry_auth is enabled without qualified_images: updates use bare "
                    "image names and will not be pulled with the ECR credentials"
                )

        return SwarmDispatcher(
            self.docker_client,
            credentials=credentials,
            qualified=self.config.orchestrator.qualified_images,
        )

    def _ecr_client(self, region: str):
        return boto3.client("ecr", region_name=region, config=_boto_config(self.config))

    def consumer(self) -> Consumer:
        """Creates the consumer loop reading from the configured queue.

        Raises:
            StartupError: if the queue cannot be found.
        """
        if self.sqs_client is None or self.config.queue.name is None:
            raise StartupError("no queue configured")

        try:
            source = SqsMessageSource.from_name(self.sqs_client, self.config.queue.name)

        except QueueError as exc:
            raise StartupError(str(exc)) from exc

        reconciler = Reconciler(
            self.inventory(),
            self.dispatcher(),
            qualified=self.config.orchestrator.qualified_images,
        )

        return Consumer(
            source,
            reconciler,
            wait_time=self.config.queue.wait_time,
            max_messages=self.config.queue.max_messages,
            concurrency=self.config.consumer.concurrency,
        )


def _boto_config(config: Config, read_timeout: Optional[float] = None) -> BotoConfig:
    return BotoConfig(
        connect_timeout=config.timeout,
        read_timeout=read_timeout or config.timeout,
        retries={"total_max_attempts": 1},
    )


def connect_docker(config: Config):
    """Creates a Docker client and checks the daemon is reachable.

    Arguments:
        config: seedy's configuration.

    Raises:
        StartupError: if the Docker daemon cannot be reached.
    """
    try:
        if config.orchestrator.base_url is None:
            client = docker.from_env(timeout=int(config.timeout))

        else:
            client = docker.DockerClient(
                base_url=config.orchestrator.base_url,
                timeout=int(config.timeout),
            )

        client.ping()

    except (docker.errors.DockerException, requests.exceptions.RequestException) as exc:
        raise StartupError(f"could not instantiate a Docker client: {exc}") from exc

    return client


def connect_sqs(config: Config):
    """Creates an SQS client able to long-poll the configured queue.

    Arguments:
        config: seedy's configuration.

    Raises:
        StartupError: if the client cannot be created, i.e. no region is set.
    """
    read_timeout = max(config.timeout, config.queue.wait_time + LONG_POLL_GRACE)

    try:
        return boto3.client(
            "sqs",
            region_name=config.queue.region,
            config=_boto_config(config, read_timeout=read_timeout),
        )

    except BotoCoreError as exc:
        raise StartupError(f"could not instantiate an SQS client: {exc}") from exc


def load_context(config: Config, with_queue: bool = True) -> Context:
    """Prepares the context to be used in seedy.

    Arguments:
        config: seedy's configuration.
        with_queue: also create the SQS client.

    Returns:
        The context.

    Raises:
        StartupError: if any of the clients cannot be created.
    """
    if with_queue and config.queue.name is None:
        raise StartupError("a queue name is required")

    docker_client = connect_docker(config)
    sqs_client = connect_sqs(config) if with_queue else None

    return Context(
        config=config,
        docker_client=docker_client,
        sqs_client=sqs_client,
    )
