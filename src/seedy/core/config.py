"""Functions and data structures used to represent and manage seedy
configuration."""
from pathlib import Path
from typing import Optional, Tuple

import toml
from attrs import define, field
from cattrs import ClassValidationError, structure

from seedy.core.errors import ConfigError


def split_label(label: str) -> Tuple[str, str]:
    """Splits a label filter into its key and value.

    Arguments:
        label: the filter, i.e. `com.example.autodeploy=true`.

    Returns:
        A tuple with the label's key and value.

    Raises:
        ConfigError: if the filter is not in the format `key=value`.
    """
    key, sep, value = label.partition("=")
    if not sep or not key:
        raise ConfigError(f"filter label {label} expected to be in the format key=value")

    return key, value


def _check_filter_label(_, __, value):
    if value is not None:
        split_label(value)


def _check_range(low: int, high: int):
    def _validate(_, attribute, value):
        if not low <= value <= high:
            raise ConfigError(f"{attribute.name} must be between {low} and {high}, got {value}")

    return _validate


def _check_min(low: int):
    def _validate(_, attribute, value):
        if value < low:
            raise ConfigError(f"{attribute.name} must be at least {low}, got {value}")

    return _validate


@define(frozen=True, kw_only=True)
class QueueConfig:
    """Configuration for the queue receiving the push notifications.

    Arguments:
        name: name of the SQS queue.
        region: AWS region of the queue. Uses boto3's default if not set.
        wait_time: seconds to wait for new messages on each poll.
        max_messages: maximum number of messages received on each poll.
    """

    name: Optional[str] = None
    region: Optional[str] = None
    wait_time: int = field(default=20, validator=_check_range(0, 20))
    max_messages: int = field(default=10, validator=_check_range(1, 10))


@define(frozen=True, kw_only=True)
class OrchestratorConfig:
    """Configuration for the Docker Swarm cluster running the services.

    Arguments:
        base_url: URL of the Docker daemon. Uses the environment
            (i.e. `DOCKER_HOST`) if not set.
        filter_label: consider only the services with this label, in the
            format `key=value`.
        registry_auth: log in to ECR before updating a service.
        qualified_images: match services on the full ECR image name
            including the registry host.
    """

    base_url: Optional[str] = None
    filter_label: Optional[str] = field(default=None, validator=_check_filter_label)
    registry_auth: bool = False
    qualified_images: bool = False

    @property
    def label(self) -> Optional[Tuple[str, str]]:
        """Returns the label filter as key and value."""
        if self.filter_label is None:
            return None

        return split_label(self.filter_label)


@define(frozen=True, kw_only=True)
class ConsumerConfig:
    """Configuration for the consumer loop.

    Arguments:
        concurrency: maximum number of messages processed at the same time.
    """

    concurrency: int = field(default=4, validator=_check_min(1))


def _check_timeout(_, __, value):
    if value <= 0:
        raise ConfigError(f"timeout must be greater than 0, got {value}")


@define(frozen=True, kw_only=True)
class Config:
    """seedy's configuration.

    Arguments:
        queue: configuration for the queue.
        orchestrator: configuration for the Docker Swarm cluster.
        consumer: configuration for the consumer loop.
        timeout: seconds before giving up on any network call.
    """

    queue: QueueConfig = field(factory=QueueConfig)
    orchestrator: OrchestratorConfig = field(factory=OrchestratorConfig)
    consumer: ConsumerConfig = field(factory=ConsumerConfig)
    timeout: float = field(default=30.0, converter=float, validator=_check_timeout)


def _find_config_error(exc: BaseException) -> Optional[ConfigError]:
    if isinstance(exc, ConfigError):
        return exc

    for sub_exc in getattr(exc, "exceptions", ()):
        found = _find_config_error(sub_exc)
        if found is not None:
            return found

    return None


def load_config(path: Path | str) -> Config:
    """Loads the configuration from a file.

    A missing file is not an error, the default configuration is returned
    instead.

    Arguments:
        path: configuration file's path.

    Raises:
        ConfigError: if the file is not valid.
    """
    try:
        config = toml.load(path)

    except FileNotFoundError:
        config = {}

    except toml.TomlDecodeError as exc:
        raise ConfigError(f"invalid configuration file {path}: {exc}") from exc

    try:
        return structure(config, Config)

    except ConfigError:
        raise

    except (ClassValidationError, TypeError, ValueError) as exc:
        cause = _find_config_error(exc)
        if cause is not None:
            raise cause from exc

        raise ConfigError(f"invalid configuration file {path}: {exc}") from exc
