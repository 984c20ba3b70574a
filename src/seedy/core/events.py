"""Decoding of the registry push notifications."""
import json
from typing import Any, Mapping, Optional

from attrs import define

from seedy.core.errors import DecodeError
from seedy.core.reference import ImageReference

# value of `detail.action-type` and `detail.result` for a completed push.
PUSH_ACTION = "PUSH"
SUCCESS_RESULT = "SUCCESS"


@define(frozen=True, kw_only=True)
class ImagePushEvent:
    """An image pushed to a registry repository.

    Arguments:
        registry_id: the account owning the registry.
        region: the region where the registry lives.
        repository_name: the repository the image was pushed to.
        image_tag: the pushed tag. None if the image was pushed untagged.
        image_digest: the digest of the pushed image.
        pushed_at: when the push happened, as reported by the notification.
    """

    registry_id: Optional[str]
    region: Optional[str]
    repository_name: str
    image_tag: Optional[str]
    image_digest: Optional[str]
    pushed_at: Optional[str] = None

    @property
    def registry_host(self) -> str:
        """Returns the host name of the ECR registry that emitted the event."""
        return f"{self.registry_id}.dkr.ecr.{self.region}.amazonaws.com"

    def reference(self, qualified: bool = False) -> Optional[ImageReference]:
        """Returns the reference of the pushed image.

        Arguments:
            qualified: prefix the repository with the registry host.

        Returns:
            The image reference. None if the event has no tag.
        """
        if not self.image_tag:
            return None

        repository = self.repository_name
        if qualified:
            repository = f"{self.registry_host}/{repository}"

        return ImageReference(repository=repository, tag=self.image_tag)

    def image_spec(self, qualified: bool = False) -> str:
        """Returns the image specification used to redeploy a service.

        The specification is pinned to the pushed digest so that the
        orchestrator pulls exactly the pushed content.

        Arguments:
            qualified: prefix the repository with the registry host.

        Raises:
            ValueError: if the event has no tag.
        """
        reference = self.reference(qualified=qualified)
        if reference is None:
            raise ValueError(f"push event for {self.repository_name} has no tag")

        if not self.image_digest:
            return str(reference)

        return reference.with_digest(self.image_digest)


def _get_string(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise DecodeError(f"field {key} must be a string, got {type(value).__name__}")

    return value


def decode(raw_payload: bytes | str) -> Optional[ImagePushEvent]:
    """Decodes a push notification.

    Any field not needed to describe the push is ignored. Notifications for
    other registry actions (i.e. deletes) or for failed pushes are not
    errors, they decode to None.

    Arguments:
        raw_payload: the JSON notification.

    Returns:
        The push event. None if the notification does not describe a
        successful push.

    Raises:
        DecodeError: if the payload is not a JSON object or does not contain
            a repository name.
    """
    try:
        envelope = json.loads(raw_payload)

    except (TypeError, ValueError) as exc:
        raise DecodeError(f"payload is not valid JSON: {exc}") from exc

    if not isinstance(envelope, dict):
        raise DecodeError("payload is not a JSON object")

    detail = envelope.get("detail")
    if not isinstance(detail, dict):
        raise DecodeError("payload does not contain a detail object")

    if _get_string(detail, "action-type") not in (None, PUSH_ACTION):
        return None

    if _get_string(detail, "result") not in (None, SUCCESS_RESULT):
        return None

    repository_name = _get_string(detail, "repository-name")
    if not repository_name:
        raise DecodeError("detail does not contain a repository name")

    return ImagePushEvent(
        registry_id=_get_string(envelope, "account"),
        region=_get_string(envelope, "region"),
        repository_name=repository_name,
        image_tag=_get_string(detail, "image-tag") or None,
        image_digest=_get_string(detail, "image-digest"),
        pushed_at=_get_string(envelope, "time"),
    )
