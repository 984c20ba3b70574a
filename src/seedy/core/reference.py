"""Representation of an image reference (repository and tag)."""
from attrs import define, field

__all__ = ["ImageReference", "strip_digest"]


def _check_not_empty(_, attribute, value):
    if not value:
        raise ValueError(f"image reference {attribute.name} cannot be empty")


def strip_digest(image: str) -> str:
    """Removes the digest from an image specification if present.

    Arguments:
        image: an image specification, i.e. `app:latest@sha256:abc`.

    Returns:
        The image specification without the digest, i.e. `app:latest`.
    """
    return image.partition("@")[0]


@define(frozen=True, kw_only=True, order=True)
class ImageReference:
    """A mutable pointer to an image: a repository name plus a tag.

    Two references are equal only if both repository and tag are equal
    byte-for-byte. Digests are never part of a reference.

    Arguments:
        repository: the repository name, including the registry host if any
            (i.e. `ghcr.io/fucina/seedy`).
        tag: the image tag (i.e. `latest`).
    """

    repository: str = field(validator=_check_not_empty)
    tag: str = field(validator=_check_not_empty)

    def __str__(self):
        return f"{self.repository}:{self.tag}"

    def with_digest(self, digest: str) -> str:
        """Returns the image specification pinned to a specific digest.

        Arguments:
            digest: content digest of the image (i.e. `sha256:abc`).

        Returns:
            The image specification, i.e. `app:latest@sha256:abc`.
        """
        return f"{self}@{digest}"

    @classmethod
    def parse(cls, spec: str) -> "ImageReference":
        """Creates an instance of ImageReference from its string
        representation.

        The tag is whatever follows the last `:` after the last `/`, so a
        registry port (i.e. `localhost:5000/app:v1`) is not taken as a tag.

        Arguments:
            spec: the image specification to parse (i.e. `app:latest`).

        Returns:
            The reference represented by the given string.

        Raises:
            ValueError: if the spec is empty, has no tag or carries a digest.
        """
        if "@" in spec:
            raise ValueError(f"image reference {spec!r} contains a digest")

        _, _, name = spec.rpartition("/")
        if ":" not in name:
            raise ValueError(f"image reference {spec!r} has no tag")

        repository, _, tag = spec.rpartition(":")

        return ImageReference(repository=repository, tag=tag)
