"""Retrieval of the credentials needed to pull images from ECR."""
import base64
import binascii
import threading
from typing import Callable, Dict, Optional

import boto3
from attrs import define
from botocore.exceptions import BotoCoreError, ClientError

from seedy.core.errors import CredentialsError


@define(frozen=True, kw_only=True)
class RegistryCredentials:
    """Credentials for a Docker registry.

    Arguments:
        username: the registry username.
        password: the registry password.
        registry: the registry URL.
    """

    username: str
    password: str
    registry: str


def decode_token(token: str, registry: str) -> RegistryCredentials:
    """Decodes the authorization token returned by ECR.

    Arguments:
        token: the base64 encoded `username:password` token.
        registry: the registry the token is valid for.

    Returns:
        The credentials stored in the token.

    Raises:
        CredentialsError: if the token is not valid.
    """
    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")

    except (binascii.Error, UnicodeDecodeError) as exc:
        raise CredentialsError(f"invalid authorization token from ECR for {registry}") from exc

    username, sep, password = decoded.partition(":")
    if not sep:
        raise CredentialsError(f"invalid authorization token from ECR for {registry}")

    return RegistryCredentials(username=username, password=password, registry=registry)


class EcrCredentials:
    """Fetches short-lived credentials for ECR registries.

    One ECR client is created for each region and reused afterwards.

    Arguments:
        client_factory: creates an ECR client for a region.
    """

    def __init__(self, client_factory: Optional[Callable[[str], object]] = None):
        self._client_factory = client_factory or (lambda region: boto3.client("ecr", region_name=region))
        self._clients: Dict[str, object] = {}
        self._lock = threading.Lock()

    def _client(self, region: str):
        with self._lock:
            if region not in self._clients:
                self._clients[region] = self._client_factory(region)

            return self._clients[region]

    def get(self, registry_id: str, region: str) -> RegistryCredentials:
        """Gets the credentials for a registry.

        Arguments:
            registry_id: the account owning the registry.
            region: the region of the registry.

        Returns:
            The registry credentials.

        Raises:
            CredentialsError: if ECR did not return any credentials.
        """
        try:
            res = self._client(region).get_authorization_token(registryIds=[registry_id])

        except (BotoCoreError, ClientError) as exc:
            raise CredentialsError(
                f"could not retrieve authorization token for registry {registry_id}: {exc}"
            ) from exc

        auths = res.get("authorizationData") or []
        if not auths:
            raise CredentialsError(f"no authorization data returned for registry {registry_id}")

        auth = auths[0]
        token = auth.get("authorizationToken")
        if not token:
            raise CredentialsError(f"no authorization token returned for registry {registry_id}")

        return decode_token(token, auth.get("proxyEndpoint", ""))
