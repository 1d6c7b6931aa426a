"""EnforceAuth API access.

- DeploymentApi: Abstract contract used by the pollers and entry point
- EnforceAuthClient: httpx implementation
- ApiError family: transport, auth and contract failures
"""

from enforceauth_deploy.api.base import (
    ApiAuthError,
    ApiError,
    ApiResponseError,
    ApiTransportError,
    DeploymentApi,
)
from enforceauth_deploy.api.client import EnforceAuthClient

__all__ = [
    "ApiAuthError",
    "ApiError",
    "ApiResponseError",
    "ApiTransportError",
    "DeploymentApi",
    "EnforceAuthClient",
]
