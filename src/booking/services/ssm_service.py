"""SSM Parameter Store access for payment provider secrets.

Booking secrets live under /booking/{environment}/{provider}/{name}
(for example /booking/prod/stripe/webhook_secret) and are read once per
process unless the cache is bypassed.
"""

import logging
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

_FAILURE_MESSAGES = {
    "ParameterNotFound": "SSM parameter not found: {name}",
    "AccessDeniedException": (
        "Access denied to SSM parameter: {name}. Check IAM permissions for ssm:GetParameter."
    ),
}


def booking_secret_path(environment: str, provider: str, name: str) -> str:
    return f"/booking/{environment}/{provider}/{name}"


class SSMServiceError(Exception):
    """A parameter could not be read; error_code is the AWS error code."""

    def __init__(self, message: str, error_code: str = "Unknown") -> None:
        super().__init__(message)
        self.error_code = error_code


class SSMService:
    """Cached reader of SecureString parameters.

    Usage:
        ssm = SSMService()
        key = ssm.get_parameter(booking_secret_path("dev", "stripe", "secret_key"))
    """

    def __init__(self, client: Any | None = None) -> None:
        self._client = client or boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Retrieve a decrypted parameter value.

        Args:
            name: Full parameter path
            use_cache: Reuse a value fetched earlier by this instance

        Raises:
            SSMServiceError: If the parameter cannot be read
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        logger.info("Fetching SSM parameter: %s", name)
        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            template = _FAILURE_MESSAGES.get(code, "Failed to retrieve SSM parameter {name}: {e}")
            raise SSMServiceError(template.format(name=name, e=e), code) from e

        value: str = response["Parameter"]["Value"]
        self._cache[name] = value
        return value

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Shared SSMService (tests reset it with cache_clear())."""
    return SSMService()
