"""Exceptions raised by the EC2 controller.

Usage:
    from ec2_control.errors import RemoteCallError

    try:
        controller.activate()
    except RemoteCallError as exc:
        print(exc.operation, exc.error_code)
"""

from __future__ import annotations

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

AUTH_ERROR_CODES = frozenset({
    "AuthFailure",
    "ExpiredToken",
    "ExpiredTokenException",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "UnauthorizedOperation",
    "UnrecognizedClientException",
})

NOT_FOUND_ERROR_CODES = frozenset({
    "InvalidInstanceID.NotFound",
    "InvalidInstanceID.Malformed",
})


class Ec2ControlError(Exception):
    """Base exception for ec2-control."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(Ec2ControlError):
    """Raised when no session can be established or credentials are rejected."""


class InstanceNotFoundError(Ec2ControlError):
    """Raised when the bound instance is absent where a value is required."""

    def __init__(self, instance_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Instance {instance_id} not found")
        self.instance_id = instance_id


class RemoteCallError(Ec2ControlError):
    """Raised when a describe/start/stop call fails in transport or in the API."""

    def __init__(self, operation: str, message: str, error_code: str | None = None) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.error_code = error_code


class WaitTimeoutError(Ec2ControlError):
    """Raised when a status poll runs out of attempts."""

    def __init__(self, instance_id: str, targets: tuple[str, ...], last_state: str, attempts: int) -> None:
        super().__init__(
            f"Instance {instance_id} did not reach {'/'.join(targets)} after "
            f"{attempts} attempts (last state: {last_state})"
        )
        self.instance_id = instance_id
        self.targets = targets
        self.last_state = last_state
        self.attempts = attempts


def client_error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def is_not_found(exc: Exception) -> bool:
    return isinstance(exc, ClientError) and client_error_code(exc) in NOT_FOUND_ERROR_CODES


def classify_client_error(exc: Exception, operation: str) -> Ec2ControlError:
    """Map a botocore exception to the ec2-control error it stands for.

    Args:
        exc: A ``ClientError`` or ``BotoCoreError`` raised by a boto3 client.
        operation: The API operation name, used in the message.

    Returns:
        ``AuthenticationError`` for rejected or missing credentials,
        ``RemoteCallError`` for everything else.
    """
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return AuthenticationError(f"{operation} failed: {exc}")

    if isinstance(exc, ClientError):
        code = client_error_code(exc)
        message = exc.response.get("Error", {}).get("Message", "") or str(exc)
        if code in AUTH_ERROR_CODES:
            return AuthenticationError(f"{operation} failed: {code}: {message}")
        return RemoteCallError(operation, f"{code}: {message}", error_code=code or None)

    if isinstance(exc, BotoCoreError):
        return RemoteCallError(operation, str(exc))

    return RemoteCallError(operation, repr(exc))
