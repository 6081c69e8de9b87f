from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import ControllerConfig
from .errors import (
    AuthenticationError,
    Ec2ControlError,
    classify_client_error,
    client_error_code,
    is_not_found,
)
from .models import UNKNOWN_PUBLIC_IP, InstanceDescriptor

logger = logging.getLogger(__name__)


class InstanceController:
    """Start, stop and describe one EC2 instance.

    The instance id is bound at construction. Credentials are checked eagerly
    but locally: construction fails with ``AuthenticationError`` when the
    session resolves no credentials at all. A remote round trip to STS is made
    only when ``config.verify_credentials`` is set. Credentials that EC2 later
    rejects surface as ``AuthenticationError`` from the call that saw it.
    """

    def __init__(self, config: ControllerConfig, session: boto3.Session | None = None) -> None:
        config.validate()
        self.config = config
        self.instance_id = config.instance_id.strip()
        self._session = session or _build_session(config)

        if self._session.get_credentials() is None:
            raise AuthenticationError(
                f"No AWS credentials found for region {config.region}"
                + (f" (profile {config.profile})" if config.profile else "")
            )

        try:
            self.client = self._session.client(
                "ec2",
                region_name=config.region,
                api_version=config.api_version,
            )
        except BotoCoreError as error:
            raise Ec2ControlError(
                f"Cannot create EC2 client (api_version={config.api_version}): {error}"
            ) from error

        if config.verify_credentials:
            self.verify_session()

    def verify_session(self) -> str:
        """Confirm the credentials with STS and return the caller's ARN."""
        sts = self._session.client("sts", region_name=self.config.region)
        try:
            identity = sts.get_caller_identity()
        except (ClientError, BotoCoreError) as error:
            raise self._failure("GetCallerIdentity", error) from error
        arn = identity.get("Arn", "")
        logger.info("Authenticated as %s", arn, extra={"instance_id": self.instance_id})
        return arn

    def fetch_info(self) -> InstanceDescriptor | None:
        logger.debug("Describing instance %s", self.instance_id)
        try:
            response = self.client.describe_instances(InstanceIds=[self.instance_id])
        except (ClientError, BotoCoreError) as error:
            if is_not_found(error):
                logger.info(
                    "Instance %s not found (%s)",
                    self.instance_id,
                    client_error_code(error),
                    extra={"instance_id": self.instance_id, "operation": "DescribeInstances"},
                )
                return None
            raise self._failure("DescribeInstances", error) from error

        instance = _first_instance(response)
        if instance is None:
            logger.info("DescribeInstances returned no instance for %s", self.instance_id)
            return None
        if instance.get("InstanceId") != self.instance_id:
            logger.warning(
                "DescribeInstances returned %s while %s was requested",
                instance.get("InstanceId"),
                self.instance_id,
                extra={"instance_id": self.instance_id, "operation": "DescribeInstances"},
            )
            return None
        return _to_descriptor(instance)

    def fetch_status(self) -> str | None:
        descriptor = self.fetch_info()
        if descriptor is None:
            return None
        return descriptor.state

    def activate(self) -> None:
        self._change_state("StartInstances", self.client.start_instances, "StartingInstances")

    def deactivate(self) -> None:
        self._change_state("StopInstances", self.client.stop_instances, "StoppingInstances")

    def _change_state(
        self,
        operation: str,
        call: Callable[..., dict[str, Any]],
        result_key: str,
    ) -> None:
        logger.debug("%s for %s", operation, self.instance_id)
        try:
            response = call(InstanceIds=[self.instance_id], DryRun=False)
        except (ClientError, BotoCoreError) as error:
            raise self._failure(operation, error) from error

        for change in response.get(result_key, []):
            logger.info(
                "%s: %s -> %s",
                change.get("InstanceId", self.instance_id),
                change.get("PreviousState", {}).get("Name", "unknown"),
                change.get("CurrentState", {}).get("Name", "unknown"),
                extra={"instance_id": self.instance_id, "operation": operation},
            )

    def _failure(self, operation: str, error: Exception) -> Ec2ControlError:
        failure = classify_client_error(error, operation)
        logger.warning(
            "%s failed for %s: %s",
            operation,
            self.instance_id,
            failure.message,
            extra={
                "instance_id": self.instance_id,
                "operation": operation,
                "error_code": getattr(failure, "error_code", None),
            },
        )
        return failure


def _build_session(config: ControllerConfig) -> boto3.Session:
    credentials = config.credentials
    try:
        if credentials is not None:
            return boto3.Session(
                aws_access_key_id=credentials.access_key_id,
                aws_secret_access_key=credentials.secret_access_key,
                aws_session_token=credentials.session_token,
                region_name=config.region,
            )
        return boto3.Session(profile_name=config.profile, region_name=config.region)
    except BotoCoreError as error:
        raise AuthenticationError(f"Cannot establish AWS session: {error}") from error


def _first_instance(response: dict[str, Any]) -> dict[str, Any] | None:
    for reservation in response.get("Reservations", []):
        for instance in reservation.get("Instances", []):
            return instance
    return None


def _to_descriptor(instance: dict[str, Any]) -> InstanceDescriptor:
    return InstanceDescriptor(
        instance_id=instance["InstanceId"],
        name=_tag_value(instance.get("Tags", []), "Name"),
        state=instance.get("State", {}).get("Name", "unknown"),
        public_dns=instance.get("PublicDnsName", ""),
        public_ip=instance.get("PublicIpAddress") or UNKNOWN_PUBLIC_IP,
    )


def _tag_value(tags: Iterable[dict[str, str]], key: str) -> str | None:
    for tag in tags:
        if tag.get("Key") == key:
            return tag.get("Value", "")
    return None
