"""Shared fixtures: a credentialed boto3 session and a stubbed EC2 controller."""

from collections.abc import Iterator
from typing import Any

import boto3
import pytest
from botocore.stub import Stubber

from ec2_control.config import ControllerConfig
from ec2_control.controller import InstanceController
from ec2_control.models import InstanceDescriptor

REGION = "us-west-1"


def describe_response(
    instance_id: str,
    *,
    name: str | None = "web",
    state: str = "running",
    public_dns: str = "x.example.com",
    public_ip: str | None = None,
    extra_tags: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    """Build a DescribeInstances response holding a single instance."""
    tags = list(extra_tags or [])
    if name is not None:
        tags.append({"Key": "Name", "Value": name})
    instance: dict[str, Any] = {
        "InstanceId": instance_id,
        "Tags": tags,
        "State": {"Code": 16 if state == "running" else 80, "Name": state},
        "PublicDnsName": public_dns,
    }
    if public_ip is not None:
        instance["PublicIpAddress"] = public_ip
    return {"Reservations": [{"ReservationId": "r-1", "Instances": [instance]}]}


def state_change_response(key: str, instance_id: str, previous: str, current: str) -> dict[str, Any]:
    return {
        key: [
            {
                "InstanceId": instance_id,
                "PreviousState": {"Code": 0, "Name": previous},
                "CurrentState": {"Code": 0, "Name": current},
            }
        ]
    }


class FakeController:
    """In-memory controller that records calls and replays statuses."""

    def __init__(
        self,
        instance_id: str = "i-1",
        info: InstanceDescriptor | None = None,
        statuses: list[str | None] | None = None,
    ) -> None:
        self.instance_id = instance_id
        self.info = info
        self.statuses = list(statuses or [])
        self.calls: list[str] = []

    def fetch_info(self) -> InstanceDescriptor | None:
        self.calls.append("fetch_info")
        return self.info

    def fetch_status(self) -> str | None:
        self.calls.append("fetch_status")
        return self.statuses.pop(0) if self.statuses else None

    def activate(self) -> None:
        self.calls.append("activate")

    def deactivate(self) -> None:
        self.calls.append("deactivate")


@pytest.fixture
def session() -> boto3.Session:
    return boto3.Session(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name=REGION,
    )


@pytest.fixture
def config() -> ControllerConfig:
    return ControllerConfig(instance_id="i-1", region=REGION)


@pytest.fixture
def controller(config: ControllerConfig, session: boto3.Session) -> InstanceController:
    return InstanceController(config, session=session)


@pytest.fixture
def stubber(controller: InstanceController) -> Iterator[Stubber]:
    with Stubber(controller.client) as stub:
        yield stub
