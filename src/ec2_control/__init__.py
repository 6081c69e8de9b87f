from .config import AwsCredentials, ControllerConfig, load_controller_config
from .controller import InstanceController
from .errors import (
    AuthenticationError,
    Ec2ControlError,
    InstanceNotFoundError,
    RemoteCallError,
    WaitTimeoutError,
)
from .models import UNKNOWN_PUBLIC_IP, InstanceDescriptor
from .waiter import wait_for_state

__all__ = [
    "UNKNOWN_PUBLIC_IP",
    "AuthenticationError",
    "AwsCredentials",
    "ControllerConfig",
    "Ec2ControlError",
    "InstanceController",
    "InstanceDescriptor",
    "InstanceNotFoundError",
    "RemoteCallError",
    "WaitTimeoutError",
    "load_controller_config",
    "wait_for_state",
]
