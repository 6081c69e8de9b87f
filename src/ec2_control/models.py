from __future__ import annotations

from dataclasses import dataclass

UNKNOWN_PUBLIC_IP = "unknown"


@dataclass(slots=True, frozen=True)
class InstanceDescriptor:
    instance_id: str
    name: str | None
    state: str
    public_dns: str
    public_ip: str = UNKNOWN_PUBLIC_IP

    @property
    def display_name(self) -> str:
        return self.name or self.instance_id

    def as_record(self) -> dict[str, str | None]:
        return {
            "Name": self.name,
            "State": self.state,
            "Public_DNS": self.public_dns,
            "Public_IP": self.public_ip,
        }
