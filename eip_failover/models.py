"""Value types shared by the selector, the coordinator and the binder"""

from dataclasses import dataclass, field
from typing import Any, Dict

LOCK_PREFIX = "lock/"


def lock_key_for(slot_key: str) -> str:
    """Return the Consul key whose lock guards ``slot_key``"""
    return f"{LOCK_PREFIX}{slot_key}"


@dataclass(frozen=True)
class InstanceIdentity:
    """Identity of the running EC2 instance, read once at startup"""

    private_ip: str
    availability_zone: str
    instance_id: str
    region: str

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "InstanceIdentity":
        """
        Build an identity from an instance-identity document

        Raises:
            KeyError: If a required field is missing
        """
        return cls(
            private_ip=document["privateIp"],
            availability_zone=document["availabilityZone"],
            instance_id=document["instanceId"],
            region=document["region"],
        )


@dataclass(frozen=True)
class Slot:
    """One Address Directory entry: a Consul key and the allocation ID it holds"""

    key: str
    allocation_id: str

    @property
    def lock_key(self) -> str:
        return lock_key_for(self.key)


@dataclass
class LockHandle:
    """
    Exclusive, session-bound ownership of one lock key

    Consul guarantees at most one live handle per key across the fleet.
    ``held`` only reflects what this process knows; the session in Consul
    is the source of truth.
    """

    key: str
    session_id: str
    held: bool = field(default=True, compare=False)
