"""Shared test doubles for Consul and EC2"""

import itertools
import logging
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from eip_failover.exceptions import LockLostError
from eip_failover.metadata import MetadataService
from eip_failover.models import InstanceIdentity, LockHandle


def client_error(code, operation, message="error"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeConsul:
    """In-memory stand-in for ConsulCoordinator with real lock semantics"""

    def __init__(self, kv=None):
        self.kv = dict(kv or {})
        self.locks = {}
        self.sessions = set()
        self._ids = itertools.count(1)
        self.acquire_attempts = []

    def list_keys(self, prefix):
        return sorted((k, v) for k, v in self.kv.items() if k.startswith(prefix))

    def get_lock_status(self, key):
        session = self.locks.get(key)
        return session if session in self.sessions else None

    def acquire_lock(self, key, value=""):
        self.acquire_attempts.append(key)
        if self.get_lock_status(key):
            return None
        session_id = f"session-{next(self._ids)}"
        self.sessions.add(session_id)
        self.locks[key] = session_id
        return LockHandle(key=key, session_id=session_id)

    def release(self, handle):
        if not handle.held:
            return
        if self.locks.get(handle.key) == handle.session_id:
            del self.locks[handle.key]
        self.sessions.discard(handle.session_id)
        handle.held = False

    def renew(self, handle):
        if handle.session_id not in self.sessions:
            handle.held = False
            raise LockLostError(f"Session {handle.session_id} has expired")

    def expire(self, session_id):
        """Simulate the holder crashing and its TTL running out"""
        self.sessions.discard(session_id)


class FakeEC2:
    """In-memory stand-in for the EC2 address APIs"""

    def __init__(self, addresses=None):
        self.addresses = {
            allocation_id: {"AllocationId": allocation_id, "PublicIp": ip}
            for allocation_id, ip in (addresses or {}).items()
        }
        self._ids = itertools.count(1)

    def bind(self, allocation_id, instance_id):
        association_id = f"eipassoc-{next(self._ids)}"
        self.addresses[allocation_id].update(
            AssociationId=association_id, InstanceId=instance_id
        )
        return association_id

    def describe_addresses(self, AllocationIds):
        missing = [a for a in AllocationIds if a not in self.addresses]
        if missing:
            raise client_error("InvalidAllocationID.NotFound", "DescribeAddresses")
        return {"Addresses": [dict(self.addresses[a]) for a in AllocationIds]}

    def associate_address(self, AllocationId, InstanceId, AllowReassociation=False):
        address = self.addresses[AllocationId]
        if address.get("AssociationId") and not AllowReassociation:
            raise client_error("Resource.AlreadyAssociated", "AssociateAddress")
        return {"AssociationId": self.bind(AllocationId, InstanceId)}

    def disassociate_address(self, AssociationId):
        for address in self.addresses.values():
            if address.get("AssociationId") == AssociationId:
                address.pop("AssociationId")
                address.pop("InstanceId", None)
                return {}
        raise client_error("InvalidAssociationID.NotFound", "DisassociateAddress")

    def owner(self, allocation_id):
        return self.addresses[allocation_id].get("InstanceId")


@pytest.fixture
def identity():
    return InstanceIdentity(
        private_ip="10.0.1.15",
        availability_zone="us-east-1a",
        instance_id="i-0aaaaaaaaaaaaaaaa",
        region="us-east-1",
    )


@pytest.fixture
def mock_metadata(identity):
    """Create a mock metadata service"""
    metadata = Mock(spec=MetadataService)
    metadata.get_identity.return_value = identity
    return metadata


@pytest.fixture
def mock_logger():
    """Create a mock logger"""
    return Mock(spec=logging.Logger)


@pytest.fixture
def consul():
    return FakeConsul({
        "nginx/eip/a": "eipalloc-1",
        "nginx/eip/b": "eipalloc-2",
    })


@pytest.fixture
def ec2():
    return FakeEC2({
        "eipalloc-1": "203.0.113.10",
        "eipalloc-2": "203.0.113.11",
    })
