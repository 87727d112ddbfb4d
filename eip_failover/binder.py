"""Elastic IP association management"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import EC2APIError, StaleAllocationError
from .models import InstanceIdentity

NOT_FOUND_CODES = ("InvalidAllocationID.NotFound",)


class BindingState(Enum):
    """Who the provider currently shows as owner of an address"""

    UNBOUND = "unbound"
    BOUND_TO_SELF = "bound-to-self"
    BOUND_ELSEWHERE = "bound-elsewhere"


class AddressBinder:
    """Reconciles an Elastic IP's association with the current instance"""

    def __init__(
        self,
        identity: InstanceIdentity,
        ec2_client=None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize address binder

        Args:
            identity: Identity of the instance that should own the address
            ec2_client: Optional boto3 EC2 client (for testing)
            logger: Optional logger instance (for testing)
        """
        self.identity = identity
        self.ec2 = ec2_client or boto3.client("ec2", region_name=identity.region)
        self.logger = logger or logging.getLogger(__name__)

    def describe(self, allocation_id: str) -> Dict[str, Any]:
        """
        Get the provider's record for an allocation ID

        Raises:
            StaleAllocationError: If no address has this allocation ID
            EC2APIError: If the API request fails
        """
        try:
            response = self.ec2.describe_addresses(AllocationIds=[allocation_id])
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                raise StaleAllocationError(
                    f"Could not find EIP with AllocationId {allocation_id}"
                )
            raise EC2APIError(f"Failed to describe {allocation_id}: {e}")
        except BotoCoreError as e:
            raise EC2APIError(f"Failed to describe {allocation_id}: {e}")

        addresses = response.get("Addresses", [])
        if not addresses:
            raise StaleAllocationError(
                f"Could not find EIP with AllocationId {allocation_id}"
            )
        return addresses[0]

    def is_associated(self, allocation_id: str, address: Optional[Dict[str, Any]] = None) -> bool:
        """
        Check whether the address is associated with any instance

        Args:
            allocation_id: Allocation ID of the Elastic IP
            address: Record from describe(), fetched when not given
        """
        if address is None:
            address = self.describe(allocation_id)
        return bool(address.get("AssociationId"))

    def binding_state(
        self, allocation_id: str, address: Optional[Dict[str, Any]] = None
    ) -> BindingState:
        if address is None:
            address = self.describe(allocation_id)
        if not address.get("AssociationId"):
            return BindingState.UNBOUND
        if address.get("InstanceId") == self.identity.instance_id:
            return BindingState.BOUND_TO_SELF
        return BindingState.BOUND_ELSEWHERE

    def disassociate(self, allocation_id: str, address: Optional[Dict[str, Any]] = None) -> bool:
        """
        Remove the address's current association, best effort

        Failures are logged and reported, never raised: the reassociating
        associate call that follows replaces a stale association anyway.

        Args:
            allocation_id: Allocation ID of the Elastic IP
            address: Record from describe(), fetched when not given

        Returns:
            True if an association was removed, False otherwise
        """
        try:
            if address is None:
                address = self.describe(allocation_id)
            association_id = address.get("AssociationId")
            if not association_id:
                self.logger.info(f"{allocation_id} has no association to remove")
                return False

            self.logger.info(
                f"Disassociating {allocation_id} (association {association_id})"
            )
            self.ec2.disassociate_address(AssociationId=association_id)
            return True
        except (EC2APIError, ClientError, BotoCoreError) as e:
            self.logger.warning(f"Failed to disassociate {allocation_id}: {e}")
            return False

    def associate(self, allocation_id: str, instance_id: Optional[str] = None) -> str:
        """
        Associate the address with an instance, replacing any association

        Args:
            allocation_id: Allocation ID of the Elastic IP
            instance_id: Target instance, defaults to the current instance

        Returns:
            The new association ID

        Raises:
            EC2APIError: If the association fails
        """
        instance_id = instance_id or self.identity.instance_id
        self.logger.info(f"Associating {allocation_id} with instance {instance_id}")
        try:
            response = self.ec2.associate_address(
                AllocationId=allocation_id,
                InstanceId=instance_id,
                AllowReassociation=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise EC2APIError(
                f"Failed to associate {allocation_id} with {instance_id}: {e}"
            )

        association_id = response.get("AssociationId", "")
        self.logger.info(
            f"Successfully associated {allocation_id} with {instance_id} "
            f"(association {association_id})"
        )
        return association_id

    def reconcile(self, allocation_id: str, address: Optional[Dict[str, Any]] = None) -> str:
        """
        Make the current instance the owner of the address

        Safe to repeat: a second run disassociates and rebinds to the same
        instance.

        Args:
            allocation_id: Allocation ID of the Elastic IP
            address: Record from describe(), fetched when not given

        Returns:
            The new association ID
        """
        if address is None:
            address = self.describe(allocation_id)
        if self.is_associated(allocation_id, address):
            self.disassociate(allocation_id, address)
        return self.associate(allocation_id)
