"""Main failover logic: win a slot, then take over its Elastic IP"""

import logging
import random
import time
from typing import Callable, Optional

from .binder import AddressBinder
from .config import Config
from .coordinator import ConsulCoordinator
from .exceptions import CoordinationError
from .logger import setup_logger
from .metadata import MetadataService
from .models import LockHandle
from .selector import SlotSelector


class EIPFailover:
    """Elects this instance owner of one Elastic IP from a Consul directory"""

    DEFAULT_PREFIX = "nginx/eip/"

    def __init__(
        self,
        config: Config,
        prefix: str = DEFAULT_PREFIX,
        metadata_service: Optional[MetadataService] = None,
        coordinator: Optional[ConsulCoordinator] = None,
        ec2_client=None,
        logger: Optional[logging.Logger] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize failover manager

        Args:
            config: Configuration object
            prefix: Consul key prefix of the Address Directory
            metadata_service: Optional metadata service (for testing)
            coordinator: Optional Consul client (for testing)
            ec2_client: Optional boto3 EC2 client (for testing)
            logger: Optional logger instance (for testing)
            rng: Optional random source for slot ordering (for testing)
            sleep: Sleep function (for testing)

        Raises:
            MetadataError: If the instance identity cannot be read
        """
        self.config = config
        self.prefix = prefix
        self.logger = logger or setup_logger(
            "eip_failover", log_level=config.log_level, log_file=config.log_file
        )
        self.sleep = sleep
        self.metadata_service = metadata_service or MetadataService(
            timeout=config.metadata_timeout
        )
        self.coordinator = coordinator or ConsulCoordinator(
            address=config.consul_address,
            token=config.consul_token,
            datacenter=config.consul_datacenter,
            session_ttl=config.session_ttl,
            lock_delay=config.lock_delay,
            timeout=config.request_timeout,
        )

        self.identity = self.metadata_service.get_identity()
        self.logger.info(
            f"Initialized for instance {self.identity.instance_id} "
            f"({self.identity.private_ip}, {self.identity.availability_zone})"
        )

        self.selector = SlotSelector(
            self.coordinator,
            retry_interval=config.retry_interval,
            empty_backoff=config.empty_backoff,
            timeout=config.acquire_timeout,
            rng=rng,
            sleep=sleep,
            lock_value=self.identity.instance_id,
            logger=self.logger,
        )
        self.binder = AddressBinder(self.identity, ec2_client=ec2_client, logger=self.logger)

        self.allocation_id: Optional[str] = None
        self.lock: Optional[LockHandle] = None

    def acquire(self) -> str:
        """
        Lock a free slot under the configured prefix

        Returns:
            Allocation ID stored in the won slot
        """
        self.logger.info(f"Competing for a slot under {self.prefix!r}")
        self.allocation_id, self.lock = self.selector.acquire_slot(self.prefix)
        return self.allocation_id

    def reconcile(self) -> str:
        """
        Take over the Elastic IP of the held slot

        The session is renewed right before the binding is touched, so an
        expired lock stops the takeover before any EC2 mutation.

        Raises:
            LockLostError: If the slot lock expired since it was acquired
        """
        if self.lock is None or self.allocation_id is None:
            raise CoordinationError("Cannot reconcile an address without holding its slot")

        address = self.binder.describe(self.allocation_id)
        state = self.binder.binding_state(self.allocation_id, address)
        self.logger.info(f"{self.allocation_id} is currently {state.value}")

        self.coordinator.renew(self.lock)
        return self.binder.reconcile(self.allocation_id, address)

    def execute_failover(self) -> str:
        """
        Execute complete failover process

        The slot lock stays held afterwards; call release() or let the
        session expire when the process exits.

        Returns:
            Association ID of the address now bound to this instance
        """
        self.logger.info("=" * 60)
        self.logger.info("Starting EIP failover process")
        self.logger.info("=" * 60)

        self.acquire()
        association_id = self.reconcile()

        self.logger.info("=" * 60)
        self.logger.info(
            f"Failover completed: {self.allocation_id} bound to {self.identity.instance_id}"
        )
        self.logger.info("=" * 60)
        return association_id

    def hold(self, stop: Optional[Callable[[], bool]] = None):
        """
        Keep the slot lock alive until stopped, then release it

        Args:
            stop: Optional predicate checked before each renewal; the
                first renewal happens before the first sleep

        Raises:
            LockLostError: If the session expired behind our back
        """
        if self.lock is None:
            raise CoordinationError("No slot lock is held")

        self.logger.info(
            f"Holding lock on {self.lock.key}, renewing every {self.config.renew_interval}s"
        )
        try:
            while not (stop and stop()):
                self.coordinator.renew(self.lock)
                self.sleep(self.config.renew_interval)
        except KeyboardInterrupt:
            self.logger.info("Interrupted, giving up the slot")
        finally:
            self.release()

    def release(self):
        """Release the slot lock if one is held"""
        if self.lock is not None and self.lock.held:
            self.coordinator.release(self.lock)
