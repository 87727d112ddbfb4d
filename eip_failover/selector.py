"""Slot selection: win the lock on one free Address Directory entry"""

import logging
import random
import time
from typing import Callable, List, Optional, Tuple

from .coordinator import ConsulCoordinator
from .exceptions import SlotAcquisitionTimeout
from .models import LockHandle, Slot


class SlotSelector:
    """
    Picks one unclaimed slot under a prefix and locks it

    Slots are visited in a fresh uniformly random order every round so that
    instances racing for the same pool do not all try the same key first.
    Reading the lock entry before acquiring only avoids pointless acquire
    attempts; the acquire itself is what guarantees exclusion.
    """

    def __init__(
        self,
        coordinator: ConsulCoordinator,
        retry_interval: float = 3.0,
        empty_backoff: float = 3.0,
        timeout: Optional[float] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        lock_value: str = "",
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize slot selector

        Args:
            coordinator: Consul client used for listing and locking
            retry_interval: Seconds to wait after every slot was contended
            empty_backoff: Seconds to wait when the prefix holds no slots
            timeout: Optional deadline in seconds, None blocks until success
            rng: Random source for the visiting order (seed it in tests)
            sleep: Sleep function (for testing)
            clock: Monotonic clock (for testing)
            lock_value: Value written into the lock entry, e.g. the instance ID
            logger: Optional logger instance
        """
        self.coordinator = coordinator
        self.retry_interval = retry_interval
        self.empty_backoff = empty_backoff
        self.timeout = timeout
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.clock = clock
        self.lock_value = lock_value
        self.logger = logger or logging.getLogger(__name__)

    def list_slots(self, prefix: str) -> List[Slot]:
        """List directory entries under ``prefix`` that carry an allocation ID"""
        return [
            Slot(key=key, allocation_id=value.strip())
            for key, value in self.coordinator.list_keys(prefix)
            if value.strip()
        ]

    def candidate_order(self, slots: List[Slot]) -> List[Slot]:
        """Return a uniformly random permutation of ``slots``"""
        order = list(slots)
        self.rng.shuffle(order)
        return order

    def try_slots(self, slots: List[Slot]) -> Optional[Tuple[Slot, LockHandle]]:
        """
        Make one pass over ``slots`` in random order

        Returns:
            The first slot locked with its handle, or None if all were contended
        """
        for slot in self.candidate_order(slots):
            if self.coordinator.get_lock_status(slot.lock_key):
                self.logger.debug(f"Slot {slot.key} is already locked, skipping")
                continue

            handle = self.coordinator.acquire_lock(slot.lock_key, self.lock_value)
            if handle is None:
                self.logger.debug(f"Lost the race for slot {slot.key}")
                continue

            self.logger.info(f"Acquired lock on key {slot.key}")
            return slot, handle
        return None

    def _wait(self, seconds: float, started: float, prefix: str):
        if self.timeout is not None and self.clock() - started + seconds > self.timeout:
            raise SlotAcquisitionTimeout(
                f"No slot under {prefix!r} could be locked within {self.timeout}s"
            )
        self.sleep(seconds)

    def acquire_slot(self, prefix: str) -> Tuple[str, LockHandle]:
        """
        Lock one free slot under ``prefix``, retrying until one is won

        Returns:
            Tuple of (allocation ID, lock handle)

        Raises:
            CoordinationError: If Consul fails for a reason other than contention
            SlotAcquisitionTimeout: If a timeout is set and expires first
        """
        started = self.clock()
        while True:
            slots = self.list_slots(prefix)
            if not slots:
                self.logger.warning(
                    f"No slots found under {prefix!r}, retrying in {self.empty_backoff}s"
                )
                self._wait(self.empty_backoff, started, prefix)
                continue

            won = self.try_slots(slots)
            if won is not None:
                slot, handle = won
                return slot.allocation_id, handle

            self.logger.info(
                f"All {len(slots)} slot(s) under {prefix!r} are locked, "
                f"retrying in {self.retry_interval}s"
            )
            self._wait(self.retry_interval, started, prefix)
