"""Consul client for the Address Directory and its slot locks

Only the primitives the slot selector needs are exposed. Mutual exclusion
comes from Consul's atomic ``?acquire=`` write; nothing here tries to
serialize competing instances on its own.
"""

import base64
import logging
from typing import List, Optional, Tuple

import requests

from .exceptions import CoordinationError, LockLostError
from .models import LockHandle

logger = logging.getLogger(__name__)

# Flag Consul's lock helpers set on lock entries
LOCK_FLAG_VALUE = 0x2ddccbc058a50c18


def _decode_value(raw: Optional[str]) -> str:
    if not raw:
        return ""
    return base64.b64decode(raw).decode("utf-8")


class ConsulCoordinator:
    """Thin wrapper over Consul's KV and session HTTP endpoints"""

    SESSION_NAME = "eip-failover"

    def __init__(
        self,
        address: str = "http://127.0.0.1:8500",
        token: Optional[str] = None,
        datacenter: Optional[str] = None,
        session_ttl: str = "15s",
        lock_delay: str = "15s",
        timeout: float = 10,
        http: Optional[requests.Session] = None,
    ):
        """
        Initialize the Consul client

        Args:
            address: Base URL of the Consul HTTP API
            token: Optional ACL token
            datacenter: Optional datacenter to query instead of the agent's own
            session_ttl: TTL of lock sessions, as a Consul duration
            lock_delay: Lock delay applied when a session is invalidated
            timeout: Request timeout in seconds
            http: Optional requests session (for testing)
        """
        self.address = address.rstrip("/")
        self.datacenter = datacenter
        self.session_ttl = session_ttl
        self.lock_delay = lock_delay
        self.timeout = timeout
        self.http = http or requests.Session()
        if token:
            self.http.headers["X-Consul-Token"] = token

    def _request(self, method: str, path: str, params=None, allow_404=False, **kwargs):
        params = dict(params or {})
        if self.datacenter:
            params["dc"] = self.datacenter
        url = f"{self.address}/v1/{path}"
        try:
            response = self.http.request(
                method, url, params=params, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.Timeout:
            raise CoordinationError(f"Timeout talking to Consul at {self.address}")
        except requests.exceptions.RequestException as e:
            raise CoordinationError(f"Failed to connect to Consul: {e}")

        if allow_404 and response.status_code == 404:
            return None
        if not response.ok:
            raise CoordinationError(
                f"Consul {method} {path} failed with HTTP {response.status_code}: "
                f"{response.text.strip()}"
            )
        return response

    def _json(self, response):
        try:
            return response.json()
        except ValueError as e:
            raise CoordinationError(f"Invalid response from Consul: {e}")

    def list_keys(self, prefix: str) -> List[Tuple[str, str]]:
        """
        List every key under ``prefix`` with its decoded value

        Returns:
            List of (key, value) pairs ordered by key, empty if none exist

        Raises:
            CoordinationError: If Consul cannot be queried
        """
        response = self._request(
            "GET", f"kv/{prefix}", params={"recurse": "true"}, allow_404=True
        )
        if response is None:
            return []
        try:
            entries = [
                (entry["Key"], _decode_value(entry.get("Value")))
                for entry in self._json(response)
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise CoordinationError(f"Malformed KV listing for prefix {prefix!r}: {e}")
        return sorted(entries)

    def get_lock_status(self, key: str) -> Optional[str]:
        """
        Get the session currently holding ``key``

        Returns:
            Session ID, or None when the key is absent or unlocked
        """
        response = self._request("GET", f"kv/{key}", allow_404=True)
        if response is None:
            return None
        entries = self._json(response)
        if not entries:
            return None
        return entries[0].get("Session") or None

    def create_session(self) -> str:
        """Create a TTL session that releases its locks when invalidated"""
        body = {
            "Name": self.SESSION_NAME,
            "TTL": self.session_ttl,
            "LockDelay": self.lock_delay,
            "Behavior": "release",
        }
        response = self._request("PUT", "session/create", json=body)
        try:
            return self._json(response)["ID"]
        except (KeyError, TypeError):
            raise CoordinationError("Consul did not return a session ID")

    def destroy_session(self, session_id: str):
        self._request("PUT", f"session/destroy/{session_id}")

    def _discard_session(self, session_id: str):
        # The caller is already failing; a second error only gets logged
        try:
            self.destroy_session(session_id)
        except CoordinationError as e:
            logger.warning(f"Failed to destroy session {session_id}: {e}")

    def acquire_lock(self, key: str, value: str = "") -> Optional[LockHandle]:
        """
        Try once to take an exclusive lock on ``key``

        Args:
            key: Lock key
            value: Value stored in the lock entry while held

        Returns:
            LockHandle on success, None when another session holds the key

        Raises:
            CoordinationError: For any failure other than contention
        """
        session_id = self.create_session()
        try:
            response = self._request(
                "PUT",
                f"kv/{key}",
                params={"acquire": session_id, "flags": LOCK_FLAG_VALUE},
                data=value.encode("utf-8"),
            )
            acquired = self._json(response) is True
        except CoordinationError:
            self._discard_session(session_id)
            raise

        if acquired:
            logger.debug(f"Session {session_id} acquired {key}")
            return LockHandle(key=key, session_id=session_id)

        # Contended: drop the session so it does not linger until its TTL
        logger.debug(f"Lock on {key} is held by another session")
        self.destroy_session(session_id)
        return None

    def release(self, handle: LockHandle):
        """
        Release a held lock and destroy its session

        Releasing a handle that is no longer held does nothing.
        """
        if not handle.held:
            return
        self._request("PUT", f"kv/{handle.key}", params={"release": handle.session_id})
        self.destroy_session(handle.session_id)
        handle.held = False
        logger.info(f"Released lock on {handle.key}")

    def renew(self, handle: LockHandle):
        """
        Renew the session backing ``handle``

        Raises:
            LockLostError: If Consul no longer knows the session
        """
        response = self._request(
            "PUT", f"session/renew/{handle.session_id}", allow_404=True
        )
        if response is None or not self._json(response):
            handle.held = False
            raise LockLostError(
                f"Session {handle.session_id} for {handle.key} has expired"
            )
