"""
Worker-side agent: registers this machine with the broker and heartbeats.

Run on each worker machine (e.g. from the image's boot script):
    MACHINEPOOL_BACKEND_URL=http://broker:3000 python -m machinepool agent

The agent reads its identity from the EC2 instance metadata service
(IMDSv2 token when available, IMDSv1 otherwise), registers, then heartbeats
every 15 seconds. Any failure restarts the cycle with a fresh registration
after a short delay, so a broker restart or a lost record heals itself.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_METADATA_URL = "http://169.254.169.254/latest"
TOKEN_TTL_SECONDS = 21600


@dataclass
class InstanceMetadata:
    """Identity and addresses of this machine."""

    instance_id: str
    private_ip: Optional[str] = None
    public_ip: Optional[str] = None


class WorkerAgent:
    """
    Keeps one worker registered and alive.

    Usage:
        with WorkerAgent("http://broker:3000") as agent:
            agent.run(stop_event)
    """

    def __init__(
        self,
        backend_url: str,
        *,
        metadata_url: str = DEFAULT_METADATA_URL,
        heartbeat_interval: float = 15.0,
        retry_delay: float = 5.0,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not backend_url:
            raise ValueError("backend_url is required")
        self.backend_url = backend_url.rstrip("/")
        self.metadata_url = metadata_url.rstrip("/")
        self.heartbeat_interval = heartbeat_interval
        self.retry_delay = retry_delay
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "WorkerAgent":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Instance metadata
    # ------------------------------------------------------------------

    def _metadata_headers(self) -> Dict[str, str]:
        try:
            response = self._client.put(
                f"{self.metadata_url}/api/token",
                headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("IMDSv2 token unavailable, using IMDSv1: %s", exc)
            return {}
        return {"X-aws-ec2-metadata-token": response.text.strip()}

    def _metadata(self, path: str, headers: Dict[str, str]) -> str:
        response = self._client.get(f"{self.metadata_url}/meta-data/{path}", headers=headers)
        response.raise_for_status()
        return response.text.strip()

    def fetch_metadata(self) -> InstanceMetadata:
        """Read instance id and addresses. A missing public IP is not an error."""
        headers = self._metadata_headers()
        instance_id = self._metadata("instance-id", headers)
        private_ip = self._metadata("local-ipv4", headers)
        public_ip: Optional[str] = None
        try:
            public_ip = self._metadata("public-ipv4", headers) or None
        except httpx.HTTPError:
            logger.debug("No public IPv4 for %s", instance_id)
        return InstanceMetadata(
            instance_id=instance_id, private_ip=private_ip, public_ip=public_ip
        )

    # ------------------------------------------------------------------
    # Broker calls
    # ------------------------------------------------------------------

    def register(self, metadata: InstanceMetadata) -> None:
        response = self._client.post(
            f"{self.backend_url}/register",
            json={
                "instance_id": metadata.instance_id,
                "private_ip": metadata.private_ip,
                "public_ip": metadata.public_ip,
            },
        )
        response.raise_for_status()
        logger.info("Registered %s with %s", metadata.instance_id, self.backend_url)

    def heartbeat(self, instance_id: str) -> bool:
        """
        Send one heartbeat.

        Returns:
            False when the broker no longer knows this worker (re-register),
            True otherwise.
        """
        response = self._client.post(
            f"{self.backend_url}/heartbeat", json={"instance_id": instance_id}
        )
        if response.status_code == 404:
            logger.warning("Broker lost the record for %s", instance_id)
            return False
        response.raise_for_status()
        return True

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run_cycle(self, stop_event: threading.Event) -> None:
        """Register once, then heartbeat until the record is lost or stop is set."""
        metadata = self.fetch_metadata()
        self.register(metadata)
        while not stop_event.is_set():
            if not self.heartbeat(metadata.instance_id):
                return
            stop_event.wait(self.heartbeat_interval)

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Run until stop_event is set (forever when none is given)."""
        stop_event = stop_event or threading.Event()
        while not stop_event.is_set():
            try:
                self.run_cycle(stop_event)
            except httpx.HTTPError as exc:
                logger.error("Agent error: %s", exc)
                stop_event.wait(self.retry_delay)
