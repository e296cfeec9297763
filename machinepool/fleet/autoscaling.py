"""
AWS Auto Scaling group as fleet control.

describe() reads DesiredCapacity/MaxSize of the group; set_desired_size()
calls SetDesiredCapacity with HonorCooldown=False because the capacity
controller applies its own cooldown.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from machinepool.exceptions import DependencyFailureError, FleetNotFoundError
from machinepool.models import FleetSize

logger = logging.getLogger(__name__)


class AutoScalingFleet:
    """Fleet control over one Auto Scaling group."""

    def __init__(
        self,
        name: str,
        *,
        region: Optional[str] = None,
        timeout_seconds: float = 5.0,
        client: Any = None,
    ) -> None:
        self.name = name
        if client is None:
            config = Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"total_max_attempts": 1},
            )
            client = boto3.client("autoscaling", region_name=region, config=config)
        self._client = client

    def _failure(self, operation: str, exc: Exception) -> DependencyFailureError:
        logger.error("Auto Scaling %s failed for group %s: %s", operation, self.name, exc)
        return DependencyFailureError(
            f"Fleet {operation} failed: {exc}",
            dependency="fleet",
            details={"fleet_name": self.name, "operation": operation},
        )

    def describe(self) -> FleetSize:
        try:
            response = self._client.describe_auto_scaling_groups(
                AutoScalingGroupNames=[self.name]
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._failure("describe", exc) from exc

        groups = response.get("AutoScalingGroups") or []
        if not groups:
            raise FleetNotFoundError(self.name)
        group = groups[0]
        desired = group.get("DesiredCapacity") or 0
        max_size = group.get("MaxSize")
        if max_size is None:
            max_size = desired
        return FleetSize(desired=int(desired), max_size=int(max_size))

    def set_desired_size(self, size: int) -> None:
        try:
            self._client.set_desired_capacity(
                AutoScalingGroupName=self.name,
                DesiredCapacity=size,
                HonorCooldown=False,
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._failure("set_desired_capacity", exc) from exc
        logger.info("Auto Scaling group %s desired capacity set to %d", self.name, size)
