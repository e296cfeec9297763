"""
DynamoDB-backed worker store.

Items keep the attribute layout of the existing machine_pool table:

    instanceId (hash key), publicIp, privateIp, status,
    lastHeartbeat, userId, leaseExpiry

Timestamps are stored as integer epoch milliseconds and exposed as float
epoch seconds on WorkerRecord. Conditional writes use ConditionExpression,
so the compare-then-set in try_transition() is enforced by DynamoDB itself.
"""
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from machinepool.exceptions import (
    ConflictError,
    DependencyFailureError,
    WorkerNotFoundError,
)
from machinepool.models import WorkerRecord, WorkerStatus
from machinepool.store.protocol import check_fields

logger = logging.getLogger(__name__)

_CONDITION_FAILED = "ConditionalCheckFailedException"

# WorkerRecord attribute -> item attribute
_ATTRIBUTES = {
    "status": "status",
    "user_id": "userId",
    "lease_expiry": "leaseExpiry",
}


def _to_millis(seconds: Optional[float]) -> Optional[int]:
    if seconds is None:
        return None
    return int(round(seconds * 1000))


def _from_millis(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(Decimal(value)) / 1000.0


def _encode(name: str, value: Any) -> Any:
    if name == "status":
        return WorkerStatus(value).value
    if name == "lease_expiry":
        return _to_millis(value)
    return value


def record_to_item(record: WorkerRecord) -> Dict[str, Any]:
    return {
        "instanceId": record.instance_id,
        "publicIp": record.public_ip,
        "privateIp": record.private_ip,
        "status": record.status.value,
        "lastHeartbeat": _to_millis(record.last_heartbeat),
        "userId": record.user_id,
        "leaseExpiry": _to_millis(record.lease_expiry),
    }


def item_to_record(item: Mapping[str, Any]) -> WorkerRecord:
    return WorkerRecord(
        instance_id=item["instanceId"],
        status=WorkerStatus(item.get("status") or WorkerStatus.AVAILABLE.value),
        public_ip=item.get("publicIp"),
        private_ip=item.get("privateIp"),
        last_heartbeat=_from_millis(item.get("lastHeartbeat")) or 0.0,
        lease_expiry=_from_millis(item.get("leaseExpiry")),
        user_id=item.get("userId"),
    )


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == _CONDITION_FAILED


class DynamoWorkerStore:
    """
    Worker store over a DynamoDB table.

    Usage:
        store = DynamoWorkerStore("machine_pool", region="ap-south-1")
        store.register("i-0abc", public_ip="3.1.2.3")

    Pass `table` to inject a preconfigured boto3 Table (or a test double).
    """

    def __init__(
        self,
        table_name: str,
        *,
        region: Optional[str] = None,
        timeout_seconds: float = 5.0,
        table: Any = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.table_name = table_name
        self._clock = clock
        if table is None:
            # Retries are a caller concern; botocore makes a single attempt.
            config = Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"total_max_attempts": 1},
            )
            table = boto3.resource("dynamodb", region_name=region, config=config).Table(
                table_name
            )
        self._table = table

    def _failure(self, operation: str, exc: Exception) -> DependencyFailureError:
        logger.error(
            "DynamoDB %s failed on table %s: %s", operation, self.table_name, exc
        )
        return DependencyFailureError(
            f"Worker store {operation} failed: {exc}",
            dependency="store",
            details={"table": self.table_name, "operation": operation},
        )

    def register(
        self,
        instance_id: str,
        public_ip: Optional[str] = None,
        private_ip: Optional[str] = None,
    ) -> WorkerRecord:
        record = WorkerRecord(
            instance_id=instance_id,
            status=WorkerStatus.AVAILABLE,
            public_ip=public_ip or None,
            private_ip=private_ip or None,
            last_heartbeat=self._clock(),
        )
        try:
            self._table.put_item(Item=record_to_item(record))
        except (ClientError, BotoCoreError) as exc:
            raise self._failure("register", exc) from exc
        return record

    def heartbeat(self, instance_id: str) -> None:
        try:
            self._table.update_item(
                Key={"instanceId": instance_id},
                UpdateExpression="SET lastHeartbeat = :t",
                ConditionExpression=Attr("instanceId").exists(),
                ExpressionAttributeValues={":t": _to_millis(self._clock())},
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise WorkerNotFoundError(instance_id) from exc
            raise self._failure("heartbeat", exc) from exc
        except BotoCoreError as exc:
            raise self._failure("heartbeat", exc) from exc

    def get(self, instance_id: str) -> WorkerRecord:
        try:
            response = self._table.get_item(
                Key={"instanceId": instance_id}, ConsistentRead=True
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._failure("get", exc) from exc
        item = response.get("Item")
        if item is None:
            raise WorkerNotFoundError(instance_id)
        return item_to_record(item)

    def list_by_status(self, status: WorkerStatus) -> List[WorkerRecord]:
        # Full scan; fine for pools of a few hundred machines.
        kwargs: Dict[str, Any] = {"FilterExpression": Attr("status").eq(status.value)}
        records: List[WorkerRecord] = []
        try:
            while True:
                response = self._table.scan(**kwargs)
                records.extend(item_to_record(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as exc:
            raise self._failure("scan", exc) from exc
        return records

    def _update(
        self,
        instance_id: str,
        fields: Mapping[str, Any],
        condition: Any,
    ) -> WorkerRecord:
        # boto3 names the placeholders of Attr conditions #n0/:v0, so these must differ.
        changes = check_fields(fields)
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments: List[str] = []
        for index, (name, value) in enumerate(sorted(changes.items())):
            names[f"#attr{index}"] = _ATTRIBUTES[name]
            values[f":val{index}"] = _encode(name, value)
            assignments.append(f"#attr{index} = :val{index}")

        response = self._table.update_item(
            Key={"instanceId": instance_id},
            UpdateExpression="SET " + ", ".join(assignments),
            ConditionExpression=condition,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
        return item_to_record(response["Attributes"])

    def try_transition(
        self,
        instance_id: str,
        expected_status: WorkerStatus,
        fields: Mapping[str, Any],
    ) -> WorkerRecord:
        try:
            return self._update(
                instance_id,
                fields,
                Attr("status").eq(expected_status.value),
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise ConflictError(instance_id, expected_status.value) from exc
            raise self._failure("try_transition", exc) from exc
        except BotoCoreError as exc:
            raise self._failure("try_transition", exc) from exc

    def update(self, instance_id: str, fields: Mapping[str, Any]) -> WorkerRecord:
        try:
            return self._update(instance_id, fields, Attr("instanceId").exists())
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise WorkerNotFoundError(instance_id) from exc
            raise self._failure("update", exc) from exc
        except BotoCoreError as exc:
            raise self._failure("update", exc) from exc
