import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))
logging.getLogger("boto3").setLevel(logging.WARNING)
logging.getLogger("botocore").setLevel(logging.WARNING)

# Clients are created on first use and re-used while the container is warm
_CLIENTS: Dict[str, Any] = {}


def client(name: str):
    if name not in _CLIENTS:
        _CLIENTS[name] = boto3.client(name)
    return _CLIENTS[name]


def split_env(key: str) -> List[str]:
    return [item for item in os.environ.get(key, "").split(",") if item]


def event_code(message: Dict[str, Any]) -> str:
    # 'http://docs.amazonwebservices.com/...#RDS-EVENT-0091' -> 'RDS-EVENT-0091'
    return message.get("Event ID", "").rsplit("#", 1)[-1]


def snapshot_identifier(source_id: str) -> str:
    """Strips the 'rds:' / 'awsbackup:job-...:' style prefixes of managed snapshots."""
    return source_id.rsplit(":", 1)[-1]


def export_task_identifier(source_id: str) -> str:
    identifier = re.sub(r"[^A-Za-z0-9-]", "-", snapshot_identifier(source_id)).strip("-")
    if not identifier[:1].isalpha():
        identifier = f"export-{identifier}"
    return identifier[:60]


def match_binding(message: Dict[str, Any]) -> Optional[int]:
    """
    Index of the configured binding this message triggers, or None.
    RDS_EVENT_IDS, RDS_SNAPSHOT_TYPES and DB_SNAPSHOT_TYPES are index-aligned.
    """
    code = event_code(message)
    event_ids = split_env("RDS_EVENT_IDS")
    if code not in event_ids:
        return None

    index = event_ids.index(code)
    source_id = message.get("Source ID", "")
    db_name = os.environ["DB_NAME"]

    if split_env("RDS_SNAPSHOT_TYPES")[index] == "BACKUP":
        # AWS Backup names snapshots 'awsbackup:job-<id>', so ask RDS who owns it
        if snapshot_owner(source_id, split_env("DB_SNAPSHOT_TYPES")[index]) != db_name:
            return None
    elif not snapshot_identifier(source_id).startswith(f"{db_name}-"):
        return None
    return index


def snapshot_owner(source_id: str, snapshot_kind: str) -> Optional[str]:
    """Database or cluster identifier the snapshot was taken from."""
    try:
        if snapshot_kind == "cluster-snapshot":
            snapshots = client("rds").describe_db_cluster_snapshots(
                DBClusterSnapshotIdentifier=source_id)["DBClusterSnapshots"]
            return snapshots[0]["DBClusterIdentifier"] if snapshots else None
        snapshots = client("rds").describe_db_snapshots(
            DBSnapshotIdentifier=source_id)["DBSnapshots"]
        return snapshots[0]["DBInstanceIdentifier"] if snapshots else None
    except ClientError as e:
        if e.response["Error"]["Code"] in ("DBSnapshotNotFound", "DBClusterSnapshotNotFoundFault"):
            logger.warning("Snapshot %s not found", source_id)
            return None
        raise


def source_arn(message: Dict[str, Any], snapshot_kind: str) -> str:
    if message.get("Source ARN"):
        return message["Source ARN"]
    account_id = client("sts").get_caller_identity()["Account"]
    region = os.environ["AWS_REGION"]
    return f"arn:aws:rds:{region}:{account_id}:{snapshot_kind}:{message['Source ID']}"


def start_export(message: Dict[str, Any], index: int) -> Dict[str, Any]:
    snapshot_kind = split_env("DB_SNAPSHOT_TYPES")[index]
    snapshot_type = split_env("RDS_SNAPSHOT_TYPES")[index]
    logger.info("Starting export of %s snapshot %s", snapshot_type, message["Source ID"])

    return client("rds").start_export_task(
        ExportTaskIdentifier=export_task_identifier(message["Source ID"]),
        SourceArn=source_arn(message, snapshot_kind),
        S3BucketName=os.environ["SNAPSHOT_BUCKET_NAME"],
        IamRoleArn=os.environ["SNAPSHOT_TASK_ROLE"],
        KmsKeyId=os.environ["SNAPSHOT_TASK_KEY"],
    )


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Entry point for RDS event notifications delivered through SNS.
    Starts one export task per message matching a configured binding.
    """
    started = []
    for record in event.get("Records", []):
        if record.get("EventSource") != "aws:sns":
            logger.warning("Ignoring record from %s", record.get("EventSource"))
            continue

        message = json.loads(record["Sns"]["Message"])
        index = match_binding(message)
        if index is None:
            logger.info("Ignoring %s for %s", event_code(message), message.get("Source ID"))
            continue

        try:
            response = start_export(message, index)
        except ClientError as e:
            logger.error("Export of %s failed: %s", message["Source ID"], e.response["Error"]["Message"])
            raise

        logger.info("Export task %s: %s", response["ExportTaskIdentifier"], response["Status"])
        started.append(response["ExportTaskIdentifier"])

    return {"started": started}
