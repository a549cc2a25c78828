"""
Action vocabularies for the export pipeline trust graph.

Each tuple is granted as a unit to exactly one principal class. Keeping the
decrypt-side and encrypt-side key actions apart is what lets the replication
agent read the source key without ever reading back the destination.
"""
from typing import Iterable, List

# --- Key policies ---
KEY_DATA_ACTIONS = (
    "kms:Encrypt",
    "kms:Decrypt",
    "kms:ReEncrypt*",
    "kms:GenerateDataKey*",
    "kms:CreateGrant",
    "kms:ListGrants",
    "kms:DescribeKey",
)

# Account-level administration of the destination key.
DESTINATION_KEY_ACCOUNT_ACTIONS = (
    "kms:Encrypt",
    "kms:Decrypt",
    "kms:ReEncrypt*",
    "kms:GenerateDataKey*",
    "kms:CreateGrant",
    "kms:DescribeKey",
    "kms:RetireGrant",
    "kms:CreateGrant",
    "kms:ListGrants",
    "kms:ListGrants",
)

KEY_READ_ACTIONS = ("kms:Decrypt",)
KEY_WRITE_ACTIONS = ("kms:Encrypt", "kms:GenerateDataKey*")

# --- Export task ---
EXPORT_TASK_BUCKET_ACTIONS = (
    "s3:PutObject*",
    "s3:ListBucket",
    "s3:GetObject*",
    "s3:DeleteObject*",
    "s3:GetBucketLocation",
)

# --- Trigger ---
TRIGGER_EXPORT_ACTIONS = (
    "rds:StartExportTask",
    "rds:DescribeDBSnapshots",
    "rds:DescribeDBClusterSnapshots",
)
TRIGGER_LOG_ACTIONS = (
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
)
PASS_ROLE_ACTIONS = ("iam:PassRole",)

# --- Replication agent ---
REPLICATION_SOURCE_ACTIONS = (
    "s3:GetReplicationConfiguration",
    "s3:ListBucket",
    "s3:GetObjectVersionForReplication",
    "s3:GetObjectVersionAcl",
    "s3:GetObjectVersionTagging",
    "s3:GetObjectVersion",
)
REPLICATION_DESTINATION_ACTIONS = (
    "s3:ReplicateObject",
    "s3:ReplicateDelete",
    "s3:ReplicateTags",
    "s3:ObjectOwnerOverrideToBucketOwner",
)
DESTINATION_BUCKET_REPLICATION_ACTIONS = REPLICATION_DESTINATION_ACTIONS + (
    "s3:GetObjectVersionForReplication",
    "s3:GetObjectVersionTagging",
)

UNSCOPED = "*"


def unique_actions(actions: Iterable[str]) -> List[str]:
    """Drops repeated actions, keeping first-seen order."""
    return list(dict.fromkeys(actions))


def bucket_resources(bucket_arn: str) -> List[str]:
    return [bucket_arn, f"{bucket_arn}/*"]
