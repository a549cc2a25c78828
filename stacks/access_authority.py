from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from aws_cdk import aws_iam as iam
from constructs import Construct

from pipeline.exceptions import ProvisioningError
from pipeline.permissions import (
    KEY_READ_ACTIONS,
    KEY_WRITE_ACTIONS,
    EXPORT_TASK_BUCKET_ACTIONS,
    PASS_ROLE_ACTIONS,
    REPLICATION_DESTINATION_ACTIONS,
    REPLICATION_SOURCE_ACTIONS,
    TRIGGER_EXPORT_ACTIONS,
    TRIGGER_LOG_ACTIONS,
    UNSCOPED,
    bucket_resources,
    unique_actions,
)

EXPORT_SERVICE = "export.rds.amazonaws.com"
CRAWLER_SERVICE = "glue.amazonaws.com"
TRIGGER_SERVICE = "lambda.amazonaws.com"
REPLICATION_SERVICE = "s3.amazonaws.com"


def create_role(
    scope: Construct,
    construct_id: str,
    service: str,
    description: str,
    conditions: Optional[Dict[str, Any]] = None
) -> iam.Role:
    """A role assumable by exactly one AWS service."""
    if not service or UNSCOPED in service:
        raise ProvisioningError(f"{construct_id}: role must be assumable by a single named service")

    principal = iam.ServicePrincipal(service)
    if conditions:
        principal = principal.with_conditions(conditions)

    return iam.Role(scope, construct_id,
        assumed_by=principal,
        description=description
    )


def attach(role: iam.Role, actions: Sequence[str], resources: Sequence[str]) -> iam.PolicyStatement:
    """
    Appends an identity policy grant to the role. Unscoped resources are
    refused; every grant names the ARNs it applies to.
    """
    resources = list(resources)
    if not resources:
        raise ProvisioningError(f"{role.node.path}: grant of {', '.join(actions)} names no resources")
    if UNSCOPED in resources:
        raise ProvisioningError(f"{role.node.path}: unscoped grant of {', '.join(actions)} refused")

    statement = iam.PolicyStatement(
        effect=iam.Effect.ALLOW,
        actions=unique_actions(actions),
        resources=resources
    )
    role.add_to_policy(statement)
    return statement


@dataclass(frozen=True)
class PipelineRoles:
    export_task: iam.Role
    crawler: iam.Role
    trigger: iam.Role
    replication: iam.Role


def create_pipeline_roles(scope: Construct, db_name: str, account: str, primary_bucket_name: str) -> PipelineRoles:
    """
    Creates the four role skeletons of a pipeline. Grants are attached once
    the buckets and keys they reference exist.
    """
    export_task = create_role(scope, "SnapshotExportTaskRole", EXPORT_SERVICE,
        "Role used by RDS to perform snapshot exports to S3")

    crawler = create_role(scope, "SnapshotExportsGlueCrawlerRole", CRAWLER_SERVICE,
        "Role used by Glue to crawl snapshot exports")

    trigger = create_role(scope, "RdsSnapshotExporterLambdaExecutionRole", TRIGGER_SERVICE,
        f'RdsSnapshotExportToS3 Lambda execution role for the "{db_name}" database.')

    # Deterministic ARN keeps the trust policy free of a bucket -> role cycle
    replication = create_role(scope, "ReplicationRole", REPLICATION_SERVICE,
        f"Replicates {db_name} snapshot exports to the destination region",
        conditions={
            "StringEquals": {
                "aws:SourceAccount": account,
                "aws:SourceArn": f"arn:aws:s3:::{primary_bucket_name}"
            }
        })

    return PipelineRoles(export_task=export_task, crawler=crawler, trigger=trigger, replication=replication)


def rds_snapshot_resources(region: str, account: str, db_name: str) -> Sequence[str]:
    prefix = f"arn:aws:rds:{region}:{account}"
    return [
        f"{prefix}:snapshot:*",
        f"{prefix}:cluster-snapshot:*",
        f"{prefix}:db:{db_name}",
        f"{prefix}:cluster:{db_name}",
    ]


def log_group_resources(region: str, account: str, function_name: str) -> Sequence[str]:
    log_group = f"arn:aws:logs:{region}:{account}:log-group:/aws/lambda/{function_name}"
    return [log_group, f"{log_group}:*"]


def grant_export_task(roles: PipelineRoles, bucket_arn: str) -> None:
    attach(roles.export_task, EXPORT_TASK_BUCKET_ACTIONS, bucket_resources(bucket_arn))


def grant_trigger(roles: PipelineRoles, region: str, account: str, db_name: str, function_name: str) -> None:
    attach(roles.trigger, TRIGGER_EXPORT_ACTIONS, rds_snapshot_resources(region, account, db_name))
    attach(roles.trigger, TRIGGER_LOG_ACTIONS, log_group_resources(region, account, function_name))
    # Only the export task role may be handed to RDS
    attach(roles.trigger, PASS_ROLE_ACTIONS, [roles.export_task.role_arn])


def grant_replication(
    roles: PipelineRoles,
    source_bucket_arn: str,
    source_key_arn: str,
    destination_bucket_arn: str,
    destination_key_arn: str
) -> None:
    attach(roles.replication, REPLICATION_SOURCE_ACTIONS, bucket_resources(source_bucket_arn))
    attach(roles.replication, REPLICATION_DESTINATION_ACTIONS, bucket_resources(destination_bucket_arn))
    attach(roles.replication, KEY_READ_ACTIONS, [source_key_arn])
    # Write-only on the destination key
    attach(roles.replication, KEY_WRITE_ACTIONS, [destination_key_arn])
