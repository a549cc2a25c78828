from aws_cdk import (
    aws_iam as iam,
    aws_s3 as s3,
)

from pipeline.exceptions import OrderingError
from stacks.destination_stack import DestinationHandle
from stacks.storage_authority import StorageLocation

REPLICATION_RULE_ID = "CrossRegionReplicationRule"


def bind_replication(primary: StorageLocation, destination: DestinationHandle, agent_role: iam.Role) -> str:
    """
    Applies the single replication rule of a primary bucket. Only SSE-KMS
    objects replicate; replicas are re-encrypted under the destination key
    and owned by the destination account.
    """
    path = primary.bucket.node.path
    if destination is None:
        raise OrderingError(path, "destination storage must be provisioned before replication is bound")
    for field in ("bucket_arn", "key_arn", "account"):
        if not getattr(destination, field):
            raise OrderingError(path, f"destination {field} is not resolvable")

    cfn_bucket = primary.bucket.node.default_child
    if cfn_bucket.replication_configuration is not None:
        raise OrderingError(path, "replication is already bound for this bucket")

    cfn_bucket.replication_configuration = s3.CfnBucket.ReplicationConfigurationProperty(
        role=agent_role.role_arn,
        rules=[
            s3.CfnBucket.ReplicationRuleProperty(
                id=REPLICATION_RULE_ID,
                status="Enabled",
                destination=s3.CfnBucket.ReplicationDestinationProperty(
                    bucket=destination.bucket_arn,
                    encryption_configuration=s3.CfnBucket.EncryptionConfigurationProperty(
                        replica_kms_key_id=destination.key_arn
                    ),
                    account=destination.account,
                    access_control_translation=s3.CfnBucket.AccessControlTranslationProperty(
                        owner="Destination"
                    )
                ),
                source_selection_criteria=s3.CfnBucket.SourceSelectionCriteriaProperty(
                    sse_kms_encrypted_objects=s3.CfnBucket.SseKmsEncryptedObjectsProperty(
                        status="Enabled"
                    )
                )
            )
        ]
    )
    return REPLICATION_RULE_ID
