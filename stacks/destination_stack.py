from dataclasses import dataclass

from aws_cdk import (
    Stack,
    CfnOutput,
    aws_iam as iam,
)
from constructs import Construct

from pipeline.permissions import (
    DESTINATION_BUCKET_REPLICATION_ACTIONS,
    DESTINATION_KEY_ACCOUNT_ACTIONS,
)
from pipeline.specs import destination_bucket_name
from stacks.key_authority import KeyAuthority
from stacks.storage_authority import StorageLocation


@dataclass(frozen=True)
class DestinationHandle:
    """
    What an export pipeline needs from the destination region: the bucket it
    replicates into and the key replicas are re-encrypted under.
    """
    base_name: str
    region: str
    account: str
    bucket_name: str
    bucket_arn: str
    key_arn: str


class DestinationBucketStack(Stack):
    """
    Destination storage in the secondary region, shared by every pipeline
    whose database identifier has the same base name.
    """
    def __init__(self, scope: Construct, construct_id: str, config, base_name: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        bucket_name = destination_bucket_name(config.bucket_prefix, base_name, config.destination_region)
        account = iam.AccountPrincipal(config.account)

        # =================================================================
        # 1. DESTINATION KEY
        # =================================================================
        self.key = KeyAuthority.create(self, "DestinationKey",
            alias=f"{config.bucket_prefix}-{base_name}-key",
            removal_policy=config.removal_policy
        )
        self.key.grant([account], DESTINATION_KEY_ACCOUNT_ACTIONS, sid="AllowAccountUseOfTheKey")

        # =================================================================
        # 2. DESTINATION BUCKET
        # =================================================================
        self.storage = StorageLocation.create(self, "SnapshotExportDestinationBucket",
            bucket_name=bucket_name,
            key=self.key,
            removal_policy=config.removal_policy
        )
        self.storage.allow([account], DESTINATION_BUCKET_REPLICATION_ACTIONS, sid="AllowReplicationFromAccount")

        self.handle = DestinationHandle(
            base_name=base_name,
            region=config.destination_region,
            account=config.account,
            bucket_name=bucket_name,
            bucket_arn=f"arn:aws:s3:::{bucket_name}",
            key_arn=self.key.key_arn
        )

        # =================================================================
        # 3. OUTPUTS
        # =================================================================
        CfnOutput(self, "DestinationBucketName", value=bucket_name)
        CfnOutput(self, "DestinationBucketArn", value=self.storage.bucket_arn,
            export_name=f"{construct_id}-bucket-arn")
        CfnOutput(self, "DestinationKeyArn", value=self.key.key_arn,
            export_name=f"{construct_id}-key-arn")
