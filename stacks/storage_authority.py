from typing import Optional, Sequence

from aws_cdk import (
    RemovalPolicy,
    aws_iam as iam,
    aws_s3 as s3,
)
from constructs import Construct

from pipeline.exceptions import OrderingError
from pipeline.permissions import bucket_resources, unique_actions
from stacks.key_authority import KeyAuthority


class StorageLocation:
    """An export bucket bound one-to-one to the key that encrypts it."""

    def __init__(self, bucket: s3.Bucket, key: KeyAuthority):
        self.bucket = bucket
        self.key = key

    @classmethod
    def create(
        cls,
        scope: Construct,
        construct_id: str,
        bucket_name: str,
        key: KeyAuthority,
        removal_policy: RemovalPolicy = RemovalPolicy.RETAIN
    ) -> "StorageLocation":
        bucket = s3.Bucket(scope, construct_id,
            bucket_name=bucket_name,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            versioned=True,  # Mandatory for Replication
            encryption=s3.BucketEncryption.KMS,
            encryption_key=key.key,
            removal_policy=removal_policy
        )
        return cls(bucket, key)

    @property
    def bucket_name(self) -> str:
        return self.bucket.bucket_name

    @property
    def bucket_arn(self) -> str:
        return self.bucket.bucket_arn

    def resources(self):
        return bucket_resources(self.bucket.bucket_arn)

    def allow(self, principals: Sequence[iam.IPrincipal], actions: Sequence[str], sid: Optional[str] = None) -> iam.PolicyStatement:
        """
        Adds a bucket policy statement over the bucket and its objects.
        Each principal must already be named by the bucket key's policy,
        otherwise the grant could never decrypt what it reads.
        """
        for principal in principals:
            if not self.key.has_principal(principal):
                raise OrderingError(
                    self.bucket.node.path,
                    "principal must be granted on the bucket key before the bucket policy names it"
                )

        statement = iam.PolicyStatement(
            sid=sid,
            effect=iam.Effect.ALLOW,
            principals=list(principals),
            actions=unique_actions(actions),
            resources=self.resources()
        )
        self.bucket.add_to_resource_policy(statement)
        return statement
