import json
from typing import List, Optional, Sequence, Set

from aws_cdk import (
    RemovalPolicy,
    aws_iam as iam,
    aws_kms as kms,
)
from constructs import Construct

from pipeline.permissions import unique_actions


def principal_id(principal: iam.IPrincipal) -> str:
    """
    Stable identity of a principal within one synthesis. Account principals
    render through a fresh token per instance, so they are compared by id.
    """
    if isinstance(principal, iam.AccountPrincipal):
        return f"account:{principal.account_id}"
    if isinstance(principal, iam.ServicePrincipal):
        return f"service:{principal.service}"
    if isinstance(principal, iam.Role):
        return f"arn:{principal.role_arn}"
    if isinstance(principal, iam.ArnPrincipal):
        return f"arn:{principal.arn}"
    return json.dumps(principal.policy_fragment.principal_json, sort_keys=True)


class KeyAuthority:
    """
    A customer managed key plus a record of every principal its resource
    policy names. Bucket policies consult that record before granting.
    """

    def __init__(self, key: kms.IKey):
        self.key = key
        self._principals: Set[str] = set()
        self.statements: List[iam.PolicyStatement] = []

    @classmethod
    def create(
        cls,
        scope: Construct,
        construct_id: str,
        alias: str,
        removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
        description: Optional[str] = None
    ) -> "KeyAuthority":
        key = kms.Key(scope, construct_id,
            alias=alias,
            description=description,
            enable_key_rotation=True,
            removal_policy=removal_policy
        )
        return cls(key)

    @property
    def key_arn(self) -> str:
        return self.key.key_arn

    def grant(self, principals: Sequence[iam.IPrincipal], actions: Sequence[str], sid: Optional[str] = None) -> iam.PolicyStatement:
        """
        Appends a key policy statement. Repeated actions collapse into one.
        The resource of a key policy statement is always the key itself ('*').
        """
        statement = iam.PolicyStatement(
            sid=sid,
            effect=iam.Effect.ALLOW,
            principals=list(principals),
            actions=unique_actions(actions),
            resources=["*"]
        )
        self.key.add_to_resource_policy(statement)
        self.statements.append(statement)
        self._principals.update(principal_id(p) for p in principals)
        return statement

    def has_principal(self, principal: iam.IPrincipal) -> bool:
        return principal_id(principal) in self._principals
