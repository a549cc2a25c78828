import json

import aws_cdk as core
import aws_cdk.assertions as assertions

from support import make_config
from stacks.provisioning import provision

SHARED = ["userbets0-production-psql", "userbets0-staging-psql", "betting-production-psql"]


def policy_statements(stack):
    template = assertions.Template.from_stack(stack)
    statements = set()
    for policy in template.find_resources("AWS::IAM::Policy").values():
        for statement in policy["Properties"]["PolicyDocument"]["Statement"]:
            statements.add(json.dumps(statement, sort_keys=True))
    for key in template.find_resources("AWS::KMS::Key").values():
        for statement in key["Properties"]["KeyPolicy"]["Statement"]:
            statements.add(json.dumps(statement, sort_keys=True))
    return statements


def test_destination_is_created_once_per_base_name():
    provisioned = provision(core.App(), make_config(SHARED))

    assert sorted(provisioned.destinations) == ["betting", "userbets0"]
    assert sorted(s.stack_name for s in provisioned.pipelines.values()) == [
        "export-pipeline-betting",
        "export-pipeline-userbets0-production-psql",
        "export-pipeline-userbets0-staging-psql",
    ]


def test_shared_base_name_resolves_to_same_destination():
    provisioned = provision(core.App(), make_config(SHARED))
    production = provisioned.pipelines["userbets0-production-psql"].destination
    staging = provisioned.pipelines["userbets0-staging-psql"].destination

    assert production is staging
    assert production.bucket_arn == "arn:aws:s3:::s3-rds-rdp-userbets0-sa-east-1"
    assert production.key_arn == staging.key_arn


def test_pipelines_depend_on_their_destination():
    provisioned = provision(core.App(), make_config(SHARED))

    for pipeline in provisioned.pipelines.values():
        destination = provisioned.destinations[pipeline.spec.base_name]
        assert destination.node.path in [d.node.path for d in pipeline.dependencies]
        assert pipeline.region == "us-east-1"
        assert destination.region == "sa-east-1"


def test_rebuilding_yields_the_same_trust_graph():
    first = provision(core.App(), make_config(["userbets0-production-psql"]))
    second = provision(core.App(), make_config(["userbets0-production-psql"]))

    for name in first.pipelines:
        assert policy_statements(first.pipelines[name]) == policy_statements(second.pipelines[name])
    assert policy_statements(first.destinations["userbets0"]) == policy_statements(second.destinations["userbets0"])


def test_teardown_retains_buckets_and_keys():
    provisioned = provision(core.App(), make_config(SHARED))
    stacks = list(provisioned.pipelines.values()) + list(provisioned.destinations.values())

    for stack in stacks:
        template = assertions.Template.from_stack(stack)
        for resource_type in ("AWS::S3::Bucket", "AWS::KMS::Key"):
            resources = template.find_resources(resource_type)
            assert resources
            for resource in resources.values():
                assert resource["DeletionPolicy"] == "Retain"
