from typing import Sequence

from aws_cdk import (
    aws_rds as rds,
    aws_sns as sns,
)
from constructs import Construct

from pipeline.events import EventBinding, subscription_filter


def subscribe(scope: Construct, topic: sns.ITopic, bindings: Sequence[EventBinding]) -> rds.CfnEventSubscription:
    """The pipeline's one RDS event subscription, publishing to its topic."""
    event_filter = subscription_filter(bindings)
    return rds.CfnEventSubscription(scope, "RdsSnapshotEventNotification",
        sns_topic_arn=topic.topic_arn,
        enabled=True,
        event_categories=[event_filter.category],
        source_type=event_filter.source_type
    )
