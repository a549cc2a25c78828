from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple

from pipeline.exceptions import ConfigurationError, UnknownEventError


class EventIdentity(Enum):
    """RDS event codes that can start a snapshot export."""
    AUTOMATED_AURORA_SNAPSHOT_CREATED = "RDS-EVENT-0169"
    AUTOMATED_SNAPSHOT_CREATED = "RDS-EVENT-0091"
    MANUAL_SNAPSHOT_CREATED = "RDS-EVENT-0042"
    BACKUP_SNAPSHOT_FINISHED_COPY = "RDS-EVENT-0197"


class SnapshotClass(Enum):
    AUTOMATED = "AUTOMATED"
    BACKUP = "BACKUP"
    MANUAL = "MANUAL"


CLUSTER_SNAPSHOT = "cluster-snapshot"
INSTANCE_SNAPSHOT = "snapshot"


@dataclass(frozen=True)
class EventBinding:
    identity: EventIdentity
    snapshot_class: SnapshotClass

    @classmethod
    def for_event(cls, identity: EventIdentity) -> "EventBinding":
        return cls(identity, classify(identity))


@dataclass(frozen=True)
class SubscriptionFilter:
    category: str
    source_type: str


# identity -> (snapshot class, snapshot kind used in the export source ARN)
_EVENT_TABLE: Dict[EventIdentity, Tuple[SnapshotClass, str]] = {
    EventIdentity.AUTOMATED_AURORA_SNAPSHOT_CREATED: (SnapshotClass.AUTOMATED, CLUSTER_SNAPSHOT),
    EventIdentity.AUTOMATED_SNAPSHOT_CREATED: (SnapshotClass.AUTOMATED, INSTANCE_SNAPSHOT),
    EventIdentity.MANUAL_SNAPSHOT_CREATED: (SnapshotClass.MANUAL, INSTANCE_SNAPSHOT),
    EventIdentity.BACKUP_SNAPSHOT_FINISHED_COPY: (SnapshotClass.BACKUP, INSTANCE_SNAPSHOT),
}

# First kind present in the bindings wins; one subscription per pipeline.
_SUBSCRIPTION_PRECEDENCE: Tuple[Tuple[str, SubscriptionFilter], ...] = (
    (CLUSTER_SNAPSHOT, SubscriptionFilter(category="backup", source_type="db-cluster-snapshot")),
    (INSTANCE_SNAPSHOT, SubscriptionFilter(category="creation", source_type="db-snapshot")),
)

DEFAULT_EVENT_BINDINGS: Tuple[EventBinding, ...] = (
    EventBinding(EventIdentity.AUTOMATED_AURORA_SNAPSHOT_CREATED, SnapshotClass.AUTOMATED),
    EventBinding(EventIdentity.MANUAL_SNAPSHOT_CREATED, SnapshotClass.MANUAL),
)


def parse_event_identity(value) -> EventIdentity:
    """
    Accepts an EventIdentity, its enum name or its RDS event code, in any case.
    Anything else is rejected rather than defaulted.
    """
    if isinstance(value, EventIdentity):
        return value
    if isinstance(value, str):
        text = value.strip().upper()
        if text in EventIdentity.__members__:
            return EventIdentity[text]
        for identity in EventIdentity:
            if identity.value == text:
                return identity
    raise UnknownEventError(value)


def parse_snapshot_class(value) -> SnapshotClass:
    if isinstance(value, SnapshotClass):
        return value
    if isinstance(value, str) and value.strip().upper() in SnapshotClass.__members__:
        return SnapshotClass[value.strip().upper()]
    raise ConfigurationError(f"Unknown snapshot class '{value}'")


def classify(identity) -> SnapshotClass:
    return _EVENT_TABLE[parse_event_identity(identity)][0]


def snapshot_kind(identity) -> str:
    return _EVENT_TABLE[parse_event_identity(identity)][1]


def validate_bindings(bindings: Iterable[EventBinding]) -> Tuple[EventBinding, ...]:
    """
    Checks a binding list is non-empty, free of repeats, and that every
    binding carries the class its identity classifies to. Returns the
    bindings with names and codes resolved to enum members.
    """
    result = []
    seen = set()
    for binding in bindings:
        identity = parse_event_identity(binding.identity)
        snapshot_class = parse_snapshot_class(binding.snapshot_class)
        if identity in seen:
            raise ConfigurationError(f"Event identity {identity.name} is bound more than once")
        seen.add(identity)

        expected = classify(identity)
        if snapshot_class != expected:
            raise ConfigurationError(
                f"{identity.name} produces {expected.value} snapshots, not {snapshot_class.value}"
            )
        result.append(EventBinding(identity, snapshot_class))

    if not result:
        raise ConfigurationError("At least one event binding is required")
    return tuple(result)


def subscription_filter(bindings: Iterable[EventBinding]) -> SubscriptionFilter:
    kinds = {snapshot_kind(b.identity) for b in bindings}
    for kind, event_filter in _SUBSCRIPTION_PRECEDENCE:
        if kind in kinds:
            return event_filter
    raise ConfigurationError("At least one event binding is required")


def uncovered_bindings(bindings: Iterable[EventBinding]) -> List[EventBinding]:
    """
    Bindings whose events the single chosen subscription will never deliver,
    e.g. a manual instance snapshot next to an Aurora cluster binding.
    """
    bindings = list(bindings)
    chosen = subscription_filter(bindings)
    covered = {kind for kind, f in _SUBSCRIPTION_PRECEDENCE if f == chosen}
    return [b for b in bindings if snapshot_kind(b.identity) not in covered]


def trigger_environment(
    db_name: str,
    bindings: Iterable[EventBinding],
    bucket_name: str,
    task_role_arn: str,
    key_arn: str,
    log_level: str = "INFO",
) -> Dict[str, str]:
    """
    Environment handed to the export worker. The three list values are
    comma-joined and index-aligned with the bindings.
    """
    bindings = validate_bindings(bindings)
    return {
        "RDS_EVENT_IDS": ",".join(b.identity.value for b in bindings),
        "RDS_SNAPSHOT_TYPES": ",".join(b.snapshot_class.value for b in bindings),
        "DB_NAME": db_name,
        "LOG_LEVEL": log_level,
        "SNAPSHOT_BUCKET_NAME": bucket_name,
        "SNAPSHOT_TASK_ROLE": task_role_arn,
        "SNAPSHOT_TASK_KEY": key_arn,
        "DB_SNAPSHOT_TYPES": ",".join(snapshot_kind(b.identity) for b in bindings),
    }
