from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from pipeline.events import DEFAULT_EVENT_BINDINGS, EventBinding, validate_bindings
from pipeline.exceptions import ConfigurationError


@dataclass(frozen=True)
class PipelineSpec:
    """
    One source database and how its snapshots are exported.

    name:                  full database identifier, e.g. 'userbets0-production-psql'
    pipeline_name:         name used for the pipeline stack and primary bucket
    event_bindings:        ordered (event identity, snapshot class) pairs
    storage_location_name: primary export bucket name
    """
    name: str
    pipeline_name: str
    event_bindings: Tuple[EventBinding, ...]
    storage_location_name: str

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Database identifier must not be empty")
        object.__setattr__(self, "event_bindings", validate_bindings(self.event_bindings))

    @property
    def base_name(self) -> str:
        return base_name(self.name)


def base_name(identifier: str) -> str:
    """'userbets0-production-psql' -> 'userbets0'"""
    base = identifier.split("-", 1)[0]
    if not base:
        raise ConfigurationError(f"Cannot derive a base name from '{identifier}'")
    return base


def destination_bucket_name(bucket_prefix: str, base: str, region: str) -> str:
    return f"{bucket_prefix}-{base}-{region}"


def build_pipeline_specs(
    identifiers: Sequence[str],
    bucket_prefix: str,
    bindings: Optional[Iterable[EventBinding]] = None,
) -> List[PipelineSpec]:
    """
    Turns the ordered database identifiers into pipeline specifications.
    Identifiers sharing a base name keep their full identifier as the
    pipeline name so primary buckets stay unique.
    """
    identifiers = [i.strip() for i in identifiers if i and i.strip()]
    if not identifiers:
        raise ConfigurationError("No database identifiers configured")

    duplicates = sorted(i for i, n in Counter(identifiers).items() if n > 1)
    if duplicates:
        raise ConfigurationError(f"Duplicate database identifiers: {', '.join(duplicates)}")

    bindings = tuple(bindings) if bindings is not None else DEFAULT_EVENT_BINDINGS
    base_counts = Counter(base_name(i) for i in identifiers)

    specs = []
    for identifier in identifiers:
        base = base_name(identifier)
        pipeline_name = base if base_counts[base] == 1 else identifier
        specs.append(PipelineSpec(
            name=identifier,
            pipeline_name=pipeline_name,
            event_bindings=bindings,
            storage_location_name=f"{bucket_prefix}-{pipeline_name}",
        ))
    return specs
