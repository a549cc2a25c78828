import pytest

from pipeline.events import DEFAULT_EVENT_BINDINGS
from pipeline.exceptions import ConfigurationError
from pipeline.specs import base_name, build_pipeline_specs, destination_bucket_name


def test_base_name_truncates_at_first_separator():
    assert base_name("userbets0-production-psql") == "userbets0"
    assert base_name("betting") == "betting"


def test_base_name_requires_a_leading_segment():
    with pytest.raises(ConfigurationError):
        base_name("-production-psql")


def test_specs_use_base_name_when_unique():
    specs = build_pipeline_specs(["userbets0-production-psql", "betting-production-psql"], "s3-rds-rdp")

    assert [s.pipeline_name for s in specs] == ["userbets0", "betting"]
    assert [s.storage_location_name for s in specs] == ["s3-rds-rdp-userbets0", "s3-rds-rdp-betting"]
    assert specs[0].event_bindings == DEFAULT_EVENT_BINDINGS


def test_shared_base_names_keep_full_identifier():
    specs = build_pipeline_specs(["userbets0-production-psql", "userbets0-staging-psql"], "s3-rds-rdp")

    assert {s.base_name for s in specs} == {"userbets0"}
    assert [s.storage_location_name for s in specs] == [
        "s3-rds-rdp-userbets0-production-psql",
        "s3-rds-rdp-userbets0-staging-psql",
    ]


def test_duplicate_identifiers_are_rejected():
    with pytest.raises(ConfigurationError):
        build_pipeline_specs(["betting-production-psql", "betting-production-psql"], "s3-rds-rdp")


def test_empty_identifier_list_is_rejected():
    with pytest.raises(ConfigurationError):
        build_pipeline_specs([" ", ""], "s3-rds-rdp")


def test_destination_bucket_name():
    assert destination_bucket_name("s3-rds-rdp", "userbets0", "sa-east-1") == "s3-rds-rdp-userbets0-sa-east-1"
