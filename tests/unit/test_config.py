import aws_cdk as core
import pytest
from aws_cdk import RemovalPolicy

from config import DEFAULT_BUCKET_PREFIX, get_config


@pytest.fixture
def qa_env(monkeypatch):
    monkeypatch.setenv("QA_ACCOUNT", "123456789012")
    monkeypatch.setenv("QA_REGION", "us-east-1")
    monkeypatch.setenv("QA_DESTINATION_REGION", "sa-east-1")
    monkeypatch.setenv("QA_DATABASES", "userbets0-production-psql, betting-production-psql")
    monkeypatch.delenv("QA_BUCKET_PREFIX", raising=False)
    monkeypatch.delenv("QA_LOG_LEVEL", raising=False)


def test_config_is_read_from_prefixed_environment(qa_env):
    config = get_config(core.App(context={"env": "qa"}))

    assert config.name == "qa"
    assert config.account == "123456789012"
    assert config.destination_region == "sa-east-1"
    assert config.databases == ["userbets0-production-psql", "betting-production-psql"]
    assert config.bucket_prefix == DEFAULT_BUCKET_PREFIX
    assert config.log_level == "INFO"


def test_databases_context_overrides_environment(qa_env):
    config = get_config(core.App(context={"env": "qa", "databases": "orders-production-psql"}))
    assert config.databases == ["orders-production-psql"]


def test_missing_required_value_is_fatal(qa_env, monkeypatch):
    monkeypatch.delenv("QA_DESTINATION_REGION")
    with pytest.raises(RuntimeError, match="QA_DESTINATION_REGION"):
        get_config(core.App(context={"env": "qa"}))


def test_storage_is_always_retained(config):
    assert config.removal_policy == RemovalPolicy.RETAIN
    assert config.exporter_asset_path.endswith("snapshot_exporter")
