import importlib.util
import os

import pytest

from support import ACCOUNT, make_config

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def exporter(monkeypatch):
    """The snapshot exporter Lambda module, loaded from its asset directory."""
    path = os.path.join(ROOT, "lambda", "snapshot_exporter", "main.py")
    spec = importlib.util.spec_from_file_location("snapshot_exporter_main", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("RDS_EVENT_IDS", "RDS-EVENT-0169,RDS-EVENT-0042")
    monkeypatch.setenv("RDS_SNAPSHOT_TYPES", "AUTOMATED,MANUAL")
    monkeypatch.setenv("DB_SNAPSHOT_TYPES", "cluster-snapshot,snapshot")
    monkeypatch.setenv("DB_NAME", "userbets0-production-psql")
    monkeypatch.setenv("SNAPSHOT_BUCKET_NAME", "s3-rds-rdp-userbets0")
    monkeypatch.setenv("SNAPSHOT_TASK_ROLE", f"arn:aws:iam::{ACCOUNT}:role/export")
    monkeypatch.setenv("SNAPSHOT_TASK_KEY", f"arn:aws:kms:us-east-1:{ACCOUNT}:key/abc")
    return module
