import os
from typing import List, Optional, Sequence
from dotenv import load_dotenv
from aws_cdk import RemovalPolicy

# Load environment variables from a .env file
load_dotenv()

DEFAULT_BUCKET_PREFIX = "s3-rds-rdp"
DEFAULT_EXPORTER_ASSET = os.path.join(os.path.dirname(os.path.abspath(__file__)), "lambda", "snapshot_exporter")

class EnvConfig:
    """
    Stores environment-specific configuration for the snapshot export stacks.
    Resolved once at the top of provisioning and passed into every stack.
    """
    def __init__(
        self,
        env_name: str,
        account: str,
        region: str,
        destination_region: str,
        databases: Sequence[str],
        bucket_prefix: str = DEFAULT_BUCKET_PREFIX,
        log_level: str = "INFO",
        exporter_timeout_seconds: int = 30,
        exporter_asset_path: Optional[str] = None
    ):
        self.name = env_name
        self.account = account
        self.region = region
        self.destination_region = destination_region
        self.databases: List[str] = list(databases)
        self.bucket_prefix = bucket_prefix
        self.log_level = log_level
        self.exporter_timeout_seconds = exporter_timeout_seconds
        self.exporter_asset_path = exporter_asset_path or DEFAULT_EXPORTER_ASSET

        # Exported snapshots and their keys outlive the pipeline in every environment.
        self.removal_policy = RemovalPolicy.RETAIN

def get_required_env(key: str) -> str:
    """
    Retrieves a required environment variable or raises a RuntimeError if missing.
    """
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"❌ MISSING CONFIG: Required environment variable '{key}' not found in .env")
    return value

def split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]

def get_config(scope) -> EnvConfig:
    """
    Factory function to generate the EnvConfig object based on CDK context.
    Usage: cdk deploy -c env=prod [-c databases=db1-prod-psql,db2-prod-psql]
    """
    # Default to 'dev' environment if no context is provided
    env_name = scope.node.try_get_context("env") or "dev"
    prefix = env_name.upper()

    print(f"🔍 Initializing snapshot export pipelines for environment: {prefix}")

    # Load Mandatory Variables
    account = get_required_env(f"{prefix}_ACCOUNT")
    region = get_required_env(f"{prefix}_REGION")
    destination_region = get_required_env(f"{prefix}_DESTINATION_REGION")

    databases = scope.node.try_get_context("databases")
    if isinstance(databases, str):
        databases = split_list(databases)
    if not databases:
        databases = split_list(get_required_env(f"{prefix}_DATABASES"))

    # Load Optional Variables
    bucket_prefix = os.getenv(f"{prefix}_BUCKET_PREFIX") or DEFAULT_BUCKET_PREFIX
    log_level = os.getenv(f"{prefix}_LOG_LEVEL") or "INFO"

    return EnvConfig(
        env_name=env_name,
        account=account,
        region=region,
        destination_region=destination_region,
        databases=databases,
        bucket_prefix=bucket_prefix,
        log_level=log_level
    )
