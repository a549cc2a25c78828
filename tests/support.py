from config import EnvConfig

ACCOUNT = "123456789012"
DATABASES = ["userbets0-production-psql", "userbets1-production-psql", "betting-production-psql"]


def make_config(databases=None, **overrides) -> EnvConfig:
    return EnvConfig(
        env_name="test",
        account=ACCOUNT,
        region="us-east-1",
        destination_region="sa-east-1",
        databases=databases or DATABASES,
        **overrides
    )
