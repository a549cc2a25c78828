import aws_cdk as cdk
from config import get_config
from stacks.provisioning import provision

app = cdk.App()
config = get_config(app)

# =================================================================
# SNAPSHOT EXPORT PIPELINES
# =================================================================
# One destination stack per database base name (secondary region),
# then one export pipeline per database (primary region).
provision(app, config)

app.synth()
