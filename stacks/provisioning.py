from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

import aws_cdk as cdk

from pipeline.events import EventBinding
from pipeline.specs import build_pipeline_specs
from stacks.destination_stack import DestinationBucketStack
from stacks.export_pipeline_stack import ExportPipelineStack


@dataclass
class Provisioned:
    # base name -> destination stack
    destinations: Dict[str, DestinationBucketStack] = field(default_factory=dict)
    # database identifier -> pipeline stack
    pipelines: Dict[str, ExportPipelineStack] = field(default_factory=dict)


def provision(app: cdk.App, config, bindings: Optional[Iterable[EventBinding]] = None) -> Provisioned:
    """
    Builds the destination and export pipeline stacks for every configured
    database. Destination storage is created once per base name and always
    before the pipelines that replicate into it.
    """
    specs = build_pipeline_specs(config.databases, config.bucket_prefix, bindings)
    result = Provisioned()

    destination_env = cdk.Environment(account=config.account, region=config.destination_region)
    source_env = cdk.Environment(account=config.account, region=config.region)

    # =================================================================
    # 1. DESTINATION STORAGE (Secondary Region)
    # =================================================================
    for spec in specs:
        if spec.base_name in result.destinations:
            continue
        result.destinations[spec.base_name] = DestinationBucketStack(
            app, f"storage-dest-{spec.base_name}",
            config=config,
            base_name=spec.base_name,
            env=destination_env,
            cross_region_references=True
        )
        print(f"🪣 Destination storage for '{spec.base_name}' in {config.destination_region}")

    # =================================================================
    # 2. EXPORT PIPELINES (Primary Region)
    # =================================================================
    for spec in specs:
        destination_stack = result.destinations[spec.base_name]
        pipeline_stack = ExportPipelineStack(
            app, f"export-pipeline-{spec.pipeline_name}",
            config=config,
            spec=spec,
            destination=destination_stack.handle,
            env=source_env,
            cross_region_references=True
        )
        pipeline_stack.add_dependency(destination_stack)
        result.pipelines[spec.name] = pipeline_stack
        print(f"🚀 Export pipeline for '{spec.name}' -> {spec.storage_location_name}")

    return result
