"""
Provisioning Module Functions
Hands a validated topology to Pulumi, one resource per record, in creation order
"""

import pulumi
from typing import Any, Callable, Dict

from modules.compute.functions import COMPUTE_BUILDERS
from modules.topology.errors import TopologyError
from modules.topology.graph import Topology
from modules.topology.records import Resource, StackOutput
from modules.vpc.functions import VPC_BUILDERS

BUILDERS: Dict[type, Callable[..., Any]] = {**VPC_BUILDERS, **COMPUTE_BUILDERS}


def create_resource(record: Resource, resources: Dict[str, Any], tags: Dict[str, str] = None) -> Any:
    """
    Create the Pulumi resource for a single record

    Args:
        record: Topology record
        resources: Already created resources by record name
        tags: Additional tags

    Returns:
        The created Pulumi resource

    Raises:
        TopologyError: no builder exists for the record kind
    """
    builder = BUILDERS.get(type(record))
    if builder is None:
        raise TopologyError(f"No builder for {record.kind} '{record.name}'")
    return builder(record, resources, tags)


def resolve_output(record: StackOutput, resources: Dict[str, Any]) -> Any:
    return getattr(resources[record.resource], record.attribute)


def create_topology_resources(topology: Topology, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create every resource of a topology

    The topology is validated again first, so nothing is registered with
    Pulumi unless the whole graph is sound.

    Args:
        topology: Declared topology
        tags: Additional tags for all resources

    Returns:
        Dict with created resources and stack outputs, both keyed by record name
    """
    tags = tags or {}
    topology.validate()

    resources: Dict[str, Any] = {}
    outputs: Dict[str, Any] = {}
    for name in topology.creation_order():
        record = topology.get(name)
        if isinstance(record, StackOutput):
            outputs[name] = resolve_output(record, resources)
            continue
        resources[name] = create_resource(record, resources, tags)
        pulumi.log.debug(f"Registered {record.kind} {name}")

    pulumi.log.info(f"Registered {len(resources)} resources for topology '{topology.name}'")
    return {
        "resources": resources,
        "outputs": outputs
    }
