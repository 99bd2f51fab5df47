"""
Pulumi modules for the VPC infrastructure
The topology is declared and validated first, then provisioned with function-based builders
"""

from .topology import declare_network_topology
from .provisioning import create_topology_resources

__all__ = [
    "declare_network_topology",
    "create_topology_resources"
]
