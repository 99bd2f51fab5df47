"""
Provisioning Module
Turns a validated topology into Pulumi resources
"""

from .functions import create_resource, create_topology_resources

__all__ = [
    "create_resource",
    "create_topology_resources",
]
