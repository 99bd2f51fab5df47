"""
VPC Module
Pulumi builders for the network records of the topology
"""

from .functions import VPC_BUILDERS, create_security_group, create_subnet, create_vpc

__all__ = [
    "VPC_BUILDERS",
    "create_vpc",
    "create_subnet",
    "create_security_group",
]
