"""
Topology Module
Declares the VPC layout as a validated graph of named resource records
"""

from .errors import InvalidContainment, TopologyError, UnresolvedReference
from .graph import Topology
from .declaration import TopologySettings, declare_network_topology

__all__ = [
    "Topology",
    "TopologySettings",
    "declare_network_topology",
    "TopologyError",
    "UnresolvedReference",
    "InvalidContainment",
]
