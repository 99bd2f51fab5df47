"""
VPC Infrastructure
Public and private subnet in a single AZ, NAT for private egress, one instance per subnet
"""
import pulumi
from config import get_config
from modules.topology import declare_network_topology
from modules.provisioning import create_topology_resources

# Configuration
config = get_config()

# 1. Declare and validate the whole graph before anything is registered
topology = declare_network_topology(config.topology_settings())

# 2. Provision in dependency order
stack = create_topology_resources(topology, tags=config.common_tags)

# Exports
for output_name, value in stack["outputs"].items():
    pulumi.export(output_name, value)
