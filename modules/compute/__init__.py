"""
Compute Module
EC2 instances placed in the topology's subnets
"""

from .functions import COMPUTE_BUILDERS, create_instance, lookup_amazon_linux_ami

__all__ = [
    "COMPUTE_BUILDERS",
    "create_instance",
    "lookup_amazon_linux_ami",
]
