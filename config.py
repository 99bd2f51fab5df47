"""
Configuration management for the VPC infrastructure deployment
"""

import pulumi
import pulumi_aws as aws
from typing import Dict, List

from modules.topology.declaration import TopologySettings


class Config:
    """Centralized configuration management for the VPC deployment"""

    def __init__(self):
        self.config = pulumi.Config()
        self.aws_config = pulumi.Config("aws")

        # AWS Configuration
        self.aws_region = self.aws_config.get("region") or "us-east-1"
        self.availability_zone = self.config.get("availability_zone")

        # Naming and access
        self.name = self.config.get("name") or "vpc-infra"
        self.key_name = self.config.get("key_name") or "KPLegend1"

        # Additional tags
        self.additional_tags = self.config.get_object("tags") or {}

    @property
    def common_tags(self) -> Dict[str, str]:
        """Get common tags for all resources"""
        base_tags = {
            "Environment": "development",
            "Project": "vpc-infrastructure",
            "ManagedBy": "pulumi"
        }
        base_tags.update(self.additional_tags)
        return base_tags

    def availability_zones(self) -> List[str]:
        """Configured zone, or the first available zone of the region"""
        if self.availability_zone:
            return [self.availability_zone]
        azs = aws.get_availability_zones(state="available")
        return azs.names[:1]

    def topology_settings(self) -> TopologySettings:
        """Declaration inputs; CIDR blocks, sizing and boot scripts stay fixed"""
        return TopologySettings(
            availability_zones=tuple(self.availability_zones()),
            name=self.name,
            key_name=self.key_name
        )


def get_config() -> Config:
    """Get the global configuration instance"""
    return Config()
