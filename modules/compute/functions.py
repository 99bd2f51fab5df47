"""
Compute Module Functions
Creates EC2 instances for the topology's Instance records
"""

import pulumi
import pulumi_aws as aws
from typing import Any, Dict

from modules.topology.records import Instance

AMAZON_LINUX_2_NAME_PATTERN = "amzn2-ami-hvm-*-x86_64-gp2"


def lookup_amazon_linux_ami() -> str:
    """
    Look up the latest Amazon Linux 2 AMI in the current region

    Returns:
        AMI id
    """
    ami = aws.ec2.get_ami(
        most_recent=True,
        owners=["amazon"],
        filters=[
            aws.ec2.GetAmiFilterArgs(name="name", values=[AMAZON_LINUX_2_NAME_PATTERN]),
            aws.ec2.GetAmiFilterArgs(name="virtualization-type", values=["hvm"]),
        ]
    )
    return ami.id


def create_instance(record: Instance, resources: Dict[str, Any], tags: Dict[str, str] = None) -> aws.ec2.Instance:
    """
    Create EC2 instance with boot-time user data

    Args:
        record: Instance record
        resources: Already created resources by record name
        tags: Additional tags

    Returns:
        EC2 Instance resource
    """
    tags = tags or {}
    image_id = record.image_id or lookup_amazon_linux_ami()
    pulumi.log.debug(f"Instance {record.name} uses AMI {image_id}")

    return aws.ec2.Instance(
        record.name,
        ami=image_id,
        instance_type=record.instance_type,
        subnet_id=resources[record.subnet].id,
        vpc_security_group_ids=[resources[record.security_group].id],
        key_name=record.key_name,
        user_data=record.user_data,
        tags={
            **tags,
            "Name": record.display_name or record.name,
            "Module": "compute"
        }
    )


COMPUTE_BUILDERS = {
    Instance: create_instance,
}
