"""
VPC Module Functions
Creates VPC, subnets, gateways, route tables, network ACLs and security groups
from validated topology records
"""

import pulumi
import pulumi_aws as aws
from typing import Any, Dict

from modules.topology.records import (
    ElasticAddress,
    GatewayAttachment,
    InternetGateway,
    NatGateway,
    Network,
    NetworkAcl,
    NetworkAclAssociation,
    NetworkAclRule,
    Resource,
    Route,
    RouteTable,
    RouteTableAssociation,
    SecurityGroup,
    Subnet,
)


def resource_tags(record: Resource, tags: Dict[str, str] = None) -> Dict[str, str]:
    """Common tags plus the record's Name tag"""
    tags = tags or {}
    return {
        **tags,
        "Name": record.display_name or record.name,
        "Module": "vpc"
    }


def create_vpc(record: Network, resources: Dict[str, Any], tags: Dict[str, str] = None) -> aws.ec2.Vpc:
    """
    Create VPC with DNS settings

    Args:
        record: Network record
        resources: Already created resources by record name
        tags: Additional tags

    Returns:
        VPC resource
    """
    return aws.ec2.Vpc(
        record.name,
        cidr_block=record.cidr_block,
        enable_dns_hostnames=record.enable_dns_hostnames,
        enable_dns_support=record.enable_dns_support,
        tags=resource_tags(record, tags)
    )


def create_subnet(record: Subnet, resources: Dict[str, Any], tags: Dict[str, str] = None) -> aws.ec2.Subnet:
    """
    Create a subnet in its VPC

    Args:
        record: Subnet record
        resources: Already created resources by record name
        tags: Additional tags

    Returns:
        Subnet resource
    """
    return aws.ec2.Subnet(
        record.name,
        vpc_id=resources[record.network].id,
        cidr_block=record.cidr_block,
        availability_zone=record.availability_zone,
        map_public_ip_on_launch=record.map_public_ip_on_launch,
        tags={
            **resource_tags(record, tags),
            "Type": "public" if record.map_public_ip_on_launch else "private"
        }
    )


def create_internet_gateway(record: InternetGateway, resources: Dict[str, Any],
                            tags: Dict[str, str] = None) -> aws.ec2.InternetGateway:
    # Attached separately, see create_gateway_attachment
    return aws.ec2.InternetGateway(
        record.name,
        tags=resource_tags(record, tags)
    )


def create_gateway_attachment(record: GatewayAttachment, resources: Dict[str, Any],
                              tags: Dict[str, str] = None) -> aws.ec2.InternetGatewayAttachment:
    return aws.ec2.InternetGatewayAttachment(
        record.name,
        internet_gateway_id=resources[record.internet_gateway].id,
        vpc_id=resources[record.network].id
    )


def create_elastic_ip(record: ElasticAddress, resources: Dict[str, Any], tags: Dict[str, str] = None) -> aws.ec2.Eip:
    return aws.ec2.Eip(
        record.name,
        domain=record.domain,
        tags=resource_tags(record, tags)
    )


def create_nat_gateway(record: NatGateway, resources: Dict[str, Any],
                       tags: Dict[str, str] = None) -> aws.ec2.NatGateway:
    """
    Create NAT Gateway in the public subnet

    Args:
        record: NatGateway record
        resources: Already created resources by record name
        tags: Additional tags

    Returns:
        NAT Gateway resource
    """
    return aws.ec2.NatGateway(
        record.name,
        allocation_id=resources[record.elastic_address].id,
        subnet_id=resources[record.subnet].id,
        tags=resource_tags(record, tags),
        opts=pulumi.ResourceOptions(
            depends_on=[resources[name] for name in record.depends_on]
        )
    )


def create_route_table(record: RouteTable, resources: Dict[str, Any],
                       tags: Dict[str, str] = None) -> aws.ec2.RouteTable:
    return aws.ec2.RouteTable(
        record.name,
        vpc_id=resources[record.network].id,
        tags=resource_tags(record, tags)
    )


def create_route(record: Route, resources: Dict[str, Any], tags: Dict[str, str] = None) -> aws.ec2.Route:
    """
    Create a route to either the internet gateway or the NAT gateway

    Args:
        record: Route record
        resources: Already created resources by record name
        tags: Unused, routes are not taggable

    Returns:
        Route resource
    """
    targets = {}
    if record.gateway:
        targets["gateway_id"] = resources[record.gateway].id
    else:
        targets["nat_gateway_id"] = resources[record.nat_gateway].id

    return aws.ec2.Route(
        record.name,
        route_table_id=resources[record.route_table].id,
        destination_cidr_block=record.destination_cidr_block,
        opts=pulumi.ResourceOptions(
            depends_on=[resources[name] for name in record.depends_on]
        ),
        **targets
    )


def create_route_table_association(record: RouteTableAssociation, resources: Dict[str, Any],
                                   tags: Dict[str, str] = None) -> aws.ec2.RouteTableAssociation:
    return aws.ec2.RouteTableAssociation(
        record.name,
        subnet_id=resources[record.subnet].id,
        route_table_id=resources[record.route_table].id
    )


def create_network_acl(record: NetworkAcl, resources: Dict[str, Any],
                       tags: Dict[str, str] = None) -> aws.ec2.NetworkAcl:
    # Subnets are attached through NetworkAclAssociation records
    return aws.ec2.NetworkAcl(
        record.name,
        vpc_id=resources[record.network].id,
        tags=resource_tags(record, tags)
    )


def create_network_acl_rule(record: NetworkAclRule, resources: Dict[str, Any],
                            tags: Dict[str, str] = None) -> aws.ec2.NetworkAclRule:
    """
    Create one numbered NACL entry

    Args:
        record: NetworkAclRule record
        resources: Already created resources by record name
        tags: Unused, NACL entries are not taggable

    Returns:
        NetworkAclRule resource
    """
    ports = {}
    if record.from_port is not None:
        ports = {"from_port": record.from_port, "to_port": record.to_port}

    return aws.ec2.NetworkAclRule(
        record.name,
        network_acl_id=resources[record.network_acl].id,
        rule_number=record.rule_number,
        egress=record.egress,
        protocol=str(record.protocol),
        rule_action=record.rule_action,
        cidr_block=record.cidr_block,
        **ports
    )


def create_network_acl_association(record: NetworkAclAssociation, resources: Dict[str, Any],
                                   tags: Dict[str, str] = None) -> aws.ec2.NetworkAclAssociation:
    return aws.ec2.NetworkAclAssociation(
        record.name,
        subnet_id=resources[record.subnet].id,
        network_acl_id=resources[record.network_acl].id
    )


def create_security_group(record: SecurityGroup, resources: Dict[str, Any],
                          tags: Dict[str, str] = None) -> aws.ec2.SecurityGroup:
    """
    Create security group with inline ingress rules and allow-all egress

    Args:
        record: SecurityGroup record
        resources: Already created resources by record name
        tags: Additional tags

    Returns:
        Security group resource
    """
    ingress = [
        aws.ec2.SecurityGroupIngressArgs(
            protocol=rule.protocol,
            from_port=rule.from_port,
            to_port=rule.to_port,
            cidr_blocks=[rule.cidr_block],
            description=rule.description
        )
        for rule in record.ingress
    ]

    egress = []
    if record.allow_all_outbound:
        egress.append(aws.ec2.SecurityGroupEgressArgs(
            protocol="-1",
            from_port=0,
            to_port=0,
            cidr_blocks=["0.0.0.0/0"]
        ))

    return aws.ec2.SecurityGroup(
        record.name,
        description=record.description,
        vpc_id=resources[record.network].id,
        ingress=ingress,
        egress=egress,
        tags=resource_tags(record, tags)
    )


VPC_BUILDERS = {
    Network: create_vpc,
    Subnet: create_subnet,
    InternetGateway: create_internet_gateway,
    GatewayAttachment: create_gateway_attachment,
    ElasticAddress: create_elastic_ip,
    NatGateway: create_nat_gateway,
    RouteTable: create_route_table,
    Route: create_route,
    RouteTableAssociation: create_route_table_association,
    NetworkAcl: create_network_acl,
    NetworkAclRule: create_network_acl_rule,
    NetworkAclAssociation: create_network_acl_association,
    SecurityGroup: create_security_group,
}
