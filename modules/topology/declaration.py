"""
Network Topology Declaration
The canonical VPC layout: one public and one private subnet, IGW, NAT, NACLs,
security groups and one instance in each subnet
"""

from dataclasses import dataclass
from typing import Tuple

import pulumi

from .errors import TopologyError
from .graph import Topology
from .records import (
    ALL_PROTOCOLS,
    ANY_IPV4,
    TCP,
    ElasticAddress,
    GatewayAttachment,
    IngressRule,
    Instance,
    InternetGateway,
    NatGateway,
    Network,
    NetworkAcl,
    NetworkAclAssociation,
    NetworkAclRule,
    Route,
    RouteTable,
    RouteTableAssociation,
    SecurityGroup,
    StackOutput,
    Subnet,
)

PUBLIC_USER_DATA = """#!/bin/bash
yum update -y
yum install -y httpd
systemctl start httpd
systemctl enable httpd
echo "<h1>Hello from Public Instance</h1>" > /var/www/html/index.html"""

PRIVATE_USER_DATA = """#!/bin/bash
yum update -y
echo "Private instance setup complete" > /home/ec2-user/setup.log"""


@dataclass(frozen=True)
class TopologySettings:
    """Inputs of the declaration; everything except the availability zone is a fixed literal"""

    availability_zones: Tuple[str, ...] = ("us-east-1a",)
    name: str = "vpc-infra"
    vpc_cidr: str = "10.0.0.0/24"
    public_subnet_cidr: str = "10.0.0.0/26"  # 10.0.0.0 - 10.0.0.63
    private_subnet_cidr: str = "10.0.0.64/26"  # 10.0.0.64 - 10.0.0.127
    instance_type: str = "t2.micro"
    key_name: str = "KPLegend1"
    public_user_data: str = PUBLIC_USER_DATA
    private_user_data: str = PRIVATE_USER_DATA

    @property
    def availability_zone(self) -> str:
        # Single AZ layout
        return self.availability_zones[0]


def declare_network_topology(settings: TopologySettings = None) -> Topology:
    """
    Declare the complete network topology and validate it

    Args:
        settings: Declaration inputs, defaults to the fixed layout

    Returns:
        Validated Topology, ready to be provisioned

    Raises:
        UnresolvedReference: a reference points to an undeclared resource
        InvalidContainment: a subnet block does not fit the VPC block
        TopologyError: no availability zone is given, or another invariant is broken
    """
    settings = settings or TopologySettings()
    if not settings.availability_zones:
        raise TopologyError("At least one availability zone is required")

    name = settings.name
    topology = Topology(name)

    # VPC
    vpc = topology.add(Network(
        name=f"{name}-vpc",
        display_name="MyVPC",
        cidr_block=settings.vpc_cidr,
        enable_dns_support=True,
        enable_dns_hostnames=True,
    ))

    # Subnets
    public_subnet = topology.add(Subnet(
        name=f"{name}-public-subnet",
        display_name="Public Subnet",
        network=vpc.name,
        cidr_block=settings.public_subnet_cidr,
        availability_zone=settings.availability_zone,
        map_public_ip_on_launch=True,
    ))
    private_subnet = topology.add(Subnet(
        name=f"{name}-private-subnet",
        display_name="Private Subnet",
        network=vpc.name,
        cidr_block=settings.private_subnet_cidr,
        availability_zone=settings.availability_zone,
        map_public_ip_on_launch=False,
    ))

    # Gateways
    igw = topology.add(InternetGateway(name=f"{name}-igw", display_name="MyVPC-IGW"))
    igw_attachment = topology.add(GatewayAttachment(
        name=f"{name}-igw-attachment",
        internet_gateway=igw.name,
        network=vpc.name,
    ))
    nat_eip = topology.add(ElasticAddress(name=f"{name}-nat-eip", display_name="NAT Gateway EIP", domain="vpc"))
    nat_gateway = topology.add(NatGateway(
        name=f"{name}-nat-gateway",
        display_name="NAT Gateway",
        elastic_address=nat_eip.name,
        subnet=public_subnet.name,
        depends_on=(igw_attachment.name,),
    ))

    # Route tables
    public_rt = topology.add(RouteTable(name=f"{name}-public-rt", display_name="Public Route Table", network=vpc.name))
    private_rt = topology.add(RouteTable(name=f"{name}-private-rt", display_name="Private Route Table", network=vpc.name))
    topology.add(Route(
        name=f"{name}-public-route",
        route_table=public_rt.name,
        destination_cidr_block=ANY_IPV4,
        gateway=igw.name,
        depends_on=(igw_attachment.name,),
    ))
    topology.add(Route(
        name=f"{name}-private-route",
        route_table=private_rt.name,
        destination_cidr_block=ANY_IPV4,
        nat_gateway=nat_gateway.name,
    ))
    topology.add(RouteTableAssociation(
        name=f"{name}-public-rta",
        subnet=public_subnet.name,
        route_table=public_rt.name,
    ))
    topology.add(RouteTableAssociation(
        name=f"{name}-private-rta",
        subnet=private_subnet.name,
        route_table=private_rt.name,
    ))

    # Network ACLs
    public_nacl = topology.add(NetworkAcl(name=f"{name}-public-nacl", display_name="Public Network ACL", network=vpc.name))
    private_nacl = topology.add(NetworkAcl(name=f"{name}-private-nacl", display_name="Private Network ACL", network=vpc.name))

    # Public subnet is open in both directions
    topology.add(NetworkAclRule(
        name=f"{name}-public-nacl-inbound",
        network_acl=public_nacl.name,
        rule_number=100,
        protocol=ALL_PROTOCOLS,
        rule_action="allow",
        cidr_block=ANY_IPV4,
    ))
    topology.add(NetworkAclRule(
        name=f"{name}-public-nacl-outbound",
        network_acl=public_nacl.name,
        rule_number=100,
        protocol=ALL_PROTOCOLS,
        rule_action="allow",
        cidr_block=ANY_IPV4,
        egress=True,
    ))

    # Private subnet: VPC traffic plus return traffic from the internet
    topology.add(NetworkAclRule(
        name=f"{name}-private-nacl-inbound-vpc",
        network_acl=private_nacl.name,
        rule_number=100,
        protocol=ALL_PROTOCOLS,
        rule_action="allow",
        cidr_block=vpc.cidr_block,
    ))
    topology.add(NetworkAclRule(
        name=f"{name}-private-nacl-inbound-ephemeral",
        network_acl=private_nacl.name,
        rule_number=110,
        protocol=TCP,
        rule_action="allow",
        cidr_block=ANY_IPV4,
        from_port=1024,
        to_port=65535,
    ))
    topology.add(NetworkAclRule(
        name=f"{name}-private-nacl-outbound",
        network_acl=private_nacl.name,
        rule_number=100,
        protocol=ALL_PROTOCOLS,
        rule_action="allow",
        cidr_block=ANY_IPV4,
        egress=True,
    ))

    topology.add(NetworkAclAssociation(
        name=f"{name}-public-nacl-assoc",
        subnet=public_subnet.name,
        network_acl=public_nacl.name,
    ))
    topology.add(NetworkAclAssociation(
        name=f"{name}-private-nacl-assoc",
        subnet=private_subnet.name,
        network_acl=private_nacl.name,
    ))

    # Security groups
    public_sg = topology.add(SecurityGroup(
        name=f"{name}-public-sg",
        network=vpc.name,
        description="Security group for public EC2 instance",
        ingress=(
            IngressRule.tcp(ANY_IPV4, 22, "Allow SSH access"),
            IngressRule.tcp(ANY_IPV4, 80, "Allow HTTP access"),
            IngressRule.tcp(ANY_IPV4, 443, "Allow HTTPS access"),
        ),
    ))
    private_sg = topology.add(SecurityGroup(
        name=f"{name}-private-sg",
        network=vpc.name,
        description="Security group for private EC2 instance",
        ingress=(
            IngressRule.tcp(public_subnet.cidr_block, 22, "Allow SSH from public subnet"),
            IngressRule.all_traffic(vpc.cidr_block, "Allow all traffic from VPC"),
        ),
    ))

    # Instances
    public_instance = topology.add(Instance(
        name=f"{name}-public-instance",
        display_name="Public Web Server",
        subnet=public_subnet.name,
        security_group=public_sg.name,
        instance_type=settings.instance_type,
        key_name=settings.key_name,
        user_data=settings.public_user_data,
    ))
    private_instance = topology.add(Instance(
        name=f"{name}-private-instance",
        display_name="Private Server",
        subnet=private_subnet.name,
        security_group=private_sg.name,
        instance_type=settings.instance_type,
        key_name=settings.key_name,
        user_data=settings.private_user_data,
    ))

    # Outputs
    topology.add(StackOutput(name="vpc_id", resource=vpc.name, description="VPC ID"))
    topology.add(StackOutput(name="public_subnet_id", resource=public_subnet.name, description="Public Subnet ID"))
    topology.add(StackOutput(name="private_subnet_id", resource=private_subnet.name, description="Private Subnet ID"))
    topology.add(StackOutput(name="public_instance_id", resource=public_instance.name,
                             description="Public EC2 Instance ID"))
    topology.add(StackOutput(name="private_instance_id", resource=private_instance.name,
                             description="Private EC2 Instance ID"))
    topology.add(StackOutput(name="public_instance_ip", resource=public_instance.name, attribute="public_ip",
                             description="Public Instance Public IP"))
    topology.add(StackOutput(name="nat_gateway_id", resource=nat_gateway.name, description="NAT Gateway ID"))

    topology.validate()
    pulumi.log.info(f"Declared network topology '{name}' with {len(topology)} resources")
    return topology
