"""
Topology Records
One frozen dataclass per cloud resource; cross references are plain resource names
"""

import ipaddress
from dataclasses import dataclass
from typing import ClassVar, Dict, Iterator, Optional, Tuple, Type

ANY_IPV4 = "0.0.0.0/0"
ALL_PROTOCOLS = -1
TCP = 6
UDP = 17


@dataclass(frozen=True, kw_only=True)
class Resource:
    """Base record: a named resource that may reference other records by name"""

    name: str
    display_name: Optional[str] = None

    # field name -> record kind the reference must resolve to
    references: ClassVar[Dict[str, Type["Resource"]]] = {}

    def iter_references(self) -> Iterator[Tuple[str, str, Type["Resource"]]]:
        """Yield (field, target name, expected kind) for every reference set on this record"""
        for field, kind in self.references.items():
            value = getattr(self, field)
            if value is None:
                continue
            if isinstance(value, tuple):
                for target in value:
                    yield field, target, kind
            else:
                yield field, value, kind

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, kw_only=True)
class Network(Resource):
    cidr_block: str
    enable_dns_support: bool = True
    enable_dns_hostnames: bool = True

    @property
    def address_block(self) -> ipaddress.IPv4Network:
        return ipaddress.ip_network(self.cidr_block)


@dataclass(frozen=True, kw_only=True)
class Subnet(Resource):
    network: str
    cidr_block: str
    availability_zone: str
    map_public_ip_on_launch: bool = False

    references: ClassVar[Dict[str, Type[Resource]]] = {"network": Network}

    @property
    def address_block(self) -> ipaddress.IPv4Network:
        return ipaddress.ip_network(self.cidr_block)


@dataclass(frozen=True, kw_only=True)
class InternetGateway(Resource):
    pass


@dataclass(frozen=True, kw_only=True)
class GatewayAttachment(Resource):
    internet_gateway: str
    network: str

    references: ClassVar[Dict[str, Type[Resource]]] = {
        "internet_gateway": InternetGateway,
        "network": Network,
    }


@dataclass(frozen=True, kw_only=True)
class ElasticAddress(Resource):
    domain: str = "vpc"


@dataclass(frozen=True, kw_only=True)
class NatGateway(Resource):
    elastic_address: str
    subnet: str
    # Ordering-only edges, e.g. the internet gateway attachment
    depends_on: Tuple[str, ...] = ()

    references: ClassVar[Dict[str, Type[Resource]]] = {
        "elastic_address": ElasticAddress,
        "subnet": Subnet,
        "depends_on": Resource,
    }


@dataclass(frozen=True, kw_only=True)
class RouteTable(Resource):
    network: str

    references: ClassVar[Dict[str, Type[Resource]]] = {"network": Network}


@dataclass(frozen=True, kw_only=True)
class Route(Resource):
    route_table: str
    destination_cidr_block: str
    gateway: Optional[str] = None
    nat_gateway: Optional[str] = None
    # Ordering-only edges, e.g. the internet gateway attachment
    depends_on: Tuple[str, ...] = ()

    references: ClassVar[Dict[str, Type[Resource]]] = {
        "route_table": RouteTable,
        "gateway": InternetGateway,
        "nat_gateway": NatGateway,
        "depends_on": Resource,
    }

    @property
    def target(self) -> Optional[str]:
        return self.gateway or self.nat_gateway

    @property
    def is_default(self) -> bool:
        return self.destination_cidr_block == ANY_IPV4


@dataclass(frozen=True, kw_only=True)
class RouteTableAssociation(Resource):
    subnet: str
    route_table: str

    references: ClassVar[Dict[str, Type[Resource]]] = {
        "subnet": Subnet,
        "route_table": RouteTable,
    }


@dataclass(frozen=True, kw_only=True)
class NetworkAcl(Resource):
    network: str

    references: ClassVar[Dict[str, Type[Resource]]] = {"network": Network}


@dataclass(frozen=True, kw_only=True)
class NetworkAclRule(Resource):
    network_acl: str
    rule_number: int
    protocol: int
    rule_action: str
    cidr_block: str
    egress: bool = False
    from_port: Optional[int] = None
    to_port: Optional[int] = None

    references: ClassVar[Dict[str, Type[Resource]]] = {"network_acl": NetworkAcl}

    def matches(self, protocol: int, port: Optional[int], address: str) -> bool:
        """Check whether a packet (protocol number, port, peer address) is covered by this rule"""
        if self.protocol != ALL_PROTOCOLS and self.protocol != protocol:
            return False
        if ipaddress.ip_address(address) not in ipaddress.ip_network(self.cidr_block):
            return False
        if self.from_port is None or self.protocol == ALL_PROTOCOLS:
            return True
        return port is not None and self.from_port <= port <= self.to_port


@dataclass(frozen=True)
class IngressRule:
    """Security group ingress permission; protocol is "tcp", "udp" or "-1" for all traffic"""

    cidr_block: str
    protocol: str
    from_port: int
    to_port: int
    description: str = ""

    @classmethod
    def tcp(cls, cidr_block: str, port: int, description: str = "") -> "IngressRule":
        return cls(cidr_block, "tcp", port, port, description)

    @classmethod
    def all_traffic(cls, cidr_block: str, description: str = "") -> "IngressRule":
        return cls(cidr_block, "-1", 0, 0, description)


@dataclass(frozen=True, kw_only=True)
class SecurityGroup(Resource):
    network: str
    description: str
    ingress: Tuple[IngressRule, ...] = ()
    allow_all_outbound: bool = True

    references: ClassVar[Dict[str, Type[Resource]]] = {"network": Network}


@dataclass(frozen=True, kw_only=True)
class NetworkAclAssociation(Resource):
    subnet: str
    network_acl: str

    references: ClassVar[Dict[str, Type[Resource]]] = {
        "subnet": Subnet,
        "network_acl": NetworkAcl,
    }


@dataclass(frozen=True, kw_only=True)
class Instance(Resource):
    subnet: str
    security_group: str
    instance_type: str
    key_name: str
    user_data: str
    image_id: Optional[str] = None

    references: ClassVar[Dict[str, Type[Resource]]] = {
        "subnet": Subnet,
        "security_group": SecurityGroup,
    }


@dataclass(frozen=True, kw_only=True)
class StackOutput(Resource):
    """Value published after deployment, e.g. an instance id or public IP"""

    resource: str
    attribute: str = "id"
    description: str = ""

    references: ClassVar[Dict[str, Type[Resource]]] = {"resource": Resource}
