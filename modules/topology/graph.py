"""
Topology Graph
Registry of named resource records forming a DAG, validated before provisioning
"""

from typing import Dict, Iterator, List, Optional, Set, Type, TypeVar

import pulumi

from .errors import InvalidContainment, TopologyError, UnresolvedReference
from .records import (
    TCP,
    UDP,
    GatewayAttachment,
    Instance,
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

# Valid entry numbers of an EC2 network ACL
MIN_RULE_NUMBER = 1
MAX_RULE_NUMBER = 32766
RULE_ACTIONS = ("allow", "deny")

R = TypeVar("R", bound=Resource)


class Topology:
    """
    Named resource records with references resolved at declaration time

    A record can only reference records added before it, so declaration order
    is always a valid creation order and the graph can never contain a cycle.
    """

    def __init__(self, name: str):
        self.name = name
        self._records: Dict[str, Resource] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._records.values())

    def add(self, record: R) -> R:
        """
        Register a record after checking its references and address block

        Args:
            record: Resource record to declare

        Returns:
            The record itself, so declarations can be chained into variables

        Raises:
            UnresolvedReference: a referenced name is not declared or has the wrong kind
            InvalidContainment: a subnet block is outside its network or overlaps a sibling
            TopologyError: the name is already taken, or a route or NACL rule is malformed
        """
        if record.name in self._records:
            raise TopologyError(f"Resource '{record.name}' is declared twice")

        for field, target, kind in record.iter_references():
            self._resolve(record, field, target, kind)

        if isinstance(record, Network):
            self._check_network_block(record)
        if isinstance(record, Subnet):
            self._check_subnet_block(record)
        if isinstance(record, Route) and (record.gateway is None) == (record.nat_gateway is None):
            raise TopologyError(f"Route '{record.name}' needs exactly one of gateway or nat_gateway")
        if isinstance(record, NetworkAclRule):
            self._check_acl_rule(record)
            self._check_rule_number(record)

        self._records[record.name] = record
        pulumi.log.debug(f"Declared {record.kind} '{record.name}'")
        return record

    def get(self, name: str, kind: Type[R] = Resource) -> R:
        """Look up a declared record, optionally asserting its kind"""
        record = self._records.get(name)
        if record is None:
            raise UnresolvedReference(self.name, "get", name)
        if not isinstance(record, kind):
            raise UnresolvedReference(self.name, "get", name, kind.__name__)
        return record

    def of_type(self, kind: Type[R]) -> List[R]:
        return [record for record in self._records.values() if isinstance(record, kind)]

    def dependencies(self, name: str, transitive: bool = False) -> Set[str]:
        """
        Names referenced by a record

        Args:
            name: Record name
            transitive: Follow references all the way down to the roots

        Returns:
            Set of referenced record names
        """
        direct = {target for _, target, _ in self.get(name).iter_references()}
        if not transitive:
            return direct

        found: Set[str] = set()
        pending = list(direct)
        while pending:
            current = pending.pop()
            if current in found:
                continue
            found.add(current)
            pending.extend(self.dependencies(current))
        return found

    def dependents(self, name: str) -> Set[str]:
        """Names of the records that reference the given record"""
        self.get(name)
        return {
            record.name
            for record in self._records.values()
            if any(target == name for _, target, _ in record.iter_references())
        }

    def creation_order(self) -> List[str]:
        """
        Deterministic topological order of all records

        Records are grouped by depth (roots first); records at the same depth
        keep their declaration order.
        """
        depth: Dict[str, int] = {}
        for record in self._records.values():
            parents = self.dependencies(record.name)
            depth[record.name] = 1 + max((depth[parent] for parent in parents), default=-1)

        position = {name: index for index, name in enumerate(self._records)}
        return sorted(self._records, key=lambda name: (depth[name], position[name]))

    def routes_for(self, route_table: str) -> List[Route]:
        return [route for route in self.of_type(Route) if route.route_table == route_table]

    def default_route(self, route_table: str) -> Optional[Route]:
        defaults = [route for route in self.routes_for(route_table) if route.is_default]
        return defaults[0] if defaults else None

    def route_table_for(self, subnet: str) -> Optional[RouteTable]:
        for association in self.of_type(RouteTableAssociation):
            if association.subnet == subnet:
                return self.get(association.route_table, RouteTable)
        return None

    def network_acl_for(self, subnet: str) -> Optional[NetworkAcl]:
        for association in self.of_type(NetworkAclAssociation):
            if association.subnet == subnet:
                return self.get(association.network_acl, NetworkAcl)
        return None

    def is_public_subnet(self, subnet: str) -> bool:
        """A subnet is public when its default route targets an internet gateway attached to its VPC"""
        network = self.get(subnet, Subnet).network
        route_table = self.route_table_for(subnet)
        if route_table is None:
            return False
        route = self.default_route(route_table.name)
        if route is None or route.gateway is None:
            return False
        return any(
            attachment.internet_gateway == route.gateway and attachment.network == network
            for attachment in self.of_type(GatewayAttachment)
        )

    def acl_rules(self, network_acl: str, egress: bool = False) -> List[NetworkAclRule]:
        """Rules of one NACL direction in evaluation order (ascending rule number)"""
        self.get(network_acl, NetworkAcl)
        rules = [
            rule for rule in self.of_type(NetworkAclRule)
            if rule.network_acl == network_acl and rule.egress == egress
        ]
        return sorted(rules, key=lambda rule: rule.rule_number)

    def evaluate_acl(self, network_acl: str, egress: bool, protocol: int,
                     port: Optional[int], address: str) -> Optional[NetworkAclRule]:
        """
        Find the rule that decides a packet; None means the implicit deny-all

        Args:
            network_acl: NACL name
            egress: Direction to evaluate
            protocol: IP protocol number (6 for TCP)
            port: Destination port, None for portless protocols
            address: Peer IPv4 address

        Returns:
            The first matching rule, or None
        """
        for rule in self.acl_rules(network_acl, egress):
            if rule.matches(protocol, port, address):
                return rule
        return None

    def validate(self) -> "Topology":
        """
        Check the invariants that span more than one record

        Raises:
            UnresolvedReference: a reference no longer resolves
            InvalidContainment: a subnet block is invalid
            TopologyError: any other structural invariant is broken
        """
        for record in self._records.values():
            for field, target, kind in record.iter_references():
                self._resolve(record, field, target, kind)

        for subnet in self.of_type(Subnet):
            self._validate_subnet(subnet)

        for route_table in self.of_type(RouteTable):
            defaults = [route for route in self.routes_for(route_table.name) if route.is_default]
            if len(defaults) != 1:
                raise TopologyError(
                    f"Route table '{route_table.name}' has {len(defaults)} default routes, expected 1")

        for nat in self.of_type(NatGateway):
            if not self.is_public_subnet(nat.subnet):
                raise TopologyError(f"NAT gateway '{nat.name}' must sit in a public subnet, not '{nat.subnet}'")

        for instance in self.of_type(Instance):
            subnet = self.get(instance.subnet, Subnet)
            group = self.get(instance.security_group, SecurityGroup)
            if subnet.network != group.network:
                raise TopologyError(
                    f"Instance '{instance.name}' mixes subnet and security group from different networks")

        pulumi.log.debug(f"Topology '{self.name}' validated ({len(self)} resources)")
        return self

    def _resolve(self, record: Resource, field: str, target: str, kind: Type[Resource]) -> Resource:
        resolved = self._records.get(target)
        if resolved is None:
            raise UnresolvedReference(record.name, field, target)
        if not isinstance(resolved, kind):
            raise UnresolvedReference(record.name, field, target, kind.__name__)
        return resolved

    def _check_network_block(self, network: Network) -> None:
        try:
            network.address_block
        except ValueError as e:
            raise TopologyError(f"Network '{network.name}' has an invalid CIDR block {network.cidr_block}") from e

    def _check_subnet_block(self, subnet: Subnet) -> None:
        network = self.get(subnet.network, Network)
        try:
            block = subnet.address_block
        except ValueError as e:
            raise InvalidContainment(subnet.name, subnet.cidr_block, network.cidr_block, "is not a valid block in") from e

        if block.version != network.address_block.version or not block.subnet_of(network.address_block):
            raise InvalidContainment(subnet.name, subnet.cidr_block, network.cidr_block, "is not contained in")

        for sibling in self.of_type(Subnet):
            if sibling.network == subnet.network and sibling.name != subnet.name \
                    and block.overlaps(sibling.address_block):
                raise InvalidContainment(subnet.name, subnet.cidr_block, sibling.cidr_block, "overlaps")

    def _check_acl_rule(self, rule: NetworkAclRule) -> None:
        if not MIN_RULE_NUMBER <= rule.rule_number <= MAX_RULE_NUMBER:
            raise TopologyError(
                f"Rule '{rule.name}': rule number {rule.rule_number} is outside "
                f"{MIN_RULE_NUMBER}-{MAX_RULE_NUMBER}")
        if rule.rule_action not in RULE_ACTIONS:
            raise TopologyError(f"Rule '{rule.name}': action must be one of {RULE_ACTIONS}, got '{rule.rule_action}'")

        if (rule.from_port is None) != (rule.to_port is None):
            raise TopologyError(f"Rule '{rule.name}' needs both from_port and to_port, or neither")
        if rule.from_port is None:
            # TCP and UDP entries are rejected by EC2 without a port range
            if rule.protocol in (TCP, UDP):
                raise TopologyError(f"Rule '{rule.name}': protocol {rule.protocol} requires a port range")
            return
        if not 0 <= rule.from_port <= rule.to_port <= 65535:
            raise TopologyError(f"Rule '{rule.name}': invalid port range {rule.from_port}-{rule.to_port}")

    def _check_rule_number(self, rule: NetworkAclRule) -> None:
        for existing in self.of_type(NetworkAclRule):
            if existing.network_acl == rule.network_acl and existing.egress == rule.egress \
                    and existing.rule_number == rule.rule_number:
                direction = "egress" if rule.egress else "ingress"
                raise TopologyError(
                    f"Rule number {rule.rule_number} is used twice in {direction} of '{rule.network_acl}'")

    def _validate_subnet(self, subnet: Subnet) -> None:
        self._check_subnet_block(subnet)

        route_tables = [a for a in self.of_type(RouteTableAssociation) if a.subnet == subnet.name]
        network_acls = [a for a in self.of_type(NetworkAclAssociation) if a.subnet == subnet.name]
        if len(route_tables) != 1 or len(network_acls) != 1:
            raise TopologyError(
                f"Subnet '{subnet.name}' needs exactly one route table and one network ACL association, "
                f"found {len(route_tables)} and {len(network_acls)}")

        route_table = self.get(route_tables[0].route_table, RouteTable)
        network_acl = self.get(network_acls[0].network_acl, NetworkAcl)
        if route_table.network != subnet.network or network_acl.network != subnet.network:
            raise TopologyError(f"Subnet '{subnet.name}' is associated with a table from another network")

