"""
Unit tests for the Pulumi builder functions
AWS resources are mocked; the tests check what each builder passes to pulumi_aws
"""

import unittest
from unittest.mock import Mock, patch
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from modules.compute.functions import create_instance
from modules.provisioning.functions import create_resource, create_topology_resources
from modules.topology import Topology, TopologyError, TopologySettings, declare_network_topology
from modules.topology.records import Instance, NetworkAclRule, Resource, SecurityGroup


def named_mock(name, **kwargs):
    """Mock resource whose id reflects its Pulumi name"""
    return Mock(id=f"{name}-id", allocation_id=f"{name}-alloc", public_ip=f"{name}-ip")


def resource_options(depends_on=None, **kwargs):
    """Stand-in for pulumi.ResourceOptions that keeps the dependency list readable"""
    return Mock(depends_on=depends_on or [])


def mock_ec2(mock_aws):
    for resource_type in ("Vpc", "Subnet", "InternetGateway", "InternetGatewayAttachment", "Eip", "NatGateway",
                          "RouteTable", "Route", "RouteTableAssociation", "NetworkAcl", "NetworkAclRule",
                          "NetworkAclAssociation", "SecurityGroup", "Instance"):
        getattr(mock_aws.ec2, resource_type).side_effect = named_mock


class TestTopologyProvisioning(unittest.TestCase):
    """Test that a declared topology becomes the expected Pulumi resources"""

    def setUp(self):
        self.topology = declare_network_topology(TopologySettings(availability_zones=("us-east-1a",)))

    def provision(self):
        with patch('modules.vpc.functions.aws') as vpc_aws, patch('modules.compute.functions.aws') as compute_aws, \
                patch('modules.vpc.functions.pulumi') as vpc_pulumi:
            vpc_pulumi.ResourceOptions.side_effect = resource_options
            mock_ec2(vpc_aws)
            mock_ec2(compute_aws)
            compute_aws.ec2.get_ami.return_value = Mock(id="ami-12345")
            result = create_topology_resources(self.topology, tags={"Project": "test"})
        return result, vpc_aws, compute_aws

    def test_result_structure(self):
        result, _, _ = self.provision()

        self.assertIn("resources", result)
        self.assertIn("outputs", result)
        self.assertIn("vpc-infra-vpc", result["resources"])
        self.assertNotIn("vpc_id", result["resources"])

    def test_vpc_settings(self):
        _, vpc_aws, _ = self.provision()

        vpc_aws.ec2.Vpc.assert_called_once()
        kwargs = vpc_aws.ec2.Vpc.call_args.kwargs
        self.assertEqual(kwargs["cidr_block"], "10.0.0.0/24")
        self.assertTrue(kwargs["enable_dns_hostnames"])
        self.assertTrue(kwargs["enable_dns_support"])
        self.assertEqual(kwargs["tags"]["Project"], "test")
        self.assertEqual(kwargs["tags"]["Name"], "MyVPC")

    def test_subnets(self):
        _, vpc_aws, _ = self.provision()

        calls = {c.args[0]: c.kwargs for c in vpc_aws.ec2.Subnet.call_args_list}
        self.assertEqual(calls["vpc-infra-public-subnet"]["cidr_block"], "10.0.0.0/26")
        self.assertTrue(calls["vpc-infra-public-subnet"]["map_public_ip_on_launch"])
        self.assertEqual(calls["vpc-infra-private-subnet"]["cidr_block"], "10.0.0.64/26")
        self.assertFalse(calls["vpc-infra-private-subnet"]["map_public_ip_on_launch"])
        for kwargs in calls.values():
            self.assertEqual(kwargs["vpc_id"], "vpc-infra-vpc-id")
            self.assertEqual(kwargs["availability_zone"], "us-east-1a")

    def test_nat_gateway_uses_public_subnet(self):
        result, vpc_aws, _ = self.provision()

        kwargs = vpc_aws.ec2.NatGateway.call_args.kwargs
        self.assertEqual(kwargs["subnet_id"], "vpc-infra-public-subnet-id")
        self.assertEqual(kwargs["allocation_id"], "vpc-infra-nat-eip-id")
        self.assertEqual(kwargs["opts"].depends_on, [result["resources"]["vpc-infra-igw-attachment"]])
        vpc_aws.ec2.Eip.assert_called_once()
        self.assertEqual(vpc_aws.ec2.Eip.call_args.kwargs["domain"], "vpc")

    def test_internet_gateway_attachment(self):
        _, vpc_aws, _ = self.provision()

        kwargs = vpc_aws.ec2.InternetGatewayAttachment.call_args.kwargs
        self.assertEqual(kwargs["internet_gateway_id"], "vpc-infra-igw-id")
        self.assertEqual(kwargs["vpc_id"], "vpc-infra-vpc-id")

    def test_default_routes(self):
        _, vpc_aws, _ = self.provision()

        calls = {c.args[0]: c.kwargs for c in vpc_aws.ec2.Route.call_args_list}
        public = calls["vpc-infra-public-route"]
        private = calls["vpc-infra-private-route"]
        self.assertEqual(public["destination_cidr_block"], "0.0.0.0/0")
        self.assertEqual(public["gateway_id"], "vpc-infra-igw-id")
        self.assertNotIn("nat_gateway_id", public)
        self.assertEqual(private["nat_gateway_id"], "vpc-infra-nat-gateway-id")
        self.assertEqual(private["route_table_id"], "vpc-infra-private-rt-id")

    def test_public_route_waits_for_gateway_attachment(self):
        """A route to the internet gateway is only valid once the gateway is attached"""
        result, vpc_aws, _ = self.provision()

        calls = {c.args[0]: c.kwargs for c in vpc_aws.ec2.Route.call_args_list}
        attachment = result["resources"]["vpc-infra-igw-attachment"]
        self.assertEqual(calls["vpc-infra-public-route"]["opts"].depends_on, [attachment])
        self.assertEqual(calls["vpc-infra-private-route"]["opts"].depends_on, [])

    def test_network_acl_rules(self):
        _, vpc_aws, _ = self.provision()

        calls = {c.args[0]: c.kwargs for c in vpc_aws.ec2.NetworkAclRule.call_args_list}
        self.assertEqual(len(calls), 5)
        ephemeral = calls["vpc-infra-private-nacl-inbound-ephemeral"]
        self.assertEqual(ephemeral["protocol"], "6")
        self.assertEqual(ephemeral["rule_number"], 110)
        self.assertEqual((ephemeral["from_port"], ephemeral["to_port"]), (1024, 65535))
        self.assertFalse(ephemeral["egress"])
        outbound = calls["vpc-infra-public-nacl-outbound"]
        self.assertEqual(outbound["protocol"], "-1")
        self.assertTrue(outbound["egress"])
        self.assertNotIn("from_port", outbound)
        self.assertEqual(vpc_aws.ec2.NetworkAclAssociation.call_count, 2)

    def test_security_groups(self):
        _, vpc_aws, _ = self.provision()

        calls = {c.args[0]: c.kwargs for c in vpc_aws.ec2.SecurityGroup.call_args_list}
        self.assertEqual(len(calls["vpc-infra-public-sg"]["ingress"]), 3)
        self.assertEqual(len(calls["vpc-infra-private-sg"]["ingress"]), 2)
        self.assertEqual(len(calls["vpc-infra-public-sg"]["egress"]), 1)
        self.assertEqual(calls["vpc-infra-private-sg"]["description"], "Security group for private EC2 instance")

    def test_instances(self):
        _, _, compute_aws = self.provision()

        calls = {c.args[0]: c.kwargs for c in compute_aws.ec2.Instance.call_args_list}
        public = calls["vpc-infra-public-instance"]
        self.assertEqual(public["ami"], "ami-12345")
        self.assertEqual(public["instance_type"], "t2.micro")
        self.assertEqual(public["subnet_id"], "vpc-infra-public-subnet-id")
        self.assertEqual(public["vpc_security_group_ids"], ["vpc-infra-public-sg-id"])
        self.assertEqual(public["key_name"], "KPLegend1")
        self.assertIn("httpd", public["user_data"])
        self.assertEqual(public["tags"]["Name"], "Public Web Server")
        self.assertEqual(calls["vpc-infra-private-instance"]["subnet_id"], "vpc-infra-private-subnet-id")

    def test_outputs(self):
        result, _, _ = self.provision()

        outputs = result["outputs"]
        self.assertEqual(len(outputs), 7)
        self.assertEqual(outputs["vpc_id"], "vpc-infra-vpc-id")
        self.assertEqual(outputs["nat_gateway_id"], "vpc-infra-nat-gateway-id")
        self.assertEqual(outputs["public_instance_ip"], "vpc-infra-public-instance-ip")

    def test_invalid_topology_creates_nothing(self):
        """Validation runs before the first resource is registered"""
        topology = Topology("broken")
        for record in self.topology:
            if record.name != "vpc-infra-public-rta":
                topology.add(record)

        with patch('modules.vpc.functions.aws') as vpc_aws:
            with self.assertRaises(TopologyError):
                create_topology_resources(topology)
            vpc_aws.ec2.Vpc.assert_not_called()


class TestBuilders(unittest.TestCase):
    """Individual builder behaviour"""

    def test_unknown_record_kind(self):
        with self.assertRaises(TopologyError):
            create_resource(Resource(name="orphan"), {})

    def test_instance_with_explicit_image(self):
        """No AMI lookup when the record pins an image"""
        record = Instance(name="box", subnet="subnet", security_group="sg", instance_type="t2.micro",
                          key_name="key", user_data="#!/bin/bash", image_id="ami-pinned")
        resources = {"subnet": Mock(id="subnet-1"), "sg": Mock(id="sg-1")}

        with patch('modules.compute.functions.aws') as mock_aws:
            create_instance(record, resources)

            mock_aws.ec2.get_ami.assert_not_called()
            self.assertEqual(mock_aws.ec2.Instance.call_args.kwargs["ami"], "ami-pinned")

    def test_security_group_without_outbound(self):
        record = SecurityGroup(name="sg", network="vpc", description="closed", allow_all_outbound=False)

        with patch('modules.vpc.functions.aws') as mock_aws:
            create_resource(record, {"vpc": Mock(id="vpc-1")})

            kwargs = mock_aws.ec2.SecurityGroup.call_args.kwargs
            self.assertEqual(kwargs["egress"], [])
            self.assertEqual(kwargs["ingress"], [])

    def test_acl_rule_without_ports(self):
        record = NetworkAclRule(name="all", network_acl="nacl", rule_number=100, protocol=-1,
                                rule_action="allow", cidr_block="0.0.0.0/0")

        with patch('modules.vpc.functions.aws') as mock_aws:
            create_resource(record, {"nacl": Mock(id="acl-1")})

            kwargs = mock_aws.ec2.NetworkAclRule.call_args.kwargs
            self.assertEqual(kwargs["network_acl_id"], "acl-1")
            self.assertNotIn("from_port", kwargs)


if __name__ == '__main__':
    unittest.main()
