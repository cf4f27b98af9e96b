from typing import Union

from aws_cdk import Tags
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from topology.descriptors import CidrPeer, IngressRule, PortRange, SecurityGroupDescriptor


def to_cdk_port(ports: PortRange) -> ec2.Port:
    if ports.is_all_tcp:
        return ec2.Port.all_tcp()
    if ports.from_port == ports.to_port:
        return ec2.Port.tcp(ports.from_port)
    return ec2.Port.tcp_range(ports.from_port, ports.to_port)


class SecurityGroup(Construct):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.Vpc,
        descriptor: SecurityGroupDescriptor,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id)

        self.descriptor = descriptor
        self.sg = ec2.SecurityGroup(
            self,
            construct_id,
            vpc=vpc,
            security_group_name=descriptor.name,
            description=descriptor.description,
            allow_all_outbound=descriptor.allow_all_outbound,
        )
        Tags.of(self.sg).add("Name", descriptor.name)

    def add_ingress_rule(
        self, rule: IngressRule, source: Union[CidrPeer, ec2.ISecurityGroup]
    ) -> None:
        """Add a rule whose peer is already resolved to a CIDR or a CDK security group."""
        peer = ec2.Peer.ipv4(source.cidr) if isinstance(source, CidrPeer) else source
        self.sg.add_ingress_rule(peer, to_cdk_port(rule.ports), rule.description or None)
