import logging

from aws_cdk import Tags
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from topology.descriptors import NetworkDescriptor

logger = logging.getLogger(__name__)


class PublicVpc(Construct):
    """VPC with a single public subnet group per AZ and no NAT gateway."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        network: NetworkDescriptor,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id)
        self._network = network
        logger.info("Creating VPC...")
        logger.info(f"VPC parameters: {self._network}")

        self._vpc = self._create_vpc()
        self._tag_subnets()

        logger.info("VPC created successfully")

    @property
    def vpc(self) -> ec2.Vpc:
        return self._vpc

    def _create_vpc(self) -> ec2.Vpc:
        return ec2.Vpc(
            self,
            "Vpc",
            vpc_name=self._network.name,
            ip_addresses=ec2.IpAddresses.cidr(self._network.cidr),
            max_azs=self._network.max_azs,
            nat_gateways=self._network.nat_gateways,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name=self._network.subnet_name,
                    subnet_type=ec2.SubnetType.PUBLIC,
                ),
            ],
        )

    def _tag_subnets(self):
        for subnet in self.vpc.public_subnets:
            Tags.of(subnet).add("Az", subnet.availability_zone)
