import logging

from aws_cdk import CfnOutput, Stack
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from config.loader import Context
from lib.vpc.public_vpc import PublicVpc
from topology.descriptors import NetworkDescriptor

logger = logging.getLogger(__name__)


class NetworkStack(Stack):
    """
    Stack containing the network resources of the deployment.

    This stack creates a VPC with public subnets only and no NAT gateway.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        network: NetworkDescriptor,
        context: Context,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        logger.info(f"Creating network stack (environment: {context.env_name})")

        self._network = network
        self._public_vpc = self._create_vpc()
        self._create_stack_outputs()

        logger.info(f"Network stack created successfully (environment: {context.env_name})")

    @property
    def vpc(self) -> ec2.Vpc:
        return self._public_vpc.vpc

    def _create_vpc(self) -> PublicVpc:
        return PublicVpc(self, "PublicVpc", network=self._network)

    def _create_stack_outputs(self) -> None:
        CfnOutput(
            self,
            "VpcId",
            value=self.vpc.vpc_id,
            description="Vpc Id",
        )
