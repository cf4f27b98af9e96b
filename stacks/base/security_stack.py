import logging
from typing import Dict

from aws_cdk import Stack
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from config.loader import Context
from lib.security_group import SecurityGroup
from topology.descriptors import DeploymentGraph, SecurityGroupDescriptor
from utils.naming import sanitize_for_cfn, to_pascal

logger = logging.getLogger(__name__)


class SecurityStack(Stack):
    """
    Stack containing the security groups of the deployment.

    All groups are created first, then the ingress rules, so that a rule can
    reference any group of the graph as its source.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.Vpc,
        graph: DeploymentGraph,
        context: Context,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        logger.info(f"Creating security stack (environment: {context.env_name})")

        self._vpc = vpc
        self._graph = graph
        self._security_groups: Dict[str, SecurityGroup] = {}

        self._create_security_groups()
        self._create_ingress_rules()

        logger.info(f"Security stack created successfully (environment: {context.env_name})")

    def security_group(self, name: str) -> ec2.SecurityGroup:
        return self._security_groups[name].sg

    def _create_security_group(self, descriptor: SecurityGroupDescriptor) -> SecurityGroup:
        return SecurityGroup(
            self,
            sanitize_for_cfn(to_pascal(descriptor.name)),
            vpc=self._vpc,
            descriptor=descriptor,
        )

    def _create_security_groups(self) -> None:
        logger.info("Creating security groups")
        for descriptor in self._graph.security_groups:
            self._security_groups[descriptor.name] = self._create_security_group(descriptor)

    def _create_ingress_rules(self) -> None:
        logger.info("Creating ingress rules")
        for name, security_group in self._security_groups.items():
            for rule in security_group.descriptor.ingress_rules:
                source = self._graph.resolve_peer(rule.peer)
                if isinstance(source, SecurityGroupDescriptor):
                    source = self.security_group(source.name)
                security_group.add_ingress_rule(rule, source)
                logger.info(f"Ingress rule added to {name}: {rule}")
