import logging
from typing import Callable, Dict

from aws_cdk import CfnOutput, Stack
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from constructs import Construct

from config.loader import Context
from lib.ecs_cluster import EcsCluster
from lib.ecs_service import EcsService
from lib.log_sink import LogSink
from topology.descriptors import DeploymentGraph, ServiceDescriptor
from utils.naming import sanitize_for_cfn, to_pascal

logger = logging.getLogger(__name__)


class ApplicationStack(Stack):
    """
    Stack containing the ECS cluster, the shared log group and the services.

    Services are created in the graph's creation order and every dependency
    edge becomes a CloudFormation DependsOn between the two ECS services.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.Vpc,
        security_group_lookup: Callable[[str], ec2.ISecurityGroup],
        graph: DeploymentGraph,
        context: Context,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        logger.info(f"Creating application stack (environment: {context.env_name})")

        self._vpc = vpc
        self._security_group_lookup = security_group_lookup
        self._graph = graph

        self._ecs_cluster = self._create_ecs_cluster()
        self._log_sinks = self._create_log_sinks()
        self._ecs_services = self._create_ecs_services()
        self._add_service_dependencies()
        self._create_stack_outputs()

        logger.info(f"Application stack created successfully (environment: {context.env_name})")

    @property
    def ecs_cluster(self) -> ecs.Cluster:
        return self._ecs_cluster.cluster

    def ecs_service(self, name: str) -> ecs.FargateService:
        return self._ecs_services[name].service

    def _create_ecs_cluster(self) -> EcsCluster:
        return EcsCluster(
            self,
            "EcsCluster",
            vpc=self._vpc,
            cluster_descriptor=self._graph.cluster,
        )

    def _create_log_sinks(self) -> Dict[str, LogSink]:
        return {
            sink.name: LogSink(self, f"{sanitize_for_cfn(to_pascal(sink.name))}Logs", log_sink=sink)
            for sink in self._graph.log_sinks
        }

    def _create_ecs_service(self, descriptor: ServiceDescriptor) -> EcsService:
        return EcsService(
            self,
            f"{sanitize_for_cfn(to_pascal(descriptor.name))}Service",
            ecs_cluster=self.ecs_cluster,
            security_group=self._security_group_lookup(descriptor.security_group),
            log_group=self._log_sinks[descriptor.log_sink.name].log_group,
            service_descriptor=descriptor,
        )

    def _create_ecs_services(self) -> Dict[str, EcsService]:
        return {
            descriptor.name: self._create_ecs_service(descriptor)
            for descriptor in self._graph.ordered_services()
        }

    def _add_service_dependencies(self) -> None:
        for edge in self._graph.dependencies:
            logger.info(f"Service {edge.source} will be created after {edge.target}")
            self.ecs_service(edge.source).node.add_dependency(self.ecs_service(edge.target))

    def _create_stack_outputs(self) -> None:
        CfnOutput(
            self,
            "ClusterName",
            value=self.ecs_cluster.cluster_name,
            description="ECS cluster name",
        )
        CfnOutput(
            self,
            "NamespaceName",
            value=self._graph.cluster.namespace,
            description="Cloud Map namespace the services register in",
        )
