import logging

from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecr_assets as ecr_assets
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_iam as iam
from aws_cdk import aws_logs as logs
from aws_cdk import aws_servicediscovery as servicediscovery
from constructs import Construct

from config.enums import PolicyEffect
from topology.descriptors import IamStatement, ServiceDescriptor

logger = logging.getLogger(__name__)

PLATFORM_VERSIONS = {
    "1.4.0": ecs.FargatePlatformVersion.VERSION1_4,
    "LATEST": ecs.FargatePlatformVersion.LATEST,
}

POLICY_EFFECTS = {
    PolicyEffect.ALLOW: iam.Effect.ALLOW,
    PolicyEffect.DENY: iam.Effect.DENY,
}


def to_policy_statement(statement: IamStatement) -> iam.PolicyStatement:
    return iam.PolicyStatement(
        effect=POLICY_EFFECTS[statement.effect],
        actions=list(statement.actions),
        resources=list(statement.resources),
    )


class EcsService(Construct):
    """Fargate service running a single container built from a local Docker context."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        ecs_cluster: ecs.Cluster,
        security_group: ec2.ISecurityGroup,
        log_group: logs.ILogGroup,
        service_descriptor: ServiceDescriptor,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self._ecs_cluster = ecs_cluster
        self._security_group = security_group
        self._log_group = log_group
        self._service_descriptor = service_descriptor
        logger.info("Creating ECS service...")
        logger.info(f"ECS service parameters: {self._service_descriptor}")

        self._image_asset = self._create_image_asset()
        self._task_definition = self._create_task_definition()
        self._container = self._create_container_definition()
        self._fargate_service = self._create_fargate_service()

        logger.info(f"ECS service {self._service_descriptor.name} created successfully")

    @property
    def service(self) -> ecs.FargateService:
        return self._fargate_service

    @property
    def task_definition(self) -> ecs.FargateTaskDefinition:
        return self._task_definition

    @property
    def container(self) -> ecs.ContainerDefinition:
        return self._container

    def _create_image_asset(self) -> ecr_assets.DockerImageAsset:
        return ecr_assets.DockerImageAsset(
            self,
            "Image",
            directory=self._service_descriptor.image.directory,
            file=self._service_descriptor.image.dockerfile,
        )

    def _create_task_definition(self) -> ecs.FargateTaskDefinition:
        task_definition = ecs.FargateTaskDefinition(
            self,
            "TaskDefinition",
            cpu=self._service_descriptor.cpu,
            memory_limit_mib=self._service_descriptor.memory_mib,
            family=self._service_descriptor.family,
        )

        for statement in self._service_descriptor.iam_statements:
            task_definition.add_to_task_role_policy(to_policy_statement(statement))

        return task_definition

    def _create_container_definition(self) -> ecs.ContainerDefinition:
        return self._task_definition.add_container(
            self._service_descriptor.container_name,
            image=ecs.ContainerImage.from_docker_image_asset(self._image_asset),
            port_mappings=[
                ecs.PortMapping(container_port=port)
                for port in self._service_descriptor.port_mappings
            ],
            logging=ecs.LogDrivers.aws_logs(
                log_group=self._log_group,
                stream_prefix=self._service_descriptor.stream_prefix,
            ),
        )

    def _create_fargate_service(self) -> ecs.FargateService:
        service_parameters = {
            "cluster": self._ecs_cluster,
            "service_name": self._service_descriptor.name,
            "task_definition": self._task_definition,
            "security_groups": [self._security_group],
            "vpc_subnets": ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
            "assign_public_ip": self._service_descriptor.assign_public_ip,
            "desired_count": self._service_descriptor.desired_count,
            "platform_version": PLATFORM_VERSIONS[self._service_descriptor.platform_version],
        }

        discovery = self._service_descriptor.discovery
        namespace = self._ecs_cluster.default_cloud_map_namespace
        if discovery and namespace.type != servicediscovery.NamespaceType.HTTP:
            service_parameters["cloud_map_options"] = ecs.CloudMapOptions(
                name=discovery.name, container_port=discovery.container_port
            )

        fargate_service = ecs.FargateService(self, "EcsService", **service_parameters)

        # HTTP namespaces are API-only: register the tasks without DNS records
        if discovery and namespace.type == servicediscovery.NamespaceType.HTTP:
            cloud_map_service = servicediscovery.Service(
                self,
                "CloudMapService",
                namespace=namespace,
                name=discovery.name,
                custom_health_check=servicediscovery.HealthCheckCustomConfig(failure_threshold=1),
            )
            fargate_service.associate_cloud_map_service(
                service=cloud_map_service, container_port=discovery.container_port
            )
            logger.info(
                f"Service registered in Cloud Map as {discovery.name}.{namespace.namespace_name}"
            )

        return fargate_service
