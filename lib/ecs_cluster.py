import logging

from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_servicediscovery as servicediscovery
from constructs import Construct

from config.enums import NamespaceKind
from topology.descriptors import ClusterDescriptor

logger = logging.getLogger(__name__)

NAMESPACE_TYPES = {
    NamespaceKind.HTTP: servicediscovery.NamespaceType.HTTP,
    NamespaceKind.DNS_PRIVATE: servicediscovery.NamespaceType.DNS_PRIVATE,
}


class EcsCluster(Construct):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.Vpc,
        cluster_descriptor: ClusterDescriptor,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self._vpc = vpc
        self._cluster_descriptor = cluster_descriptor

        logger.info("Creating ECS cluster...")
        logger.info(f"ECS cluster parameters: {self._cluster_descriptor}")

        self._ecs_cluster = self._create_ecs_cluster()

        logger.info("ECS cluster created successfully")

    @property
    def cluster(self) -> ecs.Cluster:
        return self._ecs_cluster

    def _create_ecs_cluster(self) -> ecs.Cluster:
        namespace_type = self._cluster_descriptor.namespace_type
        namespace_options = {
            "name": self._cluster_descriptor.namespace,
            "type": NAMESPACE_TYPES[namespace_type],
        }
        # HTTP namespaces are not tied to a VPC
        if namespace_type == NamespaceKind.DNS_PRIVATE:
            namespace_options["vpc"] = self._vpc

        cluster = ecs.Cluster(
            self,
            "Cluster",
            vpc=self._vpc,
            cluster_name=self._cluster_descriptor.name,
            default_cloud_map_namespace=ecs.CloudMapNamespaceOptions(**namespace_options),
        )
        logger.info(
            f"Default Cloud Map namespace created successfully: {self._cluster_descriptor.namespace}"
        )
        return cluster
