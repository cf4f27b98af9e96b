import logging
import os
from typing import Any, Dict, Mapping, Optional, Set, Tuple, Union

from pydantic import ValidationError

from config.base_config import DeploymentConfig, ServiceConfig
from config.enums import PolicyEffect

from .descriptors import (
    CidrPeer,
    ClusterDescriptor,
    DependencyEdge,
    DeploymentGraph,
    DiscoveryBinding,
    IamStatement,
    ImageSource,
    IngressRule,
    LogSinkDescriptor,
    NetworkDescriptor,
    PortRange,
    SecurityGroupDescriptor,
    SecurityGroupPeer,
    ServiceDescriptor,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DISCOVERY_QUERY_STATEMENT = IamStatement(
    effect=PolicyEffect.ALLOW,
    actions=("servicediscovery:DiscoverInstances",),
    # TODO: scope to the cluster namespace once the client only resolves "server"
    resources=("*",),
)


class _NameRegistry:
    """Tracks names that must be unique within a scope (e.g. services in a cluster)."""

    def __init__(self):
        self._seen: Dict[str, Set[str]] = {}

    def claim(self, scope: str, name: str, owner: str) -> None:
        names = self._seen.setdefault(scope, set())
        if name in names:
            raise ConfigurationError(f"{owner}: {scope} name '{name}' is already in use")
        names.add(name)


def load_deployment_config(raw: Union[DeploymentConfig, Mapping[str, Any]]) -> DeploymentConfig:
    """Validate a raw mapping into a DeploymentConfig, reporting failures as ConfigurationError."""
    if isinstance(raw, DeploymentConfig):
        return raw
    try:
        return DeploymentConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid deployment configuration: {e}") from e


def build_deployment_graph(
    config: Union[DeploymentConfig, Mapping[str, Any]], *, base_dir: Optional[str] = None
) -> DeploymentGraph:
    """
    Assemble the deployment graph from configuration.

    Nothing is returned unless every check passes: name collisions, missing
    build contexts and out-of-range sizes raise ConfigurationError.

    Args:
        config: Deployment configuration, or a mapping validated into one
        base_dir: Directory relative build contexts are resolved against
            (defaults to the current working directory)

    Returns:
        The immutable deployment graph
    """
    config = load_deployment_config(config)
    base_dir = base_dir or os.getcwd()
    names = _NameRegistry()

    logger.info("Building deployment graph...")

    network = NetworkDescriptor(
        name=config.vpc.name,
        cidr=config.vpc.cidr,
        max_azs=config.vpc.max_azs,
        subnet_name=config.vpc.subnet_name,
        nat_gateways=config.vpc.nat_gateways,
    )

    cluster = ClusterDescriptor(
        name=config.cluster.name,
        network=network.name,
        namespace=config.cluster.namespace,
        namespace_type=config.cluster.namespace_type,
    )

    client_sg, server_sg = _build_security_groups(config, network, names)

    log_sink = LogSinkDescriptor(
        name=config.log_group.name,
        retention_days=config.log_group.retention_days,
        destroy_on_teardown=config.log_group.destroy_on_teardown,
    )

    server = _build_service(
        config.server,
        cluster=cluster,
        log_sink=log_sink,
        base_dir=base_dir,
        names=names,
        discovery=DiscoveryBinding(
            name=config.server.discovery_name, container_port=config.server.port
        ),
    )

    client = _build_service(
        config.client,
        cluster=cluster,
        log_sink=log_sink,
        base_dir=base_dir,
        names=names,
        port_mappings=(config.client.port,),
        iam_statements=(DISCOVERY_QUERY_STATEMENT,),
    )

    # the client resolves the server through Cloud Map at startup
    dependency = DependencyEdge(source=client.name, target=server.name)

    graph = DeploymentGraph(
        network=network,
        cluster=cluster,
        security_groups=(client_sg, server_sg),
        log_sinks=(log_sink,),
        services=(server, client),
        dependencies=(dependency,),
    )

    logger.info(f"Deployment graph built, creation order: {', '.join(graph.creation_order())}")
    return graph


def _build_security_groups(
    config: DeploymentConfig, network: NetworkDescriptor, names: _NameRegistry
) -> Tuple[SecurityGroupDescriptor, SecurityGroupDescriptor]:
    client_sg = SecurityGroupDescriptor(
        name=config.client.security_group_name,
        network=network.name,
        description="Client service security group",
        ingress_rules=(
            IngressRule(
                peer=CidrPeer(cidr=config.client.ingress_cidr),
                ports=PortRange.tcp(config.client.port),
                description=f"Allow client traffic on port {config.client.port}",
            ),
        ),
    )
    names.claim("security group", client_sg.name, "client")

    server_sg = SecurityGroupDescriptor(
        name=config.server.security_group_name,
        network=network.name,
        description="Server service security group",
        ingress_rules=(
            IngressRule(
                peer=SecurityGroupPeer(group_name=client_sg.name),
                ports=PortRange.all_tcp(),
                description="Allow all TCP traffic from the client security group",
            ),
        ),
    )
    names.claim("security group", server_sg.name, "server")

    return client_sg, server_sg


def _resolve_build_context(service_config: ServiceConfig, base_dir: str) -> ImageSource:
    directory = service_config.build_context
    if not os.path.isabs(directory):
        directory = os.path.normpath(os.path.join(base_dir, directory))

    if not os.path.isdir(directory):
        raise ConfigurationError(
            f"service '{service_config.name}': build context not found: {directory}"
        )
    if not os.path.isfile(os.path.join(directory, service_config.dockerfile)):
        raise ConfigurationError(
            f"service '{service_config.name}': {service_config.dockerfile} not found in {directory}"
        )
    return ImageSource(directory=directory, dockerfile=service_config.dockerfile)


def _build_service(
    service_config: ServiceConfig,
    *,
    cluster: ClusterDescriptor,
    log_sink: LogSinkDescriptor,
    base_dir: str,
    names: _NameRegistry,
    port_mappings: Tuple[int, ...] = (),
    iam_statements: Tuple[IamStatement, ...] = (),
    discovery: Optional[DiscoveryBinding] = None,
) -> ServiceDescriptor:
    logger.info(f"Service parameters: {service_config}")

    names.claim(f"service in cluster {cluster.name}", service_config.name, service_config.name)
    names.claim("task family", service_config.task_family, service_config.name)
    names.claim(
        f"log stream prefix in {log_sink.name}",
        service_config.log_stream_prefix,
        service_config.name,
    )

    return ServiceDescriptor(
        name=service_config.name,
        cluster=cluster.name,
        image=_resolve_build_context(service_config, base_dir),
        family=service_config.task_family,
        cpu=service_config.cpu,
        memory_mib=service_config.memory,
        desired_count=service_config.desired_count,
        security_group=service_config.security_group_name,
        log_sink=log_sink,
        stream_prefix=service_config.log_stream_prefix,
        port_mappings=port_mappings,
        iam_statements=iam_statements,
        discovery=discovery,
    )
