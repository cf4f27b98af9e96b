"""
Deployment descriptors.

Immutable values describing the desired resources. They carry no CDK objects;
the stacks under ``stacks/`` turn a :class:`DeploymentGraph` into constructs.
"""

from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from config.enums import LOG_RETENTION_DAYS, NamespaceKind, PolicyEffect

from .errors import ConfigurationError

ALL_TCP_FROM = 0
ALL_TCP_TO = 65535
FARGATE_PLATFORM_VERSIONS = ("1.4.0", "LATEST")


def _require_positive(kind: str, name: str, **values: int) -> None:
    for attribute, value in values.items():
        if value is None or value <= 0:
            raise ConfigurationError(f"{kind} '{name}': {attribute} must be positive, got {value}")


def _require_port(kind: str, name: str, port: int) -> None:
    if not 0 < port <= ALL_TCP_TO:
        raise ConfigurationError(f"{kind} '{name}': port {port} is outside 1-{ALL_TCP_TO}")


def _require_unique(kind: str, names: Iterable[str]) -> Set[str]:
    seen: Set[str] = set()
    for name in names:
        if name in seen:
            raise ConfigurationError(f"duplicate {kind} name '{name}'")
        seen.add(name)
    return seen


@dataclass(frozen=True)
class NetworkDescriptor:
    name: str
    cidr: str
    max_azs: int
    subnet_name: str = "public"
    nat_gateways: int = 0

    def __post_init__(self):
        _require_positive("network", self.name, max_azs=self.max_azs)
        if self.nat_gateways != 0:
            raise ConfigurationError(
                f"network '{self.name}': NAT gateways are not provisioned, got {self.nat_gateways}"
            )


@dataclass(frozen=True)
class ClusterDescriptor:
    name: str
    network: str
    namespace: str
    namespace_type: NamespaceKind = NamespaceKind.HTTP


@dataclass(frozen=True)
class PortRange:
    from_port: int
    to_port: int
    protocol: str = "tcp"

    def __post_init__(self):
        if not ALL_TCP_FROM <= self.from_port <= self.to_port <= ALL_TCP_TO:
            raise ConfigurationError(f"invalid port range {self.from_port}-{self.to_port}")

    @classmethod
    def tcp(cls, port: int) -> "PortRange":
        return cls(from_port=port, to_port=port)

    @classmethod
    def all_tcp(cls) -> "PortRange":
        return cls(from_port=ALL_TCP_FROM, to_port=ALL_TCP_TO)

    @property
    def is_all_tcp(self) -> bool:
        return (
            self.protocol == "tcp"
            and self.from_port == ALL_TCP_FROM
            and self.to_port == ALL_TCP_TO
        )


@dataclass(frozen=True)
class CidrPeer:
    cidr: str

    @classmethod
    def any_ipv4(cls) -> "CidrPeer":
        return cls(cidr="0.0.0.0/0")


@dataclass(frozen=True)
class SecurityGroupPeer:
    """Traffic originating from another security group, referenced by its name."""

    group_name: str


Peer = Union[CidrPeer, SecurityGroupPeer]


@dataclass(frozen=True)
class IngressRule:
    peer: Peer
    ports: PortRange
    description: str = ""


@dataclass(frozen=True)
class SecurityGroupDescriptor:
    name: str
    network: str
    ingress_rules: Tuple[IngressRule, ...] = ()
    allow_all_outbound: bool = True
    description: str = "Security group"


@dataclass(frozen=True)
class LogSinkDescriptor:
    name: str
    retention_days: int
    destroy_on_teardown: bool = True

    def __post_init__(self):
        _require_positive("log sink", self.name, retention_days=self.retention_days)
        if self.retention_days not in LOG_RETENTION_DAYS:
            raise ConfigurationError(
                f"log sink '{self.name}': unsupported retention of {self.retention_days} days"
            )


@dataclass(frozen=True)
class IamStatement:
    effect: PolicyEffect
    actions: Tuple[str, ...]
    resources: Tuple[str, ...]

    def __post_init__(self):
        if not self.actions:
            raise ConfigurationError("IAM statement needs at least one action")
        if not self.resources:
            raise ConfigurationError("IAM statement needs at least one resource")


@dataclass(frozen=True)
class ImageSource:
    """Local Docker build context, built and pushed by the engine."""

    directory: str
    dockerfile: str = "Dockerfile"


@dataclass(frozen=True)
class DiscoveryBinding:
    name: str
    container_port: int


@dataclass(frozen=True)
class ServiceDescriptor:
    name: str
    cluster: str
    image: ImageSource
    family: str
    cpu: int
    memory_mib: int
    desired_count: int
    security_group: str
    log_sink: LogSinkDescriptor
    stream_prefix: str
    port_mappings: Tuple[int, ...] = ()
    iam_statements: Tuple[IamStatement, ...] = ()
    discovery: Optional[DiscoveryBinding] = None
    container_name: str = "main"
    assign_public_ip: bool = True
    platform_version: str = "1.4.0"

    def __post_init__(self):
        _require_positive(
            "service",
            self.name,
            cpu=self.cpu,
            memory_mib=self.memory_mib,
            desired_count=self.desired_count,
        )
        for port in self.port_mappings:
            _require_port("service", self.name, port)
        if self.discovery is not None:
            _require_port("service", self.name, self.discovery.container_port)
        if self.platform_version not in FARGATE_PLATFORM_VERSIONS:
            raise ConfigurationError(
                f"service '{self.name}': unknown Fargate platform version {self.platform_version}"
            )


@dataclass(frozen=True)
class DependencyEdge:
    """``source`` is created only after ``target`` exists."""

    source: str
    target: str

    def __post_init__(self):
        if self.source == self.target:
            raise ConfigurationError(f"service '{self.source}' cannot depend on itself")


@dataclass(frozen=True)
class DeploymentGraph:
    """
    The full set of descriptors plus explicit ordering constraints.

    Name uniqueness, referential integrity (security group peers, service
    bindings, edge endpoints) and acyclicity are checked on construction.
    """

    network: NetworkDescriptor
    cluster: ClusterDescriptor
    security_groups: Tuple[SecurityGroupDescriptor, ...]
    log_sinks: Tuple[LogSinkDescriptor, ...]
    services: Tuple[ServiceDescriptor, ...]
    dependencies: Tuple[DependencyEdge, ...] = ()
    _order: Tuple[str, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        self._check_references()
        object.__setattr__(self, "_order", self._resolve_order())

    def service(self, name: str) -> ServiceDescriptor:
        for service in self.services:
            if service.name == name:
                return service
        raise KeyError(name)

    def security_group(self, name: str) -> SecurityGroupDescriptor:
        for security_group in self.security_groups:
            if security_group.name == name:
                return security_group
        raise KeyError(name)

    def resolve_peer(self, peer: Peer) -> Union[CidrPeer, SecurityGroupDescriptor]:
        if isinstance(peer, SecurityGroupPeer):
            return self.security_group(peer.group_name)
        return peer

    def dependencies_of(self, service_name: str) -> List[str]:
        return [edge.target for edge in self.dependencies if edge.source == service_name]

    def creation_order(self) -> Tuple[str, ...]:
        """Resource names in an order any sequential engine can create them."""
        return self._order

    def ordered_services(self) -> List[ServiceDescriptor]:
        """Services in creation order: every service comes after the ones it depends on."""
        prefix = "service:"
        return [
            self.service(resource[len(prefix) :])
            for resource in self._order
            if resource.startswith(prefix)
        ]

    def _check_references(self) -> None:
        if self.cluster.network != self.network.name:
            raise ConfigurationError(
                f"cluster '{self.cluster.name}' references unknown network '{self.cluster.network}'"
            )

        group_names = _require_unique("security group", (g.name for g in self.security_groups))
        _require_unique("log sink", (sink.name for sink in self.log_sinks))
        for group in self.security_groups:
            if group.network != self.network.name:
                raise ConfigurationError(
                    f"security group '{group.name}' references unknown network '{group.network}'"
                )
            for rule in group.ingress_rules:
                if isinstance(rule.peer, SecurityGroupPeer) and rule.peer.group_name not in group_names:
                    raise ConfigurationError(
                        f"security group '{group.name}' allows traffic from unknown "
                        f"security group '{rule.peer.group_name}'"
                    )

        service_names = _require_unique("service", (s.name for s in self.services))
        _require_unique(
            f"discovery in namespace {self.cluster.namespace}",
            (s.discovery.name for s in self.services if s.discovery is not None),
        )
        for service in self.services:
            if service.cluster != self.cluster.name:
                raise ConfigurationError(
                    f"service '{service.name}' references unknown cluster '{service.cluster}'"
                )
            if service.security_group not in group_names:
                raise ConfigurationError(
                    f"service '{service.name}' references unknown security group "
                    f"'{service.security_group}'"
                )
            # identity, not equality: the sink must be one of the graph's own
            if not any(service.log_sink is sink for sink in self.log_sinks):
                raise ConfigurationError(
                    f"service '{service.name}' logs to a sink outside the deployment"
                )

        for edge in self.dependencies:
            for endpoint in (edge.source, edge.target):
                if endpoint not in service_names:
                    raise ConfigurationError(f"dependency references unknown service '{endpoint}'")

    def _structural_edges(self) -> Dict[str, set]:
        network = f"network:{self.network.name}"
        cluster = f"cluster:{self.cluster.name}"
        edges: Dict[str, set] = {network: set(), cluster: {network}}

        # peers are not ordering edges: all groups exist before any rule is attached
        for group in self.security_groups:
            edges[f"security-group:{group.name}"] = {network}

        for sink in self.log_sinks:
            edges[f"log-sink:{sink.name}"] = set()

        for service in self.services:
            edges[f"service:{service.name}"] = {
                cluster,
                f"security-group:{service.security_group}",
                f"log-sink:{service.log_sink.name}",
            } | {f"service:{target}" for target in self.dependencies_of(service.name)}

        return edges

    def _resolve_order(self) -> Tuple[str, ...]:
        sorter = TopologicalSorter(self._structural_edges())
        try:
            return tuple(sorter.static_order())
        except CycleError as e:
            cycle = " -> ".join(e.args[1])
            raise ConfigurationError(f"dependency cycle detected: {cycle}") from e
