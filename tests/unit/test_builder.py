import pytest

from config.base_config import ClientServiceConfig, DeploymentConfig, ServerServiceConfig
from config.enums import PolicyEffect
from topology.builder import build_deployment_graph
from topology.descriptors import CidrPeer, SecurityGroupDescriptor, SecurityGroupPeer
from topology.errors import ConfigurationError


def test_graph_resource_counts(graph):
    """One of each singleton resource, two groups, two services and one edge."""
    assert graph.network.name == "demovpc"
    assert graph.cluster.name == "democluster"
    assert len(graph.security_groups) == 2
    assert len(graph.log_sinks) == 1
    assert len(graph.services) == 2
    assert len(graph.dependencies) == 1


def test_network_has_no_nat_and_public_subnets(graph):
    assert graph.network.nat_gateways == 0
    assert graph.network.subnet_name == "public"
    assert graph.cluster.network == graph.network.name
    assert graph.cluster.namespace == "grpc.demo"


def test_network_overrides_keep_nat_disabled(project_root):
    config = {"vpc": {"name": "othervpc", "cidr": "10.1.0.0/16", "max_azs": 2}}
    graph = build_deployment_graph(config, base_dir=str(project_root))

    assert graph.network.name == "othervpc"
    assert graph.network.max_azs == 2
    assert graph.network.nat_gateways == 0


def test_nat_gateway_override_fails(project_root):
    with pytest.raises(ConfigurationError, match="nat_gateways"):
        build_deployment_graph({"vpc": {"nat_gateways": 1}}, base_dir=str(project_root))


def test_server_security_group_only_allows_client_group(graph):
    server_sg = graph.security_group("serverSecurityGroup")

    assert len(server_sg.ingress_rules) == 1
    rule = server_sg.ingress_rules[0]
    assert rule.peer == SecurityGroupPeer(group_name="clientSecurityGroup")
    assert rule.ports.is_all_tcp
    assert not any(isinstance(r.peer, CidrPeer) for r in server_sg.ingress_rules)

    source = graph.resolve_peer(rule.peer)
    assert isinstance(source, SecurityGroupDescriptor)
    assert source is graph.security_group("clientSecurityGroup")


def test_client_security_group_allows_client_port_from_anywhere(graph):
    client_sg = graph.security_group("clientSecurityGroup")

    assert len(client_sg.ingress_rules) == 1
    rule = client_sg.ingress_rules[0]
    assert rule.peer == CidrPeer.any_ipv4()
    assert (rule.ports.from_port, rule.ports.to_port) == (8080, 8080)


def test_client_port_drives_rule_and_port_mapping(project_root):
    config = DeploymentConfig(
        server=ServerServiceConfig(build_context=str(project_root / "server")),
        client=ClientServiceConfig(build_context=str(project_root / "client"), port=8443),
    )
    graph = build_deployment_graph(config)

    rule = graph.security_group("clientSecurityGroup").ingress_rules[0]
    assert rule.ports.from_port == 8443
    assert graph.service("client").port_mappings == (8443,)


def test_services_share_the_same_log_sink(graph):
    server = graph.service("server")
    client = graph.service("client")

    assert server.log_sink is client.log_sink
    assert server.log_sink is graph.log_sinks[0]
    assert server.log_sink.retention_days == 3
    assert server.log_sink.destroy_on_teardown
    assert (server.stream_prefix, client.stream_prefix) == ("server", "client")


def test_service_definitions(graph):
    server = graph.service("server")
    client = graph.service("client")

    assert server.desired_count == 3
    assert client.desired_count == 1
    assert (server.cpu, server.memory_mib) == (512, 1024)
    assert (client.cpu, client.memory_mib) == (512, 1024)
    assert server.security_group == "serverSecurityGroup"
    assert client.security_group == "clientSecurityGroup"

    assert server.discovery.name == "server"
    assert server.discovery.container_port == 9000
    assert server.port_mappings == ()
    assert client.discovery is None
    assert client.port_mappings == (8080,)


def test_only_client_may_query_discovery(graph):
    assert graph.service("server").iam_statements == ()

    (statement,) = graph.service("client").iam_statements
    assert statement.effect == PolicyEffect.ALLOW
    assert statement.actions == ("servicediscovery:DiscoverInstances",)
    assert statement.resources == ("*",)


def test_replica_counts_follow_configuration(project_root):
    config = DeploymentConfig(
        server=ServerServiceConfig(build_context=str(project_root / "server"), desired_count=5),
        client=ClientServiceConfig(build_context=str(project_root / "client"), desired_count=2),
    )
    graph = build_deployment_graph(config)

    assert graph.service("server").desired_count == 5
    assert graph.service("client").desired_count == 2


def test_client_is_created_after_server(graph):
    (edge,) = graph.dependencies
    assert edge.source == "client"
    assert edge.target == "server"
    assert graph.dependencies_of("client") == ["server"]
    assert graph.dependencies_of("server") == []

    order = graph.creation_order()
    assert order[0] == "network:demovpc"
    assert order.index("service:server") < order.index("service:client")
    for group in ("clientSecurityGroup", "serverSecurityGroup"):
        assert order.index(f"security-group:{group}") < order.index("service:server")
    assert [service.name for service in graph.ordered_services()] == ["server", "client"]


def test_relative_build_contexts_resolve_against_base_dir(project_root):
    graph = build_deployment_graph({}, base_dir=str(project_root))

    assert graph.service("server").image.directory == str(project_root / "server")
    assert graph.service("client").image.directory == str(project_root / "client")
    assert graph.service("client").image.dockerfile == "Dockerfile"


def test_mapping_configuration_is_validated(project_root):
    with pytest.raises(ConfigurationError, match="Invalid deployment configuration"):
        build_deployment_graph({"server": {"desired_count": 0}}, base_dir=str(project_root))


def test_duplicate_security_group_names_fail(project_root):
    config = {
        "server": {"security_group_name": "sharedSecurityGroup"},
        "client": {"security_group_name": "sharedSecurityGroup"},
    }
    with pytest.raises(ConfigurationError, match="sharedSecurityGroup"):
        build_deployment_graph(config, base_dir=str(project_root))


def test_duplicate_service_names_fail(project_root):
    config = {
        "server": {"name": "app", "family": "app-server", "stream_prefix": "app-server"},
        "client": {"name": "app", "family": "app-client", "stream_prefix": "app-client"},
    }
    with pytest.raises(ConfigurationError, match="service in cluster democluster name 'app'"):
        build_deployment_graph(config, base_dir=str(project_root))


def test_duplicate_task_families_fail(project_root):
    config = {"client": {"family": "server"}}
    with pytest.raises(ConfigurationError, match="task family name 'server'"):
        build_deployment_graph(config, base_dir=str(project_root))


def test_duplicate_log_stream_prefixes_fail(project_root):
    config = {"client": {"stream_prefix": "server"}}
    with pytest.raises(ConfigurationError, match="log stream prefix"):
        build_deployment_graph(config, base_dir=str(project_root))


def test_missing_build_context_fails(project_root):
    config = {"client": {"build_context": "does-not-exist"}}
    with pytest.raises(ConfigurationError, match="build context not found"):
        build_deployment_graph(config, base_dir=str(project_root))


def test_missing_dockerfile_fails(project_root):
    (project_root / "empty").mkdir()
    config = {"server": {"build_context": "empty"}}
    with pytest.raises(ConfigurationError, match="Dockerfile not found"):
        build_deployment_graph(config, base_dir=str(project_root))
