import logging

from aws_cdk.assertions import Match, Template

from config.base_config import ClusterConfig
from config.enums import NamespaceKind
from config.loader import DeploymentContext
from stages.deployment_stage import DeploymentStage
from topology.builder import build_deployment_graph

logger = logging.getLogger(__name__)


def find_logical_id(resources, resource_type, **properties):
    for logical_id, res in resources.items():
        if res.get("Type") != resource_type:
            continue
        props = res.get("Properties", {})
        if all(props.get(key) == value for key, value in properties.items()):
            return logical_id
    return None


def test_application_stack_creates_cluster_and_namespace(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template.resource_count_is("AWS::ECS::Cluster", 1)
    template.has_resource_properties("AWS::ECS::Cluster", {"ClusterName": "democluster"})
    template.has_resource_properties(
        "AWS::ServiceDiscovery::HttpNamespace", {"Name": "grpc.demo"}
    )


def test_application_stack_creates_both_services(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template.resource_count_is("AWS::ECS::Service", 2)
    template.has_resource_properties(
        "AWS::ECS::Service",
        {
            "ServiceName": "server",
            "DesiredCount": 3,
            "LaunchType": "FARGATE",
            "PlatformVersion": "1.4.0",
            "NetworkConfiguration": {
                "AwsvpcConfiguration": Match.object_like({"AssignPublicIp": "ENABLED"})
            },
        },
    )
    template.has_resource_properties(
        "AWS::ECS::Service",
        {"ServiceName": "client", "DesiredCount": 1, "PlatformVersion": "1.4.0"},
    )


def test_server_is_registered_in_cloud_map(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template.resource_count_is("AWS::ServiceDiscovery::Service", 1)
    template.has_resource_properties("AWS::ServiceDiscovery::Service", {"Name": "server"})
    template.has_resource_properties(
        "AWS::ECS::Service",
        {"ServiceName": "server", "ServiceRegistries": Match.any_value()},
    )


def test_client_service_depends_on_server_service(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template_dict = template.to_json()
    logger.debug(template_dict)
    resources = template_dict.get("Resources", {})

    server_id = find_logical_id(resources, "AWS::ECS::Service", ServiceName="server")
    client_id = find_logical_id(resources, "AWS::ECS::Service", ServiceName="client")
    assert server_id is not None, "Server ECS service not found"
    assert client_id is not None, "Client ECS service not found"

    assert server_id in resources[client_id].get("DependsOn", [])
    assert client_id not in resources[server_id].get("DependsOn", [])


def test_task_definitions(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template.resource_count_is("AWS::ECS::TaskDefinition", 2)
    template.has_resource_properties(
        "AWS::ECS::TaskDefinition",
        {
            "Family": "server",
            "Cpu": "512",
            "Memory": "1024",
            "RequiresCompatibilities": ["FARGATE"],
        },
    )
    template.has_resource_properties(
        "AWS::ECS::TaskDefinition",
        {
            "Family": "client",
            "ContainerDefinitions": [
                Match.object_like(
                    {
                        "Name": "main",
                        "PortMappings": [Match.object_like({"ContainerPort": 8080})],
                    }
                )
            ],
        },
    )


def test_services_log_to_the_shared_log_group(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template.resource_count_is("AWS::Logs::LogGroup", 1)
    template.has_resource(
        "AWS::Logs::LogGroup",
        {
            "Properties": {"LogGroupName": "grpcdemo", "RetentionInDays": 3},
            "DeletionPolicy": "Delete",
            "UpdateReplacePolicy": "Delete",
        },
    )

    resources = template.to_json().get("Resources", {})
    log_group_id = find_logical_id(resources, "AWS::Logs::LogGroup", LogGroupName="grpcdemo")

    prefixes = {}
    for res in resources.values():
        if res.get("Type") != "AWS::ECS::TaskDefinition":
            continue
        (container,) = res["Properties"]["ContainerDefinitions"]
        options = container["LogConfiguration"]["Options"]
        assert options["awslogs-group"] == {"Ref": log_group_id}
        prefixes[res["Properties"]["Family"]] = options["awslogs-stream-prefix"]

    assert prefixes == {"server": "server", "client": "client"}


def test_client_task_role_can_discover_instances(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template.has_resource_properties(
        "AWS::IAM::Policy",
        {
            "PolicyDocument": {
                "Statement": Match.array_with(
                    [
                        {
                            "Action": "servicediscovery:DiscoverInstances",
                            "Effect": "Allow",
                            "Resource": "*",
                        }
                    ]
                )
            }
        },
    )


def test_application_stack_outputs(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.application_stack)

    template.has_output("NamespaceName", {"Value": "grpc.demo"})
    template.has_output("ClusterName", Match.any_value())


def test_private_dns_namespace_registers_server_with_dns_records(
    app, deployment_config, mock_deployment_context, project_root
):
    config = deployment_config.model_copy(
        update={"cluster": ClusterConfig(namespace_type=NamespaceKind.DNS_PRIVATE)}
    )
    graph = build_deployment_graph(config, base_dir=str(project_root))
    stage = DeploymentStage(
        app,
        "DnsStage",
        deployment_context=DeploymentContext(
            config=config,
            context=mock_deployment_context.context,
            project_root=str(project_root),
        ),
        graph=graph,
    )
    template = Template.from_stack(stage.application_stack)

    template.resource_count_is("AWS::ServiceDiscovery::HttpNamespace", 0)
    template.has_resource_properties(
        "AWS::ServiceDiscovery::PrivateDnsNamespace",
        {"Name": "grpc.demo", "Vpc": Match.any_value()},
    )
    template.resource_count_is("AWS::ServiceDiscovery::Service", 1)
    template.has_resource_properties(
        "AWS::ServiceDiscovery::Service",
        {"Name": "server", "DnsConfig": Match.object_like({"DnsRecords": Match.any_value()})},
    )
    template.has_resource_properties(
        "AWS::ECS::Service",
        {"ServiceName": "server", "ServiceRegistries": Match.any_value()},
    )
