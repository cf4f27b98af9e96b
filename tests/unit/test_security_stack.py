import logging

from aws_cdk.assertions import Match, Template

from stages.deployment_stage import DeploymentStage

logger = logging.getLogger(__name__)


def find_sg_logical_id(resources, group_name):
    for logical_id, res in resources.items():
        if res.get("Type") != "AWS::EC2::SecurityGroup":
            continue
        if res.get("Properties", {}).get("GroupName") == group_name:
            return logical_id
    return None


def find_ingress_rules(resources, target_sg_logical_id):
    """SecurityGroupIngress resources whose GroupId points at the given group."""
    ingress_rules = []
    for res in resources.values():
        if res.get("Type") != "AWS::EC2::SecurityGroupIngress":
            continue
        props = res.get("Properties", {})
        group_id = props.get("GroupId", {})
        if isinstance(group_id, dict) and "Fn::GetAtt" in group_id:
            if group_id["Fn::GetAtt"][0] == target_sg_logical_id:
                ingress_rules.append(props)
    return ingress_rules


def test_security_stack_creates_two_groups(deployment_stage: DeploymentStage):
    template = Template.from_stack(deployment_stage.security_stack)

    template.resource_count_is("AWS::EC2::SecurityGroup", 2)
    template.has_resource_properties(
        "AWS::EC2::SecurityGroup",
        {
            "GroupName": "clientSecurityGroup",
            "Tags": Match.array_with([{"Key": "Name", "Value": "clientSecurityGroup"}]),
        },
    )
    template.has_resource_properties(
        "AWS::EC2::SecurityGroup", {"GroupName": "serverSecurityGroup"}
    )


def test_client_security_group_allows_client_port_from_anywhere(
    deployment_stage: DeploymentStage,
):
    template = Template.from_stack(deployment_stage.security_stack)

    template.has_resource_properties(
        "AWS::EC2::SecurityGroup",
        {
            "GroupName": "clientSecurityGroup",
            "SecurityGroupIngress": [
                {
                    "CidrIp": "0.0.0.0/0",
                    "Description": "Allow client traffic on port 8080",
                    "FromPort": 8080,
                    "IpProtocol": "tcp",
                    "ToPort": 8080,
                }
            ],
        },
    )


def test_server_security_group_references_client_group(deployment_stage: DeploymentStage):
    """The server rule points at the client group itself, never at a CIDR."""
    template = Template.from_stack(deployment_stage.security_stack)

    template_dict = template.to_json()
    logger.debug(template_dict)
    resources = template_dict.get("Resources", {})

    server_sg_id = find_sg_logical_id(resources, "serverSecurityGroup")
    client_sg_id = find_sg_logical_id(resources, "clientSecurityGroup")
    assert server_sg_id is not None, "Server SecurityGroup not found"
    assert client_sg_id is not None, "Client SecurityGroup not found"

    server_props = resources[server_sg_id]["Properties"]
    assert "SecurityGroupIngress" not in server_props

    (rule,) = find_ingress_rules(resources, server_sg_id)
    assert rule["SourceSecurityGroupId"] == {"Fn::GetAtt": [client_sg_id, "GroupId"]}
    assert rule["IpProtocol"] == "tcp"
    assert (rule["FromPort"], rule["ToPort"]) == (0, 65535)
    assert "CidrIp" not in rule

    assert find_ingress_rules(resources, client_sg_id) == []
