"""
Configuration Management Module

This module defines the configuration structure for the gRPC discovery demo
deployment. It uses Pydantic for data validation.

Structure:
- AwsConfig: target account and region (optional, env-agnostic when omitted)
- VpcConfig: public-only network, no NAT
- ClusterConfig: ECS cluster and its Cloud Map namespace
- LogGroupConfig: shared CloudWatch log group
- ServerServiceConfig / ClientServiceConfig: the two Fargate services
- DeploymentConfig: everything above

Configurations are loaded from YAML files per environment:
```
config/
  └── environments/
      └── demo.yaml
```
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .enums import FARGATE_CPU_UNITS, LOG_RETENTION_DAYS, AwsRegion, NamespaceKind


class AwsConfig(BaseModel):
    """
    Base AWS configuration.

    Attributes:
        account: AWS account ID (optional)
        region: AWS deployment region (optional)
    """

    account: Optional[str] = Field(default=None, pattern=r"^\d{12}$")
    region: Optional[AwsRegion] = None

    @property
    def region_str(self) -> Optional[str]:
        """Returns the region as a string."""
        return self.region.value if self.region else None


class VpcConfig(BaseModel):
    """
    VPC network configuration.

    Only public subnets are created and no NAT gateway is provisioned.

    Attributes:
        name: VPC name (default: "demovpc")
        cidr: IP address range (default: "10.0.0.0/16")
        max_azs: Maximum number of availability zones (default: 3)
        nat_gateways: Always 0
    """

    name: str = Field(default="demovpc", min_length=1)
    cidr: str = Field(
        default="10.0.0.0/16",
        pattern=r"^(\d{1,3}\.){3}\d{1,3}/\d{1,2}$",
        description="CIDR block for VPC (e.g., 10.0.0.0/16)",
    )
    max_azs: int = Field(default=3, ge=1, le=6)
    subnet_name: str = "public"
    nat_gateways: int = Field(
        default=0, ge=0, le=0, description="Tasks reach the internet through public IPs"
    )


class ClusterConfig(BaseModel):
    name: str = Field(default="democluster", min_length=1)
    namespace: str = Field(default="grpc.demo", min_length=1)
    namespace_type: NamespaceKind = NamespaceKind.HTTP


class LogGroupConfig(BaseModel):
    """
    Shared log group configuration.

    Attributes:
        name: Log group name
        retention_days: Retention in days, must be a CloudWatch supported value
        destroy_on_teardown: Delete the log group with the deployment
    """

    name: str = Field(default="grpcdemo", min_length=1)
    retention_days: int = 3
    destroy_on_teardown: bool = True

    @model_validator(mode="after")
    def validate_retention(self) -> "LogGroupConfig":
        if self.retention_days not in LOG_RETENTION_DAYS:
            raise ValueError(
                f"retention_days ({self.retention_days}) must be one of "
                f"{', '.join(str(days) for days in LOG_RETENTION_DAYS)}"
            )
        return self


class ServiceConfig(BaseModel):
    """
    Fargate service configuration.

    Attributes:
        name: ECS service name
        build_context: Directory holding the Dockerfile, relative paths are
            resolved against the loader's project root
        dockerfile: Dockerfile name inside the build context
        family: Task definition family (defaults to the service name)
        cpu: CPU units
        memory: Memory in MiB
        desired_count: Number of tasks
        port: Container port the service listens on
        security_group_name: Name of the security group attached to the service
        stream_prefix: Log stream prefix (defaults to the service name)
    """

    name: str = Field(min_length=1)
    build_context: str = Field(min_length=1)
    dockerfile: str = "Dockerfile"
    family: Optional[str] = None
    cpu: int = Field(default=512, gt=0)
    memory: int = Field(default=1024, gt=0)
    desired_count: int = Field(default=1, ge=1)
    port: int = Field(gt=0, le=65535)
    security_group_name: str = Field(min_length=1)
    stream_prefix: Optional[str] = None

    @model_validator(mode="after")
    def validate_task_size(self) -> "ServiceConfig":
        """Validates the CPU/memory pair against Fargate task sizes."""
        if self.cpu not in FARGATE_CPU_UNITS:
            raise ValueError(
                f"cpu ({self.cpu}) must be one of {', '.join(str(c) for c in FARGATE_CPU_UNITS)}"
            )
        if self.memory < self.cpu * 2:
            raise ValueError(
                f"memory ({self.memory} MiB) is too small for cpu ({self.cpu} units)"
            )
        return self

    @property
    def task_family(self) -> str:
        return self.family or self.name

    @property
    def log_stream_prefix(self) -> str:
        return self.stream_prefix or self.name


class ServerServiceConfig(ServiceConfig):
    name: str = Field(default="server", min_length=1)
    build_context: str = Field(default="server", min_length=1)
    desired_count: int = Field(default=3, ge=1)
    port: int = Field(default=9000, gt=0, le=65535)
    security_group_name: str = Field(default="serverSecurityGroup", min_length=1)
    discovery_name: str = Field(default="server", min_length=1)


class ClientServiceConfig(ServiceConfig):
    name: str = Field(default="client", min_length=1)
    build_context: str = Field(default="client", min_length=1)
    desired_count: int = Field(default=1, ge=1)
    port: int = Field(default=8080, gt=0, le=65535)
    security_group_name: str = Field(default="clientSecurityGroup", min_length=1)
    ingress_cidr: str = Field(
        default="0.0.0.0/0",
        pattern=r"^(\d{1,3}\.){3}\d{1,3}/\d{1,2}$",
    )


class DeploymentConfig(BaseModel):
    """
    Complete deployment configuration.

    Example:
        ```yaml
        # config/environments/demo.yaml
        variables:
          services_root: ".."

        vpc:
          name: demovpc
          max_azs: 3

        cluster:
          name: democluster
          namespace: grpc.demo

        log_group:
          name: grpcdemo
          retention_days: 3

        server:
          build_context: "${services_root}/server"
          desired_count: 3

        client:
          build_context: "${services_root}/client"
          port: 8080
        ```
    """

    aws: AwsConfig = AwsConfig()
    vpc: VpcConfig = VpcConfig()
    cluster: ClusterConfig = ClusterConfig()
    log_group: LogGroupConfig = LogGroupConfig()
    server: ServerServiceConfig = ServerServiceConfig()
    client: ClientServiceConfig = ClientServiceConfig()
