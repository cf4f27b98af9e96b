import aws_cdk as cdk
import pytest

from config.base_config import (
    AwsConfig,
    ClientServiceConfig,
    DeploymentConfig,
    ServerServiceConfig,
    VpcConfig,
)
from config.loader import Context, DeploymentContext
from stages.deployment_stage import DeploymentStage
from topology.builder import build_deployment_graph


@pytest.fixture
def project_root(tmp_path):
    """Project root holding a Docker build context for each service."""
    for name in ("server", "client"):
        build_context = tmp_path / name
        build_context.mkdir()
        (build_context / "Dockerfile").write_text("FROM scratch\n")
    return tmp_path


@pytest.fixture
def deployment_config(project_root):
    """Provides the default deployment with a pinned environment for testing."""
    return DeploymentConfig(
        aws=AwsConfig(account="123456789012", region="eu-west-1"),
        vpc=VpcConfig(max_azs=2),
        server=ServerServiceConfig(build_context=str(project_root / "server")),
        client=ClientServiceConfig(build_context=str(project_root / "client")),
    )


@pytest.fixture
def mock_deployment_context(deployment_config, project_root):
    return DeploymentContext(
        config=deployment_config,
        context=Context(env_name="test"),
        project_root=str(project_root),
    )


@pytest.fixture
def graph(mock_deployment_context):
    return build_deployment_graph(
        mock_deployment_context.config, base_dir=mock_deployment_context.project_root
    )


@pytest.fixture
def app():
    """Provides a CDK App instance."""
    return cdk.App()


@pytest.fixture
def deployment_stage(app, mock_deployment_context, graph):
    """Provides an instantiated DeploymentStage."""
    return DeploymentStage(
        app,
        mock_deployment_context.context.stage_name(),
        deployment_context=mock_deployment_context,
        graph=graph,
    )
