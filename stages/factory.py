# stages/factory.py

import logging
from typing import Optional

from aws_cdk import App
from aws_cdk.cx_api import CloudAssembly
from jsii.errors import JSIIError

from config.loader import ConfigLoader
from stages.deployment_stage import DeploymentStage
from topology.builder import build_deployment_graph
from topology.errors import ConfigurationError, ExternalProvisioningError

logger = logging.getLogger(__name__)


class StageFactory:
    """Factory for creating the deployment stage from an environment configuration."""

    @staticmethod
    def create(
        app: App, env: str = "demo", config_loader: Optional[ConfigLoader] = None
    ) -> DeploymentStage:
        """
        Load the configuration, build the deployment graph and create the stage.

        Args:
            app: CDK App instance
            env: Environment name, selects config/environments/<env>.yaml
            config_loader: Loader to use instead of the default one for ``env``

        Returns:
            Instantiated stage

        Raises:
            ConfigurationError: If the configuration or the graph is invalid
        """
        config_loader = config_loader or ConfigLoader(env)
        try:
            deployment_context = config_loader.create_deployment_context()
            graph = build_deployment_graph(
                deployment_context.config, base_dir=deployment_context.project_root
            )
        except ConfigurationError as e:
            logger.error(f"Invalid configuration for environment {env}: {e}")
            raise

        stage_name = deployment_context.context.stage_name()
        logger.info(f"Creating {DeploymentStage.__name__}: {stage_name}")
        try:
            return DeploymentStage(
                app, stage_name, deployment_context=deployment_context, graph=graph
            )
        except (JSIIError, RuntimeError) as e:
            logger.error(f"CDK rejected stage {stage_name}: {e}")
            raise ExternalProvisioningError(str(e)) from e

    @staticmethod
    def synthesize(app: App) -> CloudAssembly:
        """
        Synthesize the app, reporting engine failures as ExternalProvisioningError.
        """
        try:
            return app.synth()
        except (JSIIError, RuntimeError) as e:
            logger.error(f"CDK synthesis failed: {e}")
            raise ExternalProvisioningError(str(e)) from e
