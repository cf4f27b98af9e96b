import logging
from typing import Optional

from aws_cdk import Environment, Stage
from constructs import Construct

from config.loader import DeploymentContext
from stacks.base.application_stack import ApplicationStack
from stacks.base.network_stack import NetworkStack
from stacks.base.security_stack import SecurityStack
from topology.descriptors import DeploymentGraph

logger = logging.getLogger(__name__)


class DeploymentStage(Stage):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        deployment_context: DeploymentContext,
        graph: DeploymentGraph,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self._deployment_context = deployment_context
        self._graph = graph

        logger.info(
            "Creating stage for environment: %s (account: %s, region: %s)",
            self._deployment_context.context.env_name,
            self._deployment_context.config.aws.account,
            self._deployment_context.config.aws.region_str,
        )

        self._create_stacks()
        # NOTE: tags on the stage propagate to every resource created in it.
        self._deployment_context.context.add_stage_global_tags(self)

        logger.info(
            "Stage created successfully for environment: %s",
            self._deployment_context.context.env_name,
        )

    @property
    def deployment_context(self) -> DeploymentContext:
        return self._deployment_context

    @property
    def graph(self) -> DeploymentGraph:
        return self._graph

    @property
    def network_stack(self) -> NetworkStack:
        return self._network_stack

    @property
    def security_stack(self) -> SecurityStack:
        return self._security_stack

    @property
    def application_stack(self) -> ApplicationStack:
        return self._application_stack

    def _environment(self) -> Optional[Environment]:
        aws = self._deployment_context.config.aws
        if aws.account is None and aws.region is None:
            return None
        return Environment(account=aws.account, region=aws.region_str)

    def _create_stacks(self):
        context = self._deployment_context.context

        self._network_stack = NetworkStack(
            self,
            "NetworkStack",
            network=self._graph.network,
            context=context,
            env=self._environment(),
        )

        self._security_stack = SecurityStack(
            self,
            "SecurityStack",
            vpc=self._network_stack.vpc,
            graph=self._graph,
            context=context,
            env=self._environment(),
        )

        self._application_stack = ApplicationStack(
            self,
            "ApplicationStack",
            vpc=self._network_stack.vpc,
            security_group_lookup=self._security_stack.security_group,
            graph=self._graph,
            context=context,
            env=self._environment(),
        )
