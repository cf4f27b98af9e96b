# config/loader.py
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml
from aws_cdk import Stage, Tags

from topology.builder import load_deployment_config
from topology.errors import ConfigurationError
from utils.naming import to_pascal

from .base_config import DeploymentConfig

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r"\$\{([^}]+)\}")
MAX_VARIABLE_PASSES = 10


@dataclass
class Context:
    env_name: str
    project_name: str = "grpc-discovery-demo"

    def stage_name(self) -> str:
        return to_pascal(f"{self.project_name}-{self.env_name}")

    def add_stage_global_tags(self, stage: Stage):
        """Adds global tags to the stage."""
        for key, value in self.tags.items():
            Tags.of(stage).add(key, value)

    @property
    def tags(self):
        """Standardized tags to apply to all resources."""
        return {
            "EnvName": self.env_name,
            "Project": self.project_name,
            "ManagedBy": "CDK",
        }


@dataclass
class DeploymentContext:
    config: DeploymentConfig
    context: Context
    # build contexts in the config are relative to this directory
    project_root: str


def substitute_variables(data: Any, variables: Dict[str, str]) -> Any:
    """
    Recursively substitute ${variable_name} placeholders in configuration data.

    Raises:
        ConfigurationError: If a placeholder references an undefined variable
    """
    if isinstance(data, str):
        undefined = [name for name in VARIABLE_PATTERN.findall(data) if name not in variables]
        if undefined:
            raise ConfigurationError(
                f"Variable '${undefined[0]}' is used but not defined in 'variables' section. "
                f"Available variables: {list(variables.keys())}"
            )
        return VARIABLE_PATTERN.sub(lambda match: str(variables[match.group(1)]), data)
    elif isinstance(data, dict):
        return {k: substitute_variables(v, variables) for k, v in data.items()}
    elif isinstance(data, list):
        return [substitute_variables(item, variables) for item in data]
    else:
        return data


def resolve_variables(variables: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve variables that reference other variables, e.g. ``root: "${base}/services"``."""
    resolved = dict(variables)
    for _ in range(MAX_VARIABLE_PASSES):
        changed = False
        for key, value in resolved.items():
            if isinstance(value, str):
                new_value = substitute_variables(value, resolved)
                if new_value != value:
                    resolved[key] = new_value
                    changed = True
        if not changed:
            return resolved
    logger.warning("Variable substitution may not have converged after max passes")
    return resolved


class ConfigLoader:
    """
    Loader for the deployment configuration files.

    Reads ``<base_path>/environments/<env_name>.yaml`` and validates it into a
    DeploymentConfig.
    """

    def __init__(
        self,
        env_name: str = "demo",
        base_path: Optional[str] = None,
        project_root: Optional[str] = None,
    ):
        """
        Initialize the configuration loader.

        Args:
            env_name: The name of the environment.
            base_path: Directory holding the ``environments`` folder (defaults to this package).
            project_root: Directory build contexts are resolved against
                (defaults to the parent of base_path).
        """
        self._env_name = env_name
        self.base_path = base_path or os.path.dirname(os.path.abspath(__file__))
        self.project_root = project_root or os.path.dirname(os.path.abspath(self.base_path))

    @property
    def config_path(self) -> str:
        return os.path.join(self.base_path, "environments", f"{self._env_name}.yaml")

    def load_environment_config(self) -> Dict[str, Any]:
        """
        Load the configuration from the YAML file and substitute variables.

        Variables are defined in a 'variables' section at the top of the YAML file
        and referenced anywhere else with ${variable_name}.
        """
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        with open(self.config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {self.config_path}")

        variables = raw_config.pop("variables", {}) or {}
        if not isinstance(variables, dict):
            raise ConfigurationError("'variables' section must be a dictionary")

        if variables:
            variables = resolve_variables(variables)
            logger.info(f"Substituting variables: {list(variables.keys())}")
            raw_config = substitute_variables(raw_config, variables)

        return raw_config

    def create_deployment_context(self) -> DeploymentContext:
        """Create the complete, validated deployment context."""
        env_config = self.load_environment_config()
        project_name = env_config.pop("project_name", None)

        config = load_deployment_config(env_config)
        logger.info(f"Config: {config}")

        context = Context(env_name=self._env_name)
        if project_name:
            context.project_name = project_name

        return DeploymentContext(config=config, context=context, project_root=self.project_root)
