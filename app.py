#!/usr/bin/env python3
import logging

import aws_cdk as cdk

from stages.factory import StageFactory


def setup_logging():
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )


setup_logging()
logger = logging.getLogger(__name__)

app = cdk.App()

env_name = app.node.try_get_context("env") or "demo"
logger.info(f"CDK mode: environment={env_name}")

stage = StageFactory.create(app, env_name)
logger.info(f"Synthesis of {stage.stage_name} starting")

StageFactory.synthesize(app)
