#!/usr/bin/env python3
import logging
import os
from concurrent import futures

import grpc

from metadata import TaskMetadata, query_task_metadata

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9000
MAX_WORKERS = 10

protos, services = grpc.protos_and_services("responder.proto")


class Responder(services.ResponderServicer):
    """Answers every call with a description of the current task."""

    def __init__(self, metadata: TaskMetadata):
        self._metadata = metadata

    def DescribeServiceInstance(self, request, context):
        logger.info(f"server response from az: {self._metadata.availability_zone}")
        return protos.DescribeServiceInstanceResponse(
            msg_id=request.msg_id,
            cluster=self._metadata.cluster,
            task_arn=self._metadata.task_arn,
            task_family=self._metadata.family,
            task_family_revision=self._metadata.revision,
            availability_zone=self._metadata.availability_zone,
        )


def serve(port: int):
    metadata = query_task_metadata()
    logger.info(f"server starting in AZ: {metadata.availability_zone}")

    server = grpc.server(futures.ThreadPoolExecutor(max_workers=MAX_WORKERS))
    services.add_ResponderServicer_to_server(Responder(metadata), server)
    server.add_insecure_port(f"0.0.0.0:{port}")
    server.start()

    logger.info(f"server listening at 0.0.0.0:{port}")
    server.wait_for_termination()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    serve(int(os.environ.get("PORT", DEFAULT_PORT)))
