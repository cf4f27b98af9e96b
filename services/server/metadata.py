"""
Task metadata from the ECS container metadata endpoint (v4).

Outside of ECS the endpoint variable is unset and placeholder values are used,
so the server also runs on a workstation.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

METADATA_URI_ENV = "ECS_CONTAINER_METADATA_URI_V4"
REQUEST_TIMEOUT_SECONDS = 2


@dataclass(frozen=True)
class TaskMetadata:
    availability_zone: str
    cluster: str
    task_arn: str
    family: str
    revision: str

    @classmethod
    def local(cls) -> "TaskMetadata":
        return cls(
            availability_zone="az-localhost",
            cluster="no-cluster",
            task_arn="no-task-arn",
            family="no-task-family",
            revision="0",
        )

    @classmethod
    def from_task_document(cls, document: Dict[str, Any]) -> "TaskMetadata":
        try:
            return cls(
                availability_zone=document["AvailabilityZone"],
                cluster=document["Cluster"],
                task_arn=document["TaskARN"],
                family=document["Family"],
                revision=str(document["Revision"]),
            )
        except KeyError as e:
            raise ValueError(f"task metadata is missing {e}") from e


def query_task_metadata(
    environ: Optional[Mapping[str, str]] = None,
    get: Callable[..., requests.Response] = requests.get,
) -> TaskMetadata:
    """
    Describe the running task.

    Raises:
        requests.HTTPError: If the metadata endpoint answers with an error status
        ValueError: If the task document lacks an expected attribute
    """
    environ = os.environ if environ is None else environ
    metadata_uri = environ.get(METADATA_URI_ENV)
    if not metadata_uri:
        logger.info(f"{METADATA_URI_ENV} is not set, using local placeholders")
        return TaskMetadata.local()

    response = get(f"{metadata_uri}/task", timeout=REQUEST_TIMEOUT_SECONDS)
    response.raise_for_status()
    return TaskMetadata.from_task_document(response.json())
