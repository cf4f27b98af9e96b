"""
Cloud Map name resolution for ``cloudmap://<service>.<namespace>`` targets.

The target is split on the first "." so service names cannot contain one.
ECS registers every task with its IPv4 address and availability zone as
instance attributes.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

SCHEME = "cloudmap"
IPV4_ATTRIBUTE = "AWS_INSTANCE_IPV4"
AVAILABILITY_ZONE_ATTRIBUTE = "AVAILABILITY_ZONE"


@dataclass(frozen=True)
class Endpoint:
    address: str
    availability_zone: str


def parse_target(target: str) -> Tuple[str, str]:
    """Split ``cloudmap://server.grpc.demo`` into ``("server", "grpc.demo")``."""
    url = urlparse(target)
    if url.scheme != SCHEME:
        raise ValueError(f"unsupported scheme in discovery target {target}, must be {SCHEME}")

    service, _, namespace = url.netloc.partition(".")
    if not service or not namespace:
        raise ValueError(f"discovery target {target} must look like {SCHEME}://<service>.<namespace>")
    return service, namespace


class CloudMapResolver:
    def __init__(self, discovery_client: Any, target: str, port: int):
        """
        Args:
            discovery_client: boto3 ``servicediscovery`` client
            target: ``cloudmap://<service>.<namespace>``
            port: Port the discovered tasks listen on
        """
        self._discovery_client = discovery_client
        self.service, self.namespace = parse_target(target)
        self._port = port

    def resolve(self) -> List[Endpoint]:
        response = self._discovery_client.discover_instances(
            NamespaceName=self.namespace, ServiceName=self.service
        )

        endpoints = []
        for instance in response.get("Instances", []):
            attributes = instance.get("Attributes", {})
            ipv4 = attributes.get(IPV4_ATTRIBUTE)
            if not ipv4:
                logger.warning(f"Skipping instance {instance.get('InstanceId')} without an IPv4 address")
                continue

            endpoint = Endpoint(
                address=f"{ipv4}:{self._port}",
                availability_zone=attributes.get(AVAILABILITY_ZONE_ATTRIBUTE, ""),
            )
            logger.info(f"resolved target: {endpoint.address} ({endpoint.availability_zone})")
            endpoints.append(endpoint)

        return endpoints
