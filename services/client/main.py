#!/usr/bin/env python3
import itertools
import logging
import os
import threading
from functools import lru_cache
from typing import Dict, List

import boto3
import grpc
import requests
import uvicorn
from fastapi import FastAPI, HTTPException

from balancer import AzAwarePicker
from resolver import CloudMapResolver, Endpoint

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "cloudmap://server.grpc.demo"
DEFAULT_REGION = "eu-central-1"
SERVER_PORT = 9000
CALL_TIMEOUT_SECONDS = 5
METADATA_URI_ENV = "ECS_CONTAINER_METADATA_URI_V4"

protos, services = grpc.protos_and_services("responder.proto")


def query_availability_zone() -> str:
    metadata_uri = os.environ.get(METADATA_URI_ENV)
    if not metadata_uri:
        return "az-localhost"

    response = requests.get(f"{metadata_uri}/task", timeout=2)
    response.raise_for_status()
    return response.json()["AvailabilityZone"]


class ResponderClient:
    """gRPC client for the server tasks discovered through Cloud Map."""

    def __init__(self, resolver: CloudMapResolver, picker: AzAwarePicker):
        self._resolver = resolver
        self._picker = picker
        self._lock = threading.Lock()
        self._channels: Dict[str, grpc.Channel] = {}
        self._endpoints: List[Endpoint] = resolver.resolve()

    def _stub(self, endpoint: Endpoint):
        with self._lock:
            channel = self._channels.get(endpoint.address)
            if channel is None:
                # no TLS between the demo tasks
                channel = grpc.insecure_channel(endpoint.address)
                self._channels[endpoint.address] = channel
        return services.ResponderStub(channel)

    def describe(self, msg_id: str):
        if not self._endpoints:
            self._endpoints = self._resolver.resolve()

        endpoint = self._picker.pick(self._endpoints)
        request = protos.DescribeServiceInstanceRequest(msg_id=msg_id)
        try:
            return self._stub(endpoint).DescribeServiceInstance(
                request, timeout=CALL_TIMEOUT_SECONDS
            )
        except grpc.RpcError:
            # tasks come and go, resolve again on the next call
            self._endpoints = []
            raise


@lru_cache
def get_responder_client() -> ResponderClient:
    discovery_client = boto3.client(
        "servicediscovery", region_name=os.environ.get("AWS_REGION", DEFAULT_REGION)
    )
    resolver = CloudMapResolver(
        discovery_client, os.environ.get("DISCOVERY_TARGET", DEFAULT_TARGET), SERVER_PORT
    )
    return ResponderClient(resolver, AzAwarePicker(query_availability_zone()))


app = FastAPI()
message_ids = itertools.count()


@app.get("/describe")
def describe():
    msg_id = str(next(message_ids))
    try:
        response = get_responder_client().describe(msg_id)
    except (grpc.RpcError, LookupError) as e:
        logger.error(f"error when calling server instance: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e

    return {"msgId": msg_id, "availabilityZone": response.availability_zone}


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    logger.info("Now serving at 0.0.0.0:8080...")
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
