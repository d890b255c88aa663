"""Entry point: wires the learner model and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from learner_model.service import create_model_service
from learner_model.servicer import ModelServicer, add_model_servicer_to_server

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_server() -> grpc.Server:
    """Construct and configure the gRPC server with all dependencies wired.

    Returns:
        A configured but not-yet-started :class:`grpc.Server`.
    """
    model_service = create_model_service(
        seed=config.GENERATION_SEED,
        slow_call_threshold_ms=config.SLOW_CALL_WARN_THRESHOLD_MS,
    )
    servicer = ModelServicer(model_service=model_service)

    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    add_model_servicer_to_server(servicer, server)
    server.add_insecure_port(
        f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}"
    )
    return server


def main() -> None:
    """Build the server, register shutdown handlers and serve until stopped."""
    server = build_server()

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down…", sig_name)
        server.stop(grace=5)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "Learner model gRPC server listening on %s:%d",
        config.GRPC_SERVER_HOST,
        config.GRPC_SERVER_PORT,
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()
