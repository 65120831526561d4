"""CLI entry point for running a single bridge node."""
import asyncio
import json
import logging
import sys
from typing import Optional
from pydantic import ValidationError
from bridgenode.config import Settings, get_settings
from bridgenode.observability.metrics import init_system_info
from bridgenode.services.supervisor import Supervisor
from bridgenode.worker.models import JobResult, NodeConfig, NodeStatus

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_JOB_FAILED = 1
EXIT_INIT_FAILED = 2


def build_node_config(settings: Settings) -> NodeConfig:
    """
    Build the node configuration from NODE_* settings.

    Raises:
        ValidationError: If any of the four node settings is missing
    """
    return NodeConfig(
        mqttAddress=settings.NODE_MQTT_ADDRESS,
        mqttPort=settings.NODE_MQTT_PORT,
        modbusClientAddress=settings.NODE_MODBUS_CLIENT_ADDRESS,
        modbusClientPort=settings.NODE_MODBUS_CLIENT_PORT,
    )


def log_status(status: NodeStatus) -> None:
    """Status surface for CLI runs."""
    logger.info(f"Status [{status.fill}/{status.shape}] {status.state}: {status.message}")


async def run_node(settings: Optional[Settings] = None) -> int:
    """
    Run one node to completion and print its result envelope.

    Returns:
        int: Process exit code
    """
    settings = settings or get_settings()
    init_system_info(settings.APP_VERSION)

    try:
        config = build_node_config(settings)
    except ValidationError as e:
        logger.error(f"Invalid node configuration: {e}")
        return EXIT_INIT_FAILED

    supervisor = Supervisor.from_settings(config, log_status, settings=settings)
    result: Optional[JobResult] = await supervisor.start()

    if result is None:
        print(json.dumps({"error": str(supervisor.init_error)}))
        return EXIT_INIT_FAILED

    print(json.dumps(result.to_envelope()))
    return EXIT_SUCCESS if result.ok else EXIT_JOB_FAILED


def main():
    """Main entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        exit_code = asyncio.run(run_node(settings))
    except KeyboardInterrupt:
        logger.info("Node interrupted")
        exit_code = EXIT_JOB_FAILED
    except Exception as e:
        logger.error(f"Node error: {e}", exc_info=True)
        exit_code = EXIT_JOB_FAILED
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
