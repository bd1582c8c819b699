#!/usr/bin/env python3
"""
sensorboard FastAPI server entry point.

    sensorboard-server -c config.yaml
"""

import argparse
import logging

import uvicorn

from .core.config import load_config_from
from .core.server import create_app


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # influxdb-client logs every request at DEBUG
    logging.getLogger("influxdb_client").setLevel(logging.WARNING)


def main():
    """Main entry point for sensorboard server."""
    parser = argparse.ArgumentParser(description="sensorboard server")
    parser.add_argument("-c", "--config", help="Path to YAML config", default="config.yaml")
    args = parser.parse_args()

    config = load_config_from(args.config)
    setup_logging(config.log_level)

    app = create_app(config)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        reload=False,
        access_log=False,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
