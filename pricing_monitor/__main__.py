"""
Process entry point: python -m pricing_monitor
Command-line flags override the matching environment variables.
"""
from typing import Dict, List, Mapping, Optional
import argparse
import logging
import os
import sys

import uvicorn

from pricing_monitor import __version__
from pricing_monitor.core.config import Config
from pricing_monitor.core.logging_setup import configure_logging
from pricing_monitor.main import create_app


logger = logging.getLogger("pricing_monitor")


# (flag, environment variable, help)
CLI_OPTIONS = (
    ("--aws-regions", "AWS_REGIONS", "AWS regions to monitor (e.g., us-east-1,us-west-2)"),
    ("--aws-instance-types", "AWS_INSTANCE_TYPES", "AWS EC2 instance types to track (e.g., t3.micro,m5.large)"),
    ("--gcp-regions", "GCP_REGIONS", "GCP regions to monitor (e.g., us-central1,us-east1)"),
    ("--gcp-instance-types", "GCP_INSTANCE_TYPES", "GCP machine types to track (e.g., e2-micro,n2-standard-2)"),
    ("--poll-interval", "POLL_INTERVAL", "How often to refresh pricing data (e.g., 90s, 15m, 1h)"),
    ("--metrics-addr", "METRICS_ADDR", "Address to serve /metrics on (host:port)"),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pricing-monitor",
        description="Monitor and export cloud VM pricing as Prometheus metrics",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    for flag, env_var, help_text in CLI_OPTIONS:
        parser.add_argument(flag, dest=env_var, default=None, help=f"{help_text} [env: {env_var}]")
    parser.add_argument(
        "--debug",
        dest="DEBUG",
        action="store_const",
        const="true",
        default=None,
        help="Enable debug logging [env: DEBUG]",
    )
    return parser


def load_settings(
    argv: Optional[List[str]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Environment values overlaid with any flags given on the command line."""
    args = build_parser().parse_args(argv)
    settings = dict(os.environ if environ is None else environ)
    settings.update({key: value for key, value in vars(args).items() if value is not None})
    return settings


def main(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    settings = load_settings(argv, environ)
    try:
        config = Config(settings)
        config.validate()
    except ValueError as error:
        print(f"error: configuration error: {error}", file=sys.stderr)
        return 1

    configure_logging(config.LOG_LEVEL, config.DEBUG)

    logger.info(
        f"starting cloud pricing monitor version={__version__} "
        f"aws_regions={','.join(config.AWS_REGIONS)} "
        f"aws_instance_types={','.join(config.AWS_INSTANCE_TYPES)} "
        f"gcp_regions={','.join(config.GCP_REGIONS)} "
        f"gcp_instance_types={','.join(config.GCP_INSTANCE_TYPES)} "
        f"poll_interval={config.POLL_INTERVAL_SECONDS}s "
        f"metrics_addr={config.METRICS_HOST}:{config.METRICS_PORT}"
    )

    app = create_app(config)
    # uvicorn handles SIGINT/SIGTERM and drives the lifespan shutdown
    uvicorn.run(
        app,
        host=config.METRICS_HOST,
        port=config.METRICS_PORT,
        log_config=None,
        lifespan="on",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
