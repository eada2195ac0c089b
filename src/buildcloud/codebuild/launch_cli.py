"""Command-line entrypoint for launching build-service agents."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from buildcloud.codebuild.api import BuildServiceClient
from buildcloud.codebuild.config import get_service_config, load_cloud_config
from buildcloud.codebuild.controller import ControllerClient, ControllerWorker
from buildcloud.codebuild.errors import LaunchError
from buildcloud.codebuild.launcher import LaunchOrchestrator
from buildcloud.codebuild.parameters import build_parameters, select_connection_mode
from buildcloud.codebuild.workers import BuildWorker, EphemeralNode, LaunchListener

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a CI agent inside a build-service job",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the variables the job will receive
  %(prog)s params --config cloud.yaml --name codebuild-1 --secret s3cr3t

  # Start a job and wait for the agent to connect
  %(prog)s launch --config cloud.yaml --name codebuild-1 --secret s3cr3t
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for command, help_text in (
        ("params", "Print bootstrap parameters for an agent"),
        ("launch", "Start a job and wait for the agent to connect"),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("--config", required=True, help="Path to the cloud YAML file")
        sub.add_argument("--name", required=True, help="Agent node name")
        sub.add_argument("--secret", required=True, help="Agent secret issued by the controller")
        if command == "params":
            sub.add_argument("--json", dest="as_json", action="store_true", help="Print parameters as JSON")
        else:
            sub.add_argument("--env-file", dest="env_file", default=None, help="Path to a .env file with service endpoints")
            sub.add_argument("--timeout", type=int, default=None, help="Override the agent connection timeout in seconds")

    return parser.parse_args(argv)


def run_params(args: argparse.Namespace) -> int:
    config = load_cloud_config(Path(args.config))
    worker = BuildWorker(args.name, args.secret, node=EphemeralNode(args.name))
    params = build_parameters(config, worker)

    if args.as_json:
        print(json.dumps([p.to_dict() for p in params], indent=2))
    else:
        print(f"# connection mode: {select_connection_mode(config).value}")
        for param in params:
            print(f"{param.name}={param.value}")
    return 0


def run_launch(args: argparse.Namespace) -> int:
    config = load_cloud_config(Path(args.config))
    if args.timeout is not None:
        if args.timeout <= 0:
            raise LaunchError("--timeout must be a positive integer")
        config = replace(config, agent_timeout=args.timeout)

    service_config = get_service_config(Path(args.env_file) if args.env_file else None)
    service = BuildServiceClient(
        service_config.build_service_url,
        service_config.build_service_token,
        timeout=service_config.timeout,
    )
    controller = ControllerClient(
        service_config.controller_url or config.url,
        user=service_config.controller_user,
        token=service_config.controller_token,
        timeout=service_config.timeout,
    )

    worker = ControllerWorker(args.name, args.secret, controller, node=EphemeralNode(args.name))
    orchestrator = LaunchOrchestrator(config, service, registry=controller)
    orchestrator.launch(worker, LaunchListener())

    if orchestrator.launched:
        logger.info(f"✓ Agent {args.name} connected (build {worker.job_id})")
        return 0
    logger.error(f"✗ Agent {args.name} failed to launch")
    return 1


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if args.command == "params":
            return run_params(args)
        return run_launch(args)
    except (LaunchError, ValueError) as exc:
        print(f"{args.command} failed: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
