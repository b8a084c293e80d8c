#!/usr/bin/env python3
"""
Command line entry point

    realitio-lz-deploy deploy --network arbitrum-sepolia --tags Foreign
    realitio-lz-deploy template --network arbitrum-sepolia --mapping
    realitio-lz-deploy import --network arbitrum-sepolia ./exports/arbitrumSepolia.json
    realitio-lz-deploy verify --network arbitrum-sepolia
"""

import argparse
import logging
import sys
from typing import List, Optional

from .artifacts import load_artifact
from .config import Settings, configure_logging
from .errors import DeploymentError
from .explorer import ExplorerClient, encode_constructor_args
from .networks import HOME, NetworkDescriptor, NetworkRegistry
from .orchestrator import Orchestrator
from .profiles import FOREIGN_TAG, HOME_TAG, PROFILES, get_profile, profile_for_network
from .store import DeploymentStore
from .submitter import Web3Submitter, connect
from .template.dispute import render_mapping, render_template

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="realitio-lz-deploy",
        description="Deploy the Realitio LayerZero home/foreign proxies",
    )
    parser.add_argument("--deployments-dir", help="Deployment records directory (DEPLOYMENTS_DIR)")
    parser.add_argument("--log-level", help="Logging level (LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser("deploy", help="Run tagged deployment steps")
    deploy.add_argument("--network", required=True, help="Active network name")
    deploy.add_argument("--tags", nargs="+", choices=[HOME_TAG, FOREIGN_TAG], default=[HOME_TAG, FOREIGN_TAG])
    deploy.add_argument("--profile", choices=sorted(PROFILES), help="Defaults to the profile targeting --network")
    deploy.add_argument("--artifacts-dir", help="Compiled artifacts directory (ARTIFACTS_DIR)")

    template = subparsers.add_parser("template", help="Print the dispute template of a foreign network")
    template.add_argument("--network", required=True, help="Foreign network name")
    template.add_argument("--arbitrator", help="KlerosCore address, defaults to the recorded klerosCore")
    template.add_argument("--mapping", action="store_true", help="Also print the data mapping")

    import_ = subparsers.add_parser("import", help="Seed deployment records from an export file or URL")
    import_.add_argument("--network", required=True)
    import_.add_argument("source", help="hardhat-deploy export JSON, path or http(s) URL")

    verify = subparsers.add_parser("verify", help="Check explorer verification of the recorded proxies")
    verify.add_argument("--network", required=True)
    verify.add_argument("--artifacts-dir", help="Compiled artifacts directory (ARTIFACTS_DIR)")

    return parser


def _store_factory(settings: Settings):
    def factory(network: NetworkDescriptor) -> DeploymentStore:
        return DeploymentStore(settings.deployments_dir, network.name, network.chain_id)
    return factory


def cmd_deploy(args, settings: Settings, registry: NetworkRegistry) -> int:
    network = registry.get(args.network)
    profile = get_profile(args.profile) if args.profile else profile_for_network(network.name)
    logger.info(f"Using profile {profile.name} ({profile.home_network} <-> {profile.foreign_network})")

    w3 = connect(settings.rpc_url(network))
    submitter = Web3Submitter(
        w3,
        settings.artifacts_dir,
        account=settings.local_account(),
        receipt_timeout=settings.receipt_timeout,
    )
    orchestrator = Orchestrator(profile.steps(), registry, _store_factory(settings), submitter)
    results = orchestrator.run(network.name, args.tags)

    for result in results:
        address = f" at {result.record.address}" if result.record else ""
        print(f"{result.step.logical_name}: {result.outcome.value}{address}")
    return 0


def cmd_template(args, settings: Settings, registry: NetworkRegistry) -> int:
    network = registry.get(args.network)
    # Only a foreign network hosts the arbitrator
    home = registry.resolve_companion(network.name, HOME)
    arbitrator = args.arbitrator
    if arbitrator is None:
        arbitrator = _store_factory(settings)(network).resolve("klerosCore")

    profile = profile_for_network(network.name)
    template = render_template(network.chain_id, arbitrator, policy_uri=profile.policy_uri)
    print(template.document)

    if args.mapping:
        if not profile.supply_mapping:
            logger.warning(f"Profile {profile.name} deploys without a data mapping, none printed")
            return 0
        realitio = profile.realitio or _store_factory(settings)(home).resolve("Realitio")
        print(render_mapping(realitio, home.chain_id).document)
    return 0


def cmd_import(args, settings: Settings, registry: NetworkRegistry) -> int:
    network = registry.get(args.network)
    store = _store_factory(settings)(network)
    for record in store.import_export(args.source):
        print(f"{record.logical_name}: {record.address}")
    return 0


def cmd_verify(args, settings: Settings, registry: NetworkRegistry) -> int:
    """Print verification status and encoded constructor args of the proxies recorded on a network"""
    network = registry.get(args.network)
    profile = profile_for_network(network.name)
    store = _store_factory(settings)(network)
    client = ExplorerClient(network, settings.explorer_api_key(network))

    for step in profile.steps():
        if step.network != network.name:
            continue
        record = store.get(step.logical_name)
        if record is None:
            logger.info(f"{step.logical_name} is not deployed on {network.name}")
            continue
        abi = load_artifact(step.artifact_name, settings.artifacts_dir)["abi"]
        encoded = encode_constructor_args(abi, record.constructor_args)
        status = "verified" if client.is_verified(record.address) else "unverified"
        print(f"{step.logical_name}: {record.address} {status}")
        print(f"  constructor arguments: {encoded}")
    return 0


COMMANDS = {
    "deploy": cmd_deploy,
    "template": cmd_template,
    "import": cmd_import,
    "verify": cmd_verify,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.deployments_dir:
        settings.deployments_dir = args.deployments_dir
    if getattr(args, "artifacts_dir", None):
        settings.artifacts_dir = args.artifacts_dir
    if args.log_level:
        settings.log_level = args.log_level
    configure_logging(settings.log_level, settings.log_file)

    try:
        return COMMANDS[args.command](args, settings, NetworkRegistry())
    except DeploymentError as e:
        logger.error(f"Fatal error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Deployment stopped by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
