"""
Deploy IdentityManager to a network.

Usage:
    PRIVATE_KEY=0x... python -m identity_manager.deploy --rpc-url https://...
    python -m identity_manager.deploy --from 0xUnlockedDevAccount
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from eth_account import Account
from web3 import Web3

from identity_manager.config import config
from identity_manager.errors import RegistryError
from identity_manager.services.deployment import deploy_identity_manager, load_artifact

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deploy the IdentityManager contract")
    parser.add_argument("--artifact", default=config.CONTRACT_ARTIFACT,
                        help="compiled contract JSON (abi + bytecode)")
    parser.add_argument("--rpc-url", default=config.RPC_URL, help="JSON-RPC endpoint")
    parser.add_argument("--deployments", default=config.DEPLOYMENTS_FILE,
                        help="file recording deployed addresses per chain id")
    parser.add_argument("--from", dest="sender", default=None,
                        help="node-managed account to deploy from (when no PRIVATE_KEY)")
    parser.add_argument("--force", action="store_true",
                        help="deploy again even if this chain already has an instance")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=config.API_LOG_LEVEL.upper(), format="%(levelname)s %(message)s")

    w3 = Web3(Web3.HTTPProvider(args.rpc_url))
    if not w3.is_connected():
        logger.error("Could not connect to %s", args.rpc_url)
        return 1

    private_key = config.PRIVATE_KEY or None
    if private_key:
        deployer = Account.from_key(private_key).address
    elif args.sender:
        deployer = args.sender
    else:
        accounts = w3.eth.accounts
        if not accounts:
            logger.error("Set PRIVATE_KEY or pass --from with a node-managed account")
            return 1
        deployer = accounts[0]

    try:
        artifact = load_artifact(args.artifact)
        address = deploy_identity_manager(
            w3,
            artifact,
            deployer,
            private_key=private_key,
            deployments_file=args.deployments,
            force=args.force,
        )
    except (OSError, ValueError, RegistryError) as e:
        logger.error("Deployment failed: %s", e)
        return 1

    print(f"IDENTITY_MANAGER_ADDRESS={address}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
