"""
Deployer configuration

Settings come from the environment, with a .env file loaded on import the
same way the oracle updaters load theirs.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount

from .networks import NetworkDescriptor

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_HD_PATH = "m/44'/60'/0'/0/{index}"


def configure_logging(level: str = "INFO", log_file: Optional[str] = "deployment.log"):
    """Log to stderr and, when log_file is set, to a file"""
    handlers: list = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


@dataclass
class Settings:
    mnemonic: Optional[str] = None
    private_key: Optional[str] = None
    deployer_index: int = 0
    deployments_dir: str = "deployments"
    artifacts_dir: str = "artifacts"
    receipt_timeout: int = 300
    log_level: str = "INFO"
    log_file: Optional[str] = "deployment.log"

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            mnemonic=os.getenv("MNEMONIC") or None,
            private_key=os.getenv("PRIVATE_KEY") or None,
            deployer_index=int(os.getenv("DEPLOYER_INDEX", "0")),
            deployments_dir=os.getenv("DEPLOYMENTS_DIR", "deployments"),
            artifacts_dir=os.getenv("ARTIFACTS_DIR", "artifacts"),
            receipt_timeout=int(os.getenv("RECEIPT_TIMEOUT", "300")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "deployment.log") or None,
        )
        if not settings.has_accounts:
            logger.warning(
                "Could not find MNEMONIC or PRIVATE_KEY environment variables. "
                "Falling back to the node's unlocked accounts."
            )
        return settings

    @property
    def has_accounts(self) -> bool:
        return bool(self.mnemonic or self.private_key)

    def rpc_url(self, network: NetworkDescriptor) -> str:
        url = os.getenv(network.rpc_url_env) or network.default_rpc_url
        if not url:
            raise ValueError(f"No RPC URL for {network.name}; set {network.rpc_url_env}")
        return url

    def explorer_api_key(self, network: NetworkDescriptor) -> Optional[str]:
        if not network.explorer_api_key_env:
            return None
        return os.getenv(network.explorer_api_key_env) or None

    def local_account(self) -> Optional[LocalAccount]:
        """
        The configured deployer account, if any.

        A mnemonic takes precedence over a private key; DEPLOYER_INDEX picks
        the derivation index.
        """
        if self.mnemonic:
            Account.enable_unaudited_hdwallet_features()
            return Account.from_mnemonic(
                self.mnemonic,
                account_path=DEFAULT_HD_PATH.format(index=self.deployer_index),
            )
        if self.private_key:
            return Account.from_key(self.private_key)
        return None
