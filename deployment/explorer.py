"""
Block explorer source verification support

Turns the constructor arguments kept in a DeploymentRecord into the
ABI-encoded form etherscan-compatible explorers ask for, and checks whether
a deployed address already has verified source.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from eth_abi import encode
from web3 import Web3

from .errors import DeploymentError
from .networks import NetworkDescriptor

logger = logging.getLogger(__name__)


def constructor_types(abi: List[Dict[str, Any]]) -> List[str]:
    for item in abi:
        if item.get("type") == "constructor":
            return [arg["type"] for arg in item.get("inputs", [])]
    return []


def _abi_value(abi_type: str, value: Any) -> Any:
    # Records keep bytes arguments as 0x-prefixed hex
    if abi_type.startswith("bytes") and isinstance(value, str):
        return Web3.to_bytes(hexstr=value)
    return value


def encode_constructor_args(abi: List[Dict[str, Any]], args: List[Any]) -> str:
    """
    ABI-encode recorded constructor arguments for source verification.

    Returns:
        Hex string without 0x prefix, as explorers expect it
    """
    types = constructor_types(abi)
    if len(types) != len(args):
        raise DeploymentError(f"Constructor takes {len(types)} argument(s), record holds {len(args)}")
    return encode(types, [_abi_value(t, v) for t, v in zip(types, args)]).hex()


class ExplorerClient:
    """Read-only client of a network's etherscan-compatible API"""

    def __init__(self, network: NetworkDescriptor, api_key: Optional[str] = None):
        if not network.explorer_api_url:
            raise DeploymentError(f"No block explorer API configured for {network.name}")
        self.network = network
        self.api_key = api_key

    def _get(self, params: Dict[str, str]) -> Dict[str, Any]:
        params = dict(params)
        if self.api_key:
            params["apikey"] = self.api_key
        url = f"{self.network.explorer_api_url}/api"
        try:
            response = requests.get(url, params=params, timeout=30)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error querying {url}: {e}")
            raise DeploymentError(f"Block explorer request to {url} failed: {e}") from e

    def is_verified(self, address: str) -> bool:
        data = self._get({"module": "contract", "action": "getsourcecode", "address": address})
        result = data.get("result")
        if data.get("status") != "1" or not isinstance(result, list) or not result:
            raise DeploymentError(f"Block explorer lookup of {address} failed: {result}")
        return bool(result[0].get("SourceCode"))
