"""
Network registry

Static table of the networks the proxies can be deployed to. Each entry
carries its LayerZero endpoint id and the companion network hosting the
other end of the bridge.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .errors import UnknownNetwork

logger = logging.getLogger(__name__)

HOME = "home"
FOREIGN = "foreign"


@dataclass(frozen=True)
class NetworkDescriptor:
    """A deployable network"""
    name: str
    chain_id: int
    endpoint_id: Optional[int] = None  # LayerZero V2 eid
    companions: Dict[str, str] = field(default_factory=dict)  # role -> network name
    default_rpc_url: Optional[str] = None
    explorer_api_url: Optional[str] = None  # etherscan-compatible verification API
    explorer_api_key_env: Optional[str] = None

    @property
    def rpc_url_env(self) -> str:
        """Environment variable overriding the RPC URL, e.g. RPC_URL_ARBITRUM_SEPOLIA"""
        return "RPC_URL_" + self.name.upper().replace("-", "_")

    @property
    def is_local(self) -> bool:
        return self.endpoint_id is None


DEFAULT_NETWORKS: List[NetworkDescriptor] = [
    NetworkDescriptor(
        name="sepolia",
        chain_id=11155111,
        endpoint_id=40161,
        companions={FOREIGN: "arbitrum-sepolia"},
        default_rpc_url="https://sepolia.gateway.tenderly.co",
        explorer_api_url="https://api-sepolia.etherscan.io",
        explorer_api_key_env="ETHERSCAN_API_KEY",
    ),
    NetworkDescriptor(
        name="arbitrum-sepolia",
        chain_id=421614,
        endpoint_id=40231,
        companions={HOME: "sepolia"},
        default_rpc_url="https://arbitrum-sepolia.gateway.tenderly.co",
        explorer_api_url="https://api-sepolia.arbiscan.io",
        explorer_api_key_env="ARBISCAN_API_KEY",
    ),
    NetworkDescriptor(
        name="polygon",
        chain_id=137,
        endpoint_id=30109,
        companions={FOREIGN: "arbitrum"},
        default_rpc_url="https://polygon-rpc.com",
        explorer_api_url="https://api.polygonscan.com",
        explorer_api_key_env="POLYGONSCAN_API_KEY",
    ),
    NetworkDescriptor(
        name="arbitrum",
        chain_id=42161,
        endpoint_id=30110,
        companions={HOME: "polygon"},
        default_rpc_url="https://arb1.arbitrum.io/rpc",
        explorer_api_url="https://api.arbiscan.io",
        explorer_api_key_env="ARBISCAN_API_KEY",
    ),
    # Local hardhat/anvil node, never a valid deployment target on its own
    NetworkDescriptor(
        name="hardhat",
        chain_id=31337,
        default_rpc_url="http://localhost:8545",
    ),
]


class NetworkRegistry:
    """Lookup table of NetworkDescriptor by name"""

    def __init__(self, networks: Iterable[NetworkDescriptor] = DEFAULT_NETWORKS):
        self._networks: Dict[str, NetworkDescriptor] = {}
        for network in networks:
            if network.name in self._networks:
                raise ValueError(f"Network {network.name} registered twice")
            self._networks[network.name] = network
        self._validate()

    def _validate(self):
        """Every declared companion must itself be registered"""
        for network in self._networks.values():
            if len(network.companions) > 1:
                raise ValueError(f"Network {network.name} declares more than one companion")
            for role, companion in network.companions.items():
                if companion not in self._networks:
                    raise ValueError(
                        f"Network {network.name} declares unregistered {role} companion {companion}"
                    )

    def __contains__(self, name: str) -> bool:
        return name in self._networks

    def __iter__(self):
        return iter(self._networks.values())

    def names(self) -> List[str]:
        return list(self._networks)

    def get(self, name: str) -> NetworkDescriptor:
        try:
            return self._networks[name]
        except KeyError:
            raise UnknownNetwork(name, "not registered") from None

    def resolve_companion(self, name: str, role: Optional[str] = None) -> NetworkDescriptor:
        """
        Return the descriptor of the companion network of `name`.

        Args:
            name: Registered network name
            role: Expected companion role (HOME or FOREIGN); any role if None

        Raises:
            UnknownNetwork: if `name` is unknown, declares no companion, or
                declares none under the requested role
        """
        network = self.get(name)
        if not network.companions:
            raise UnknownNetwork(name, "no companion network declared")

        if role is None:
            (companion_name,) = network.companions.values()
        elif role in network.companions:
            companion_name = network.companions[role]
        else:
            raise UnknownNetwork(name, f"no {role} companion network declared")

        companion = self.get(companion_name)
        if companion.endpoint_id is None:
            raise UnknownNetwork(companion_name, "companion has no endpoint id")

        logger.debug(f"Companion of {name} is {companion.name} (eid {companion.endpoint_id})")
        return companion
