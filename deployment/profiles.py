"""
Deployment profiles

A profile pairs a home network (where Reality.eth lives) with a foreign
network (where the Kleros arbitrator lives) and carries every parameter that
differs between environments. The Home and Foreign steps are built from it,
so testnet and mainnet share one definition of each step.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_abi import encode

from .errors import UnknownNetwork
from .networks import FOREIGN, HOME
from .orchestrator import DeploymentStep, StepContext
from .template.dispute import DEFAULT_POLICY_URI, render_mapping, render_template

HOME_TAG = "Home"
FOREIGN_TAG = "Foreign"

HOME_PROXY = "RealitioHomeProxyLZ"
FOREIGN_PROXY = "RealitioForeignProxyLZ"

GENERAL_COURT = 1


def encode_extra_data(court: int, jurors: int) -> bytes:
    """Arbitrator extra data: (uint256 court id, uint256 juror count)"""
    return encode(["uint256", "uint256"], [court, jurors])


@dataclass(frozen=True)
class DeploymentProfile:
    name: str
    home_network: str
    foreign_network: str
    realitio: Optional[str] = None  # taken from the home store entry "Realitio" when unset
    metadata: str = ""
    court: int = GENERAL_COURT
    jurors: int = 1
    policy_uri: str = DEFAULT_POLICY_URI
    supply_mapping: bool = True

    @property
    def networks(self):
        return (self.home_network, self.foreign_network)

    def _realitio(self, addresses: Dict[str, str]) -> str:
        return self.realitio or addresses["Realitio"]

    def home_args(self, ctx: StepContext) -> List[Any]:
        return [
            self._realitio(ctx.addresses),
            self.metadata,
            ctx.companion.endpoint_id,  # foreign eid
            ctx.addresses["EndpointV2"],
        ]

    def foreign_args(self, ctx: StepContext) -> List[Any]:
        arbitrator = ctx.addresses["klerosCore"]
        template = render_template(ctx.network.chain_id, arbitrator, policy_uri=self.policy_uri)
        mapping = ""
        if self.supply_mapping:
            mapping = render_mapping(self._realitio(ctx.companion_addresses), ctx.companion.chain_id).document

        return [
            ctx.addresses["WETH"],
            arbitrator,
            encode_extra_data(self.court, self.jurors),
            ctx.addresses["disputeTemplateRegistry"],
            template.document,
            mapping,
            ctx.companion.endpoint_id,  # home eid
            ctx.addresses["EndpointV2"],
        ]

    def steps(self) -> List[DeploymentStep]:
        home_dependencies = ("EndpointV2",) if self.realitio else ("Realitio", "EndpointV2")
        foreign_companion_dependencies = ()
        if self.supply_mapping and not self.realitio:
            foreign_companion_dependencies = ("Realitio",)

        return [
            DeploymentStep(
                logical_name=HOME_PROXY,
                network=self.home_network,
                companion_role=FOREIGN,
                assemble=self.home_args,
                tags=(HOME_TAG,),
                dependencies=home_dependencies,
            ),
            DeploymentStep(
                logical_name=FOREIGN_PROXY,
                network=self.foreign_network,
                companion_role=HOME,
                assemble=self.foreign_args,
                tags=(FOREIGN_TAG,),
                dependencies=("WETH", "klerosCore", "disputeTemplateRegistry", "EndpointV2"),
                companion_dependencies=foreign_companion_dependencies,
            ),
        ]


PROFILES: Dict[str, DeploymentProfile] = {
    "testnet": DeploymentProfile(
        name="testnet",
        home_network="sepolia",
        foreign_network="arbitrum-sepolia",
        realitio="0xaf33DcB6E8c5c4D9dDF579f53031b514d19449CA",
    ),
    "mainnet": DeploymentProfile(
        name="mainnet",
        home_network="polygon",
        foreign_network="arbitrum",
        supply_mapping=False,
    ),
}


def get_profile(name: str) -> DeploymentProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"Unknown profile '{name}', expected one of {sorted(PROFILES)}") from None


def profile_for_network(network: str) -> DeploymentProfile:
    """The profile deploying one of the proxies to `network`"""
    for profile in PROFILES.values():
        if network in profile.networks:
            return profile
    raise UnknownNetwork(network, "no deployment profile targets this network")
