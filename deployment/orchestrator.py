"""
Deployment orchestrator

Runs tagged deployment steps against one explicitly named network. Each step
goes through

    skip check -> Skipped
               -> already recorded -> Existing
               -> resolve dependencies -> assemble args -> submit -> Recorded

Steps run strictly in declared order: a later step may depend on a contract
recorded by an earlier one. Any error aborts the whole run; records written
before the failure stay valid and the next run resumes after them.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from .networks import NetworkDescriptor, NetworkRegistry
from .skip import should_skip
from .store import DeploymentRecord, DeploymentStore

logger = logging.getLogger(__name__)


class Submitter(Protocol):
    @property
    def deployer(self) -> str: ...

    def deploy(self, contract_name: str, args: List[Any]) -> Tuple[str, str]: ...


@dataclass
class StepContext:
    """Everything a step needs to assemble its constructor arguments"""
    network: NetworkDescriptor
    companion: NetworkDescriptor
    deployer: str
    addresses: Dict[str, str] = field(default_factory=dict)
    companion_addresses: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DeploymentStep:
    """
    One contract deployment, bound to the network it targets.

    `assemble` receives a StepContext with every dependency already resolved
    and returns the positional constructor arguments.
    """
    logical_name: str
    network: str
    companion_role: str
    assemble: Callable[[StepContext], List[Any]]
    tags: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    companion_dependencies: Tuple[str, ...] = ()
    contract_name: Optional[str] = None

    @property
    def artifact_name(self) -> str:
        return self.contract_name or self.logical_name


class Outcome(Enum):
    SKIPPED = "skipped"
    EXISTING = "existing"
    RECORDED = "recorded"


@dataclass
class StepResult:
    step: DeploymentStep
    outcome: Outcome
    record: Optional[DeploymentRecord] = None


class Orchestrator:
    """Sequential driver for a list of DeploymentSteps"""

    def __init__(self, steps: Iterable[DeploymentStep], registry: NetworkRegistry,
                 store_factory: Callable[[NetworkDescriptor], DeploymentStore], submitter: Submitter):
        self.steps = list(steps)
        self.registry = registry
        self.store_factory = store_factory
        self.submitter = submitter

    def select(self, tags: Iterable[str]) -> List[DeploymentStep]:
        wanted = set(tags)
        return [step for step in self.steps if wanted.intersection(step.tags)]

    def run(self, network: str, tags: Iterable[str]) -> List[StepResult]:
        """Run every step carrying one of `tags` against `network`"""
        tags = list(tags)
        active = self.registry.get(network)
        steps = self.select(tags)
        if not steps:
            logger.warning(f"No deployment step matches tags {sorted(set(tags))}")

        results = []
        for step in steps:
            try:
                results.append(self.run_step(step, active))
            except Exception as e:
                logger.error(f"Deployment step {step.logical_name} failed on {active.name}: {e}")
                raise
        return results

    def run_step(self, step: DeploymentStep, network: NetworkDescriptor) -> StepResult:
        if should_skip(network.name, step.network):
            return StepResult(step, Outcome.SKIPPED)

        store = self.store_factory(network)
        existing = store.get(step.logical_name)
        if existing is not None:
            logger.info(f"Reusing {step.logical_name} at {existing.address} on {network.name}")
            return StepResult(step, Outcome.EXISTING, existing)

        companion = self.registry.resolve_companion(network.name, step.companion_role)
        # Resolve everything before assembling: a missing dependency must
        # abort before any transaction is attempted
        addresses = store.resolve_all(step.dependencies)
        companion_addresses = {}
        if step.companion_dependencies:
            companion_addresses = self.store_factory(companion).resolve_all(step.companion_dependencies)

        deployer = self.submitter.deployer
        logger.info(f"deploying to {network.name} with deployer {deployer}")

        context = StepContext(
            network=network,
            companion=companion,
            deployer=deployer,
            addresses=addresses,
            companion_addresses=companion_addresses,
        )
        args = step.assemble(context)
        logger.info(f"Deploying {step.logical_name} ({step.artifact_name}) with {len(args)} constructor argument(s)")

        address, tx_hash = self.submitter.deploy(step.artifact_name, args)
        record = store.save(DeploymentRecord(
            logical_name=step.logical_name,
            address=address,
            constructor_args=args,
            transaction_hash=tx_hash,
            network=network.name,
        ))
        return StepResult(step, Outcome.RECORDED, record)
