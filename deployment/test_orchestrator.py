#!/usr/bin/env python3
"""
Tests for the deployment orchestrator and profiles
Deployments go through a mocked submitter, records through a temporary store
"""

import json
from unittest.mock import MagicMock

import pytest

from deployment.errors import DependencyNotDeployed, SubmitFailure, UnknownNetwork
from deployment.networks import NetworkRegistry
from deployment.orchestrator import DeploymentStep, Orchestrator, Outcome
from deployment.profiles import (
    FOREIGN_PROXY,
    HOME_PROXY,
    PROFILES,
    encode_extra_data,
    get_profile,
    profile_for_network,
)
from deployment.store import DeploymentRecord, DeploymentStore

DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ENDPOINT = "0x6EDCE65403992e310A62460808c4b910D972f10f"
WETH = "0x980B62Da83eFf3D4576C647993b0c1D7faf17c73"
KLEROS_CORE = "0x33d0b8879368acD8ca868e656Ade97bB97b90468"
TEMPLATE_REGISTRY = "0x596D3B09E684D62217682216e9b7a0De75933391"
REALITIO_SEPOLIA = "0xaf33DcB6E8c5c4D9dDF579f53031b514d19449CA"

GENERAL_COURT_ONE_JUROR = (
    "0x0000000000000000000000000000000000000000000000000000000000000001"
    "0000000000000000000000000000000000000000000000000000000000000001"
)


def seed(store, **addresses):
    for name, address in addresses.items():
        store.save(DeploymentRecord(logical_name=name, address=address))


class TestProfiles:
    """Test class for deployment profiles"""

    def test_extra_data_encodes_court_and_jurors(self):
        assert "0x" + encode_extra_data(1, 1).hex() == GENERAL_COURT_ONE_JUROR

    def test_profile_for_network(self):
        assert profile_for_network("sepolia").name == "testnet"
        assert profile_for_network("arbitrum-sepolia").name == "testnet"
        assert profile_for_network("arbitrum").name == "mainnet"
        with pytest.raises(UnknownNetwork):
            profile_for_network("hardhat")

    def test_unknown_profile(self):
        with pytest.raises(ValueError, match="Unknown profile"):
            get_profile("devnet")

    def test_profile_networks_are_companions(self):
        registry = NetworkRegistry()
        for profile in PROFILES.values():
            assert registry.resolve_companion(profile.home_network).name == profile.foreign_network
            assert registry.resolve_companion(profile.foreign_network).name == profile.home_network

    def test_steps_are_tagged(self):
        steps = get_profile("testnet").steps()
        assert [(s.logical_name, s.network, s.tags) for s in steps] == [
            (HOME_PROXY, "sepolia", ("Home",)),
            (FOREIGN_PROXY, "arbitrum-sepolia", ("Foreign",)),
        ]

    def test_mainnet_home_resolves_realitio_from_store(self):
        home, foreign = get_profile("mainnet").steps()
        assert "Realitio" in home.dependencies
        assert foreign.companion_dependencies == ()


class TestOrchestrator:
    """Test class for running deployment steps"""

    def setup_method(self):
        self.registry = NetworkRegistry()
        self.submitter = MagicMock()
        self.submitter.deployer = DEPLOYER
        self.submitter.deploy.return_value = ("0x00000000000000000000000000000000000000aa", "0x" + "11" * 32)

    def make(self, tmp_path, profile="testnet"):
        def store_factory(network):
            return DeploymentStore(tmp_path, network.name, network.chain_id)
        orchestrator = Orchestrator(get_profile(profile).steps(), self.registry, store_factory, self.submitter)
        return orchestrator, store_factory

    def test_foreign_deployment_on_arbitrum_sepolia(self, tmp_path):
        """Test the foreign proxy gets its 8 constructor arguments in order"""
        orchestrator, stores = self.make(tmp_path)
        store = stores(self.registry.get("arbitrum-sepolia"))
        seed(store, EndpointV2=ENDPOINT, WETH=WETH, klerosCore=KLEROS_CORE,
             disputeTemplateRegistry=TEMPLATE_REGISTRY)

        results = orchestrator.run("arbitrum-sepolia", ["Foreign"])

        assert [r.outcome for r in results] == [Outcome.RECORDED]
        self.submitter.deploy.assert_called_once()
        contract_name, args = self.submitter.deploy.call_args[0]
        assert contract_name == FOREIGN_PROXY
        assert len(args) == 8
        assert args[0] == WETH
        assert args[1] == KLEROS_CORE
        assert "0x" + args[2].hex() == GENERAL_COURT_ONE_JUROR
        assert args[3] == TEMPLATE_REGISTRY
        assert '"arbitratorChainID": "421614"' in args[4]
        assert f'"arbitratorAddress": "{KLEROS_CORE}"' in args[4]
        assert json.loads(args[5])[0]["value"]["realityAddress"] == REALITIO_SEPOLIA
        assert args[6] == 40161  # sepolia eid
        assert args[7] == ENDPOINT

        record = store.get(FOREIGN_PROXY)
        assert record.address == "0x00000000000000000000000000000000000000aa"
        assert len(record.constructor_args) == 8
        assert record.constructor_args[2] == GENERAL_COURT_ONE_JUROR

    def test_home_deployment_on_sepolia(self, tmp_path):
        orchestrator, stores = self.make(tmp_path)
        seed(stores(self.registry.get("sepolia")), EndpointV2=ENDPOINT)

        orchestrator.run("sepolia", ["Home"])

        contract_name, args = self.submitter.deploy.call_args[0]
        assert contract_name == HOME_PROXY
        assert args == [REALITIO_SEPOLIA, "", 40231, ENDPOINT]

    def test_mapping_omitted_when_not_supplied(self, tmp_path):
        orchestrator, stores = self.make(tmp_path, profile="mainnet")
        seed(stores(self.registry.get("arbitrum")), EndpointV2=ENDPOINT, WETH=WETH, klerosCore=KLEROS_CORE,
             disputeTemplateRegistry=TEMPLATE_REGISTRY)

        orchestrator.run("arbitrum", ["Foreign"])

        args = self.submitter.deploy.call_args[0][1]
        assert args[5] == ""
        assert args[6] == 30109  # polygon eid

    def test_rerun_is_idempotent(self, tmp_path):
        """Test a second run submits nothing and keeps the same records"""
        orchestrator, stores = self.make(tmp_path)
        store = stores(self.registry.get("sepolia"))
        seed(store, EndpointV2=ENDPOINT)

        orchestrator.run("sepolia", ["Home", "Foreign"])
        first = [(r.logical_name, r.address) for r in store.records()]
        results = orchestrator.run("sepolia", ["Home", "Foreign"])

        assert self.submitter.deploy.call_count == 1
        assert [r.outcome for r in results] == [Outcome.EXISTING, Outcome.SKIPPED]
        assert [(r.logical_name, r.address) for r in store.records()] == first

    def test_mismatched_network_is_skipped(self, tmp_path):
        orchestrator, stores = self.make(tmp_path)

        results = orchestrator.run("sepolia", ["Foreign"])

        assert [r.outcome for r in results] == [Outcome.SKIPPED]
        self.submitter.deploy.assert_not_called()
        assert stores(self.registry.get("sepolia")).records() == []

    def test_local_network_is_not_bypassed(self, tmp_path):
        orchestrator, _ = self.make(tmp_path)
        results = orchestrator.run("hardhat", ["Home", "Foreign"])
        assert [r.outcome for r in results] == [Outcome.SKIPPED, Outcome.SKIPPED]
        self.submitter.deploy.assert_not_called()

    def test_only_requested_tags_run(self, tmp_path):
        orchestrator, _ = self.make(tmp_path)
        results = orchestrator.run("hardhat", ["Home"])
        assert [r.step.logical_name for r in results] == [HOME_PROXY]

    def test_unknown_active_network(self, tmp_path):
        orchestrator, _ = self.make(tmp_path)
        with pytest.raises(UnknownNetwork):
            orchestrator.run("goerli", ["Home"])

    def test_missing_dependency_aborts_before_submit(self, tmp_path):
        orchestrator, stores = self.make(tmp_path)
        seed(stores(self.registry.get("arbitrum-sepolia")), EndpointV2=ENDPOINT, WETH=WETH)

        with pytest.raises(DependencyNotDeployed, match="klerosCore"):
            orchestrator.run("arbitrum-sepolia", ["Foreign"])
        self.submitter.deploy.assert_not_called()
        assert not stores(self.registry.get("arbitrum-sepolia")).has(FOREIGN_PROXY)

    def test_submit_failure_records_nothing(self, tmp_path):
        orchestrator, stores = self.make(tmp_path)
        store = stores(self.registry.get("sepolia"))
        seed(store, EndpointV2=ENDPOINT)
        self.submitter.deploy.side_effect = SubmitFailure(HOME_PROXY, "nonce too low")

        with pytest.raises(SubmitFailure):
            orchestrator.run("sepolia", ["Home"])
        assert not store.has(HOME_PROXY)

    def test_companion_dependency_resolved_from_companion_store(self, tmp_path):
        """Test a step can depend on a contract recorded on the companion network"""
        def assemble(ctx):
            return [ctx.companion_addresses["Realitio"], ctx.companion.endpoint_id]

        step = DeploymentStep(
            logical_name="CompanionReader",
            network="arbitrum-sepolia",
            companion_role="home",
            assemble=assemble,
            tags=("Foreign",),
            companion_dependencies=("Realitio",),
        )

        def store_factory(network):
            return DeploymentStore(tmp_path, network.name)
        seed(store_factory(self.registry.get("sepolia")), Realitio=REALITIO_SEPOLIA)

        Orchestrator([step], self.registry, store_factory, self.submitter).run("arbitrum-sepolia", ["Foreign"])

        self.submitter.deploy.assert_called_once_with("CompanionReader", [REALITIO_SEPOLIA, 40161])

    def test_rerun_after_failure_resumes_at_failed_step(self, tmp_path):
        """Test a run aborted on its second step keeps the first and only retries the second"""
        first_address = "0x00000000000000000000000000000000000000a1"
        second_address = "0x00000000000000000000000000000000000000a2"
        steps = [
            DeploymentStep(
                logical_name="Registry",
                network="sepolia",
                companion_role="foreign",
                assemble=lambda ctx: [ctx.addresses["EndpointV2"]],
                tags=("Home",),
                dependencies=("EndpointV2",),
            ),
            DeploymentStep(
                logical_name="Consumer",
                network="sepolia",
                companion_role="foreign",
                assemble=lambda ctx: [ctx.addresses["Registry"], ctx.companion.endpoint_id],
                tags=("Home",),
                dependencies=("Registry",),
            ),
        ]

        def store_factory(network):
            return DeploymentStore(tmp_path, network.name, network.chain_id)
        store = store_factory(self.registry.get("sepolia"))
        seed(store, EndpointV2=ENDPOINT)
        orchestrator = Orchestrator(steps, self.registry, store_factory, self.submitter)

        self.submitter.deploy.side_effect = [
            (first_address, "0x" + "01" * 32),
            SubmitFailure("Consumer", "transaction reverted"),
        ]
        with pytest.raises(SubmitFailure):
            orchestrator.run("sepolia", ["Home"])
        assert store.resolve("Registry") == first_address
        assert not store.has("Consumer")

        self.submitter.deploy.reset_mock(side_effect=True)
        self.submitter.deploy.return_value = (second_address, "0x" + "02" * 32)
        results = orchestrator.run("sepolia", ["Home"])

        assert [result.outcome for result in results] == [Outcome.EXISTING, Outcome.RECORDED]
        self.submitter.deploy.assert_called_once_with("Consumer", [first_address, 40231])
        assert store.resolve("Consumer") == second_address
