#!/usr/bin/env python3
"""
Tests for the network registry
"""

import pytest

from deployment.errors import UnknownNetwork
from deployment.networks import FOREIGN, HOME, NetworkDescriptor, NetworkRegistry
from deployment.skip import should_skip


class TestResolveCompanion:
    """Test class for companion lookups"""

    def setup_method(self):
        self.registry = NetworkRegistry()

    def test_sepolia_pairs_with_arbitrum_sepolia(self):
        """Test the testnet pair resolves both ways"""
        foreign = self.registry.resolve_companion("sepolia")
        assert foreign.name == "arbitrum-sepolia"
        assert foreign.endpoint_id == 40231

        home = self.registry.resolve_companion("arbitrum-sepolia")
        assert home.name == "sepolia"
        assert home.endpoint_id == 40161

    def test_every_companion_is_registered_and_paired_back(self):
        """Test companions are symmetric for all deployable networks"""
        for network in self.registry:
            if not network.companions:
                continue
            companion = self.registry.resolve_companion(network.name)
            assert companion.name in self.registry
            assert self.registry.resolve_companion(companion.name).name == network.name

    def test_role_lookup(self):
        """Test resolving by explicit role"""
        assert self.registry.resolve_companion("sepolia", FOREIGN).name == "arbitrum-sepolia"
        with pytest.raises(UnknownNetwork, match="no home companion"):
            self.registry.resolve_companion("sepolia", HOME)

    def test_unknown_network(self):
        """Test an unregistered name fails"""
        with pytest.raises(UnknownNetwork, match="not registered"):
            self.registry.resolve_companion("goerli")

    def test_local_network_has_no_companion(self):
        """Test the local node cannot be a deployment target"""
        with pytest.raises(UnknownNetwork, match="no companion"):
            self.registry.resolve_companion("hardhat")

    def test_rpc_url_env_name(self):
        """Test the RPC override variable name"""
        assert self.registry.get("arbitrum-sepolia").rpc_url_env == "RPC_URL_ARBITRUM_SEPOLIA"


class TestRegistryValidation:
    """Test class for registry construction"""

    def test_unregistered_companion_rejected(self):
        with pytest.raises(ValueError, match="unregistered"):
            NetworkRegistry([
                NetworkDescriptor(name="a", chain_id=1, endpoint_id=1, companions={FOREIGN: "b"}),
            ])

    def test_duplicate_network_rejected(self):
        network = NetworkDescriptor(name="a", chain_id=1)
        with pytest.raises(ValueError, match="twice"):
            NetworkRegistry([network, network])

    def test_two_companions_rejected(self):
        with pytest.raises(ValueError, match="more than one"):
            NetworkRegistry([
                NetworkDescriptor(name="a", chain_id=1, endpoint_id=1, companions={FOREIGN: "b", HOME: "b"}),
                NetworkDescriptor(name="b", chain_id=2, endpoint_id=2),
            ])


class TestShouldSkip:
    """Test class for the skip predicate"""

    @pytest.mark.parametrize("name", ["sepolia", "arbitrum-sepolia", "hardhat", ""])
    def test_same_network_runs(self, name):
        assert should_skip(name, name) is False

    @pytest.mark.parametrize("current,expected", [
        ("sepolia", "arbitrum-sepolia"),
        ("hardhat", "sepolia"),
        ("arbitrum", "polygon"),
    ])
    def test_other_network_skips(self, current, expected):
        assert should_skip(current, expected) is True

    def test_mismatch_is_logged(self, caplog):
        """Test the mismatch names the active network"""
        with caplog.at_level("ERROR"):
            should_skip("hardhat", "sepolia")
        assert "incompatible network hardhat" in caplog.text
        assert "expected sepolia" in caplog.text
