"""
Test suite for configuration and the command-line parser.
"""

import pytest
from pydantic import ValidationError

from txengine.cli import build_config, create_parser
from txengine.config import EngineConfig, NetworkType
from txengine.core.options import LEGACY, Commitment, NoComputeBudget


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run without any TXENGINE_ variables or .env file from the host."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "TXENGINE_NETWORK",
        "TXENGINE_RPC_URL",
        "TXENGINE_MAX_SUPPORTED_TRANSACTION_VERSION",
        "TXENGINE_CONFIRMATION_COMMITMENT",
        "TXENGINE_MAX_RETRIES",
        "TXENGINE_WALLET_KEYPAIR_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# Test Engine Config
# ============================================================================

class TestEngineConfig:
    """Tests for settings loading and derived values."""

    def test_defaults(self):
        config = EngineConfig()

        assert config.network == NetworkType.DEVNET
        assert config.endpoint == "https://api.devnet.solana.com"
        assert config.max_supported_transaction_version == 0

    def test_rpc_url_overrides_network(self):
        config = EngineConfig(network=NetworkType.MAINNET, rpc_url="http://my-node:8899")

        assert config.endpoint == "http://my-node:8899"

    def test_network_endpoints(self):
        assert EngineConfig(network=NetworkType.LOCALNET).endpoint == "http://127.0.0.1:8899"
        assert EngineConfig(network="mainnet-beta").endpoint == "https://api.mainnet-beta.solana.com"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("TXENGINE_NETWORK", "testnet")
        monkeypatch.setenv("TXENGINE_CONFIRMATION_COMMITMENT", "finalized")
        monkeypatch.setenv("TXENGINE_MAX_RETRIES", "0")

        config = EngineConfig()

        assert config.network == NetworkType.TESTNET
        assert config.confirmation_commitment == Commitment.FINALIZED
        assert config.max_retries == 0

    def test_legacy_version_from_environment(self, monkeypatch):
        monkeypatch.setenv("TXENGINE_MAX_SUPPORTED_TRANSACTION_VERSION", "legacy")

        assert EngineConfig().max_supported_transaction_version == LEGACY

    def test_numeric_version_from_environment(self, monkeypatch):
        monkeypatch.setenv("TXENGINE_MAX_SUPPORTED_TRANSACTION_VERSION", "0")

        assert EngineConfig().max_supported_transaction_version == 0

    def test_config_is_frozen(self):
        config = EngineConfig()

        with pytest.raises(ValidationError):
            config.max_retries = 5

    def test_invalid_poll_interval(self):
        with pytest.raises(ValidationError):
            EngineConfig(confirm_poll_interval_seconds=0)

    def test_to_builder_options(self):
        config = EngineConfig(
            blockhash_commitment=Commitment.FINALIZED,
            max_supported_transaction_version=LEGACY,
            skip_preflight=True,
            preflight_commitment=Commitment.PROCESSED,
            max_retries=1,
            confirmation_commitment=Commitment.FINALIZED,
        )

        options = config.to_builder_options()

        build = options.default_build_option
        assert build.blockhash_commitment == Commitment.FINALIZED
        assert build.is_legacy is True
        assert isinstance(build.compute_budget_option, NoComputeBudget)
        assert build.latest_blockhash is None

        send = options.default_send_option
        assert send.skip_preflight is True
        assert send.preflight_commitment == Commitment.PROCESSED
        assert send.max_retries == 1
        assert options.default_confirmation_commitment == Commitment.FINALIZED


# ============================================================================
# Test CLI
# ============================================================================

class TestCli:
    """Tests for argument parsing and config overrides."""

    def test_transfer_arguments(self):
        parser = create_parser()

        args = parser.parse_args([
            "transfer", "--to", "11111111111111111111111111111111",
            "--lamports", "5000", "--auto-fee", "--legacy", "--dry-run",
        ])

        assert args.command == "transfer"
        assert args.lamports == 5000
        assert args.auto_fee is True
        assert args.legacy is True
        assert args.priority_fee is None

    def test_fee_flags_are_exclusive(self):
        parser = create_parser()

        with pytest.raises(SystemExit):
            parser.parse_args([
                "transfer", "--to", "x", "--lamports", "1",
                "--auto-fee", "--priority-fee", "10",
            ])

    def test_fees_accounts_repeatable(self):
        args = create_parser().parse_args(["fees", "--account", "a", "--account", "b"])

        assert args.account == ["a", "b"]
        assert args.percentile == 0.9

    def test_build_config_applies_overrides(self):
        args = create_parser().parse_args([
            "transfer", "--to", "x", "--lamports", "1",
            "--network", "localnet", "--keypair", "/tmp/id.json",
        ])

        config = build_config(args)

        assert config.network == NetworkType.LOCALNET
        assert config.wallet_keypair_path == "/tmp/id.json"

    def test_build_config_rpc_url(self):
        args = create_parser().parse_args(["blockhash", "--rpc-url", "http://node.test"])

        assert build_config(args).endpoint == "http://node.test"
