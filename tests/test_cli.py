"""Command line wiring and exit codes."""
from pathlib import Path

import pytest

from neox_funding import cli
from neox_funding.errors import EmptyFundingDataError, NodeNotReadyError
from neox_funding.funding.models import FundingSummary, RunResult


@pytest.fixture(autouse=True)
def in_tmp(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)


def _capture_accounts(monkeypatch, result):
    calls = []

    def fake_fund_accounts(config, **kwargs):
        calls.append((config, kwargs))
        return result

    monkeypatch.setattr(cli, "fund_accounts", fake_fund_accounts)
    return calls


def test_accounts_success_exit_code(monkeypatch):
    calls = _capture_accounts(monkeypatch, RunResult(summary=FundingSummary(total=1, confirmed=1)))

    code = cli.main(
        ["accounts", "--no-log-file", "--csv", "batch.csv", "--keystore-pass", "", "--dry-run", "--report", "r.json"]
    )

    assert code == 0
    config, kwargs = calls[0]
    assert config.funding_csv == Path("batch.csv")
    assert config.keystore_password == ""
    assert kwargs == {"dry_run": True, "report_path": Path("r.json"), "bump_relayer": False}


def test_accounts_failure_exit_codes(monkeypatch):
    _capture_accounts(monkeypatch, RunResult(summary=FundingSummary(total=2, confirmed=1, failed_to_confirm=1)))
    assert cli.main(["accounts", "--no-log-file"]) == 1

    _capture_accounts(monkeypatch, RunResult(error=EmptyFundingDataError("No funding data found")))
    assert cli.main(["accounts", "--no-log-file"]) == 1


def test_missing_env_file_exits_one(capsys):
    assert cli.main(["accounts", "--no-log-file", "--env-file", "missing.env"]) == 1
    assert "env file not found" in capsys.readouterr().err


def test_fatal_errors_map_to_exit_one(monkeypatch):
    def not_ready(*args, **kwargs):
        raise NodeNotReadyError("Node did not become ready")

    monkeypatch.setattr(cli, "wait_for_node_ready", not_ready)
    assert cli.main(["relayer", "--no-log-file", "--rpc-url", "http://127.0.0.1:1"]) == 1


def test_bridge_no_wait_funds_immediately(monkeypatch, tmp_path):
    seen = []
    monkeypatch.setattr(cli, "wait_for_node_ready", lambda w3, *args: 1)
    monkeypatch.setattr(cli, "fund_bridges", lambda w3, config: seen.append(config) or True)
    monkeypatch.setattr(cli, "wait_for_deployment_and_fund", lambda w3, config: pytest.fail("polled"))

    code = cli.main(["bridge", "--no-log-file", "--no-wait", "--addresses-file", "addr.json"])

    assert code == 0
    assert seen[0].addresses_file == Path("addr.json")


def test_bridge_wait_timeout_exits_one(monkeypatch):
    monkeypatch.setattr(cli, "wait_for_node_ready", lambda w3, *args: 1)
    monkeypatch.setattr(cli, "wait_for_deployment_and_fund", lambda w3, config: False)

    assert cli.main(["bridge", "--no-log-file", "--max-wait", "1"]) == 1


def test_bridge_passes_node_ready_settings(monkeypatch):
    monkeypatch.setenv("NODE_READY_RETRIES", "4")
    monkeypatch.setenv("NODE_READY_INTERVAL", "0.25")
    waits = []
    monkeypatch.setattr(cli, "wait_for_node_ready", lambda w3, *args: waits.append(args) or 1)
    monkeypatch.setattr(cli, "fund_bridges", lambda w3, config: True)

    assert cli.main(["bridge", "--no-log-file", "--no-wait"]) == 0
    assert waits == [(4, 0.25)]


def test_neo_bridge_info_requires_contract_hash(monkeypatch):
    monkeypatch.delenv("MESSAGE_BRIDGE_CONTRACT_HASH", raising=False)
    monkeypatch.setattr(cli, "NeoRpcClient", lambda *args, **kwargs: pytest.fail("connected"))

    assert cli.main(["neo-bridge-info", "--no-log-file", "--neo-rpc-url", "http://neo:40332"]) == 1


def test_neo_bridge_info_reads_contract(monkeypatch):
    class FakeClient:
        def __init__(self, rpc_url, timeout):
            self.rpc_url = rpc_url

        def get_version(self):
            return {"protocol": {"network": 860833102}}

    seen = []
    monkeypatch.setattr(cli, "NeoRpcClient", FakeClient)
    monkeypatch.setattr(cli, "collect_bridge_info", lambda reader, nonce: seen.append((reader, nonce)) or {})

    code = cli.main(
        [
            "neo-bridge-info",
            "--no-log-file",
            "--neo-rpc-url",
            "http://neo:40332",
            "--contract-hash",
            "AB" * 20,
            "--nonce",
            "3",
        ]
    )

    assert code == 0
    reader, nonce = seen[0]
    assert reader.contract_hash == "0x" + "ab" * 20
    assert reader.client.rpc_url == "http://neo:40332"
    assert nonce == 3
