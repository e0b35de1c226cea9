"""Single-transaction submit and verify helpers."""
from neox_funding.helpers.transactions import (
    send_and_wait,
    send_transaction,
    wait_and_verify,
    wait_for_transaction,
)
from neox_funding.setup.wallet_manager import FundingWallet

from conftest import ADDR_A, ETHER


def test_send_transaction_uses_gas_config_and_pending_nonce(w3, sender, gas):
    w3.eth.nonces[sender.address] = 7

    result = send_transaction(sender, {"to": ADDR_A, "value": 5 * ETHER}, gas)

    assert result.success
    assert result.tx_hash.startswith("0x")
    tx = w3.eth.sent[-1]
    assert tx["nonce"] == 7
    assert tx["chainId"] == 1337
    assert tx["gas"] == 21000
    assert tx["maxFeePerGas"] == gas.max_fee_per_gas_wei
    assert tx["maxPriorityFeePerGas"] == gas.priority_fee_per_gas_wei
    assert tx["value"] == 5 * ETHER


def test_send_failure_is_a_result_not_an_exception(w3, sender, gas):
    w3.eth.send_errors.add(ADDR_A)
    result = send_transaction(sender, {"to": ADDR_A, "value": 1}, gas)
    assert not result.success
    assert "nonce too low" in result.error


def test_unconnected_wallet_fails_to_send(sender, gas):
    detached = FundingWallet(sender.account)
    result = send_transaction(detached, {"to": ADDR_A, "value": 1}, gas)
    assert not result.success
    assert "not connected" in result.error


def test_wait_for_transaction_statuses(w3, sender, gas):
    ok = send_transaction(sender, {"to": ADDR_A, "value": 1}, gas)
    assert wait_for_transaction(w3, ok.tx_hash).success

    w3.eth.revert_to.add(ADDR_A)
    reverted = send_transaction(sender, {"to": ADDR_A, "value": 1}, gas)
    result = wait_for_transaction(w3, reverted.tx_hash)
    assert not result.success
    assert result.receipt["status"] == 0


def test_wait_timeout_and_unknown_hash(w3, sender, gas):
    w3.eth.timeout_to.add(ADDR_A)
    sent = send_transaction(sender, {"to": ADDR_A, "value": 1}, gas)

    timed_out = wait_and_verify(w3, sent.tx_hash, ADDR_A, timeout=1)
    assert not timed_out.success
    assert "timeout" in timed_out.error

    unknown = wait_for_transaction(w3, "0x" + "00" * 32)
    assert not unknown.success


def test_send_and_wait_transfers_value(w3, sender, gas):
    result = send_and_wait(sender, {"to": ADDR_A, "value": 2 * ETHER}, gas)
    assert result.success
    assert result.receipt["status"] == 1
    assert w3.eth.balances[ADDR_A] == 2 * ETHER
