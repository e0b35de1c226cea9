#!/usr/bin/env python3
"""
Batch funding of neox accounts.

Each run re-reads the funding targets and re-checks on-chain balances, so
rerunning after a partial failure only sends to addresses that are still
under-funded.

Phase 1 submits one transfer per under-funded address without waiting for
receipts; phase 2 then waits for every submitted transfer. An entry moves
PENDING -> SKIPPED, or PENDING -> SENT -> CONFIRMED | FAILED, or
PENDING -> FAILED when the balance query or the submission fails.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from web3 import Web3

from ..config.gas import GasConfig
from ..config.settings import RELAYER_BUMP_ETH, FundingConfig, parse_ether
from ..errors import EmptyFundingDataError, FundingError, InsufficientBalanceError, RpcError
from ..helpers.file_utils import write_json_atomic
from ..helpers.transactions import send_and_wait, send_transaction, wait_and_verify
from ..helpers.web3_setup import RPC_ERRORS, check_chain_id, get_web3_instance, wait_for_node_ready
from ..setup.wallet_manager import FundingWallet, load_from_keystore, load_named_wallet, validate_wallet
from .data_reader import read_all
from .models import (
    EntryOutcome,
    EntryStatus,
    FundingEntry,
    FundingSummary,
    PendingTransaction,
    RunResult,
)

logger = logging.getLogger(__name__)


def _eth(value: int) -> str:
    return f"{Web3.from_wei(value, 'ether')} ETH"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def setup_and_validate_wallet(w3: Web3, config: FundingConfig) -> FundingWallet:
    logger.info("Loading sender account...")
    wallet = load_from_keystore(
        config.keystore_path,
        config.keystore_password,
        w3,
        password_file=config.password_file,
    )
    logger.info(f"   Sender address: {wallet.address}")
    validate_wallet(wallet, config.sender_address)
    return wallet


def validate_funding_data(entries: Sequence[FundingEntry]) -> None:
    if not entries:
        raise EmptyFundingDataError("No valid funding data found from CSV or wallet files")


def calculate_requirements(entries: Sequence[FundingEntry], gas: GasConfig) -> tuple[int, int]:
    """Return (total amount, upper-bound gas cost) for funding every entry."""
    total_amount = 0
    for entry in entries:
        logger.info(f"   {entry.address}: {_eth(entry.amount_wei)} {entry.source_label}")
        total_amount += entry.amount_wei

    estimated_gas_cost = gas.max_gas_cost_wei(len(entries))
    return total_amount, estimated_gas_cost


def validate_sufficient_balance(sender_balance: int, total_amount: int, estimated_gas_cost: int) -> None:
    total_needed = total_amount + estimated_gas_cost
    logger.info(f"Total amount to transfer: {_eth(total_amount)}")
    logger.info(f"Estimated gas cost: {_eth(estimated_gas_cost)}")
    logger.info(f"Total needed: {_eth(total_needed)}")

    if sender_balance < total_needed:
        raise InsufficientBalanceError(
            f"Insufficient balance. Need {_eth(total_needed)}, have {_eth(sender_balance)}"
        )
    logger.info("Sufficient balance available")


def send_funding_transactions(
    w3: Web3,
    wallet: FundingWallet,
    entries: Sequence[FundingEntry],
    gas: GasConfig,
    delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    dry_run: bool = False,
) -> tuple[list[PendingTransaction], FundingSummary]:
    """Phase 1: skip funded addresses and submit transfers to the rest."""
    logger.info("Phase 1: Checking balances and sending transactions...")

    summary = FundingSummary(total=len(entries))
    pending: list[PendingTransaction] = []
    count = len(entries)

    for i, entry in enumerate(entries):
        index = i + 1
        outcome = EntryOutcome(index=index, address=entry.address, amount_wei=entry.amount_wei, source=entry.source)
        summary.outcomes.append(outcome)
        logger.info(f"[{index}/{count}] Processing {entry.address}{entry.source_label}...")

        try:
            current_balance = int(w3.eth.get_balance(entry.address))
        except Exception as e:
            logger.error(f"   Error fetching balance for {entry.address}: {e}")
            outcome.status = EntryStatus.FAILED
            outcome.error = f"balance query failed: {e}"
            summary.failed_to_send += 1
            continue

        outcome.balance_before_wei = current_balance
        if current_balance >= entry.amount_wei:
            logger.info(
                f"   Skipping: Address already has {_eth(current_balance)} "
                f"(required: {_eth(entry.amount_wei)})"
            )
            outcome.status = EntryStatus.SKIPPED
            summary.skipped += 1
            continue

        if dry_run:
            logger.info(f"   Would send {_eth(entry.amount_wei)} (dry run)")
            outcome.status = EntryStatus.PLANNED
            summary.planned += 1
            continue

        result = send_transaction(wallet, {"to": entry.address, "value": entry.amount_wei}, gas)
        if result.success:
            outcome.status = EntryStatus.SENT
            outcome.tx_hash = result.tx_hash
            summary.sent += 1
            pending.append(
                PendingTransaction(
                    tx_hash=result.tx_hash,
                    address=entry.address,
                    amount_wei=entry.amount_wei,
                    source_label=entry.source_label,
                    index=index,
                )
            )
        else:
            outcome.status = EntryStatus.FAILED
            outcome.error = result.error
            summary.failed_to_send += 1

        if index < count:
            sleep(delay)

    logger.info("Phase 1 Summary:")
    logger.info(f"   Transactions sent: {summary.sent}")
    logger.info(f"   Addresses skipped (already funded): {summary.skipped}")
    if dry_run:
        logger.info(f"   Planned (dry run): {summary.planned}")
    logger.info(f"   Failed to send: {summary.failed_to_send}")
    return pending, summary


def verify_transactions(
    w3: Web3,
    pending: Sequence[PendingTransaction],
    summary: FundingSummary,
    timeout: float = 60,
) -> FundingSummary:
    """Phase 2: wait for each submitted transfer and record the result."""
    logger.info("Phase 2: Verifying transaction confirmations...")
    outcomes = {o.index: o for o in summary.outcomes}

    for i, tx in enumerate(pending, start=1):
        logger.info(
            f"[{i}/{len(pending)}] Verifying {tx.address}{tx.source_label} (tx: {tx.tx_hash})..."
        )
        result = wait_and_verify(w3, tx.tx_hash, tx.address, timeout)
        outcome = outcomes.get(tx.index)
        if result.success:
            summary.confirmed += 1
            if outcome is not None:
                outcome.status = EntryStatus.CONFIRMED
        else:
            summary.failed_to_confirm += 1
            if outcome is not None:
                outcome.status = EntryStatus.FAILED
                outcome.error = result.error

    return summary


def send_relayer_transaction(w3: Web3, wallets_dir: Path, gas: GasConfig, timeout: float = 60) -> bool:
    """Send a tiny self-transfer from the ``relayer`` wallet to move its nonce off zero.

    Best-effort: failures are logged and reported as False.
    """
    logger.info("Sending small transaction from relayer wallet to itself to increase nonce...")
    try:
        relayer = load_named_wallet("relayer", wallets_dir, w3)
    except FundingError as e:
        logger.error(f"Failed to load relayer wallet: {e}")
        return False

    result = send_and_wait(relayer, {"to": relayer.address, "value": parse_ether(RELAYER_BUMP_ETH)}, gas, timeout)
    if not result.success:
        logger.error(f"Failed to send relayer transaction: {result.error}")
        return False

    try:
        nonce = w3.eth.get_transaction_count(relayer.address)
    except RPC_ERRORS as e:
        logger.error(f"Failed to read relayer nonce: {e}")
        return False
    logger.info(f"   Relayer wallet nonce after transaction: {nonce}")
    return True


def write_report(path: Path, sender: str, summary: FundingSummary, dry_run: bool) -> None:
    payload = {
        "generated_at": _utc_now_iso(),
        "sender": sender,
        "dry_run": dry_run,
        "summary": summary.to_dict(),
        "results": [o.to_dict() for o in summary.outcomes],
    }
    write_json_atomic(path, payload)
    logger.info(f"Funding report written to: {path}")


def log_summary(summary: FundingSummary) -> None:
    logger.info("=" * 60)
    logger.info("Transfer Summary:")
    logger.info(
        f"Successful transfers: {summary.successful} "
        f"(confirmed {summary.confirmed}, skipped {summary.skipped}, planned {summary.planned})"
    )
    logger.info(f"Failed transfers: {summary.failed}")
    logger.info(f"Total addresses processed: {summary.total}")


def fund_accounts(
    config: FundingConfig,
    *,
    w3: Web3 | None = None,
    wallet: FundingWallet | None = None,
    dry_run: bool = False,
    report_path: Path | None = None,
    bump_relayer: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Run the whole funding workflow.

    Fatal preconditions come back as ``RunResult(error=...)``; per-entry
    failures are counted in the summary.
    """
    logger.info("Starting ETH funding for neox addresses")
    logger.info("=" * 60)

    try:
        if w3 is None:
            w3 = get_web3_instance(config.rpc_url)
        wait_for_node_ready(w3, config.node_ready_retries, config.node_ready_interval, sleep)
        check_chain_id(w3, config.chain_id)

        if wallet is None:
            wallet = setup_and_validate_wallet(w3, config)
        else:
            wallet = wallet.connect(w3)
            validate_wallet(wallet, config.sender_address)
        sender_balance = int(w3.eth.get_balance(wallet.address))
        logger.info(f"   Sender balance: {_eth(sender_balance)} ({sender_balance} wei)")

        logger.info("Reading funding data...")
        data = read_all(config.funding_csv, config.wallets_dir, config.wallet_funding_wei)
        entries = data.all_data
        validate_funding_data(entries)

        total_amount, estimated_gas_cost = calculate_requirements(entries, config.gas)
        try:
            validate_sufficient_balance(sender_balance, total_amount, estimated_gas_cost)
        except InsufficientBalanceError as e:
            if not dry_run:
                raise
            logger.warning(f"{e} (dry run, continuing)")
    except FundingError as e:
        logger.error(str(e))
        return RunResult(error=e)
    except RPC_ERRORS as e:
        error = RpcError(f"Node request failed: {e}")
        logger.error(str(error))
        return RunResult(error=error)

    pending, summary = send_funding_transactions(
        w3, wallet, entries, config.gas, config.send_delay, sleep, dry_run=dry_run
    )
    verify_transactions(w3, pending, summary, config.confirmation_timeout)
    log_summary(summary)

    if bump_relayer and not dry_run:
        send_relayer_transaction(w3, config.wallets_dir, config.gas, config.confirmation_timeout)

    try:
        final_balance = int(w3.eth.get_balance(wallet.address))
        logger.info(f"Final sender balance: {_eth(final_balance)}")
    except RPC_ERRORS as e:
        logger.warning(f"Could not read final sender balance: {e}")

    if report_path is not None:
        try:
            write_report(report_path, wallet.address, summary, dry_run)
        except OSError as e:
            logger.error(f"Could not write funding report to {report_path}: {e}")

    if summary.failed == 0:
        logger.info("All transfers completed successfully!")
    else:
        logger.error(f"{summary.failed} transfers failed")
    return RunResult(summary=summary)
