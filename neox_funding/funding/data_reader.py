"""
Read funding targets from the CSV file and the wallet directory.

CSV format: one ``address,amountWei`` pair per line, no header. Wallet
files: ``*.json`` objects with an ``address`` field, each funded with a
fixed amount.

Nothing in here is fatal: missing inputs and malformed records are logged
and dropped.
"""
from __future__ import annotations

import logging
from pathlib import Path

from web3 import Web3

from ..helpers.address_utils import normalize
from ..helpers.file_utils import list_directory, read_json, read_text
from .models import CSV_SOURCE, FundingData, FundingEntry

logger = logging.getLogger(__name__)


def _parse_amount(raw: str) -> int | None:
    # plain decimal digits only; int() would also take "1_000" and "+5"
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def read_csv(csv_path: Path) -> list[FundingEntry]:
    logger.info(f"Reading CSV from: {csv_path}")
    if not Path(csv_path).exists():
        logger.info("CSV funding file not found")
        return []

    try:
        content = read_text(csv_path, "CSV funding file")
    except (OSError, UnicodeDecodeError):
        return []

    entries: list[FundingEntry] = []
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = [p.strip() for p in line.split(",")]
        address = parts[0]
        amount_str = parts[1] if len(parts) > 1 else ""
        if not address or not amount_str:
            continue

        normalized = normalize(address)
        if normalized is None:
            logger.warning(f"Invalid address format: {address}, skipping...")
            continue

        amount_wei = _parse_amount(amount_str)
        if amount_wei is None:
            logger.warning(f"Invalid amount for {address}: {amount_str}, skipping...")
            continue

        entries.append(FundingEntry(address=normalized, amount_wei=amount_wei, source=CSV_SOURCE))

    return entries


def read_wallet_files(wallets_dir: Path, amount_wei: int) -> list[FundingEntry]:
    logger.info(f"Reading wallet addresses from: {wallets_dir}")
    if not Path(wallets_dir).is_dir():
        logger.warning(f"Neox wallets directory does not exist: {wallets_dir}")
        return []

    entries: list[FundingEntry] = []
    for path in list_directory(wallets_dir, lambda p: p.suffix == ".json"):
        try:
            wallet_json = read_json(path, f"wallet file {path.name}")
        except (OSError, ValueError):
            # unreadable, badly encoded or not JSON
            continue

        raw_address = wallet_json.get("address") if isinstance(wallet_json, dict) else None
        if not raw_address:
            logger.warning(f"   No address field found in {path.name}")
            continue

        normalized = normalize(str(raw_address))
        if normalized is None:
            logger.warning(f"   Invalid address in {path.name}: {raw_address}")
            continue

        entries.append(FundingEntry(address=normalized, amount_wei=amount_wei, source=path.name))
        logger.info(f"   Found address in {path.name}: {normalized}")

    logger.info(
        f"Found {len(entries)} wallet addresses to fund with {Web3.from_wei(amount_wei, 'ether')} ETH each"
    )
    return entries


def read_all(csv_path: Path, wallets_dir: Path, wallet_amount_wei: int) -> FundingData:
    """CSV entries first, then wallet-file entries."""
    data = FundingData(
        csv_data=tuple(read_csv(csv_path)),
        wallet_data=tuple(read_wallet_files(wallets_dir, wallet_amount_wei)),
    )

    logger.info("Funding Data Summary:")
    logger.info(f"   CSV addresses: {len(data.csv_data)}")
    logger.info(f"   Wallet addresses: {len(data.wallet_data)}")
    logger.info(f"   Total addresses: {len(data.all_data)}")
    return data
