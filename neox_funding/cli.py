#!/usr/bin/env python3
"""
Command line entry point.

Usage
  neox-funding accounts [--env-file .env] [--csv neox-funding.csv] [--wallets-dir neox-wallets]
                        [--dry-run] [--report build/funding.json] [--bump-relayer]
  neox-funding bridge   [--env-file .env] [--addresses-file ../addresses/neox-addresses.json] [--no-wait]
  neox-funding relayer  [--env-file .env]
  neox-funding neo-bridge-info [--env-file .env] [--contract-hash 0x...] [--nonce 1]

Exit codes
  0  every transfer confirmed or was already funded
  1  a fatal precondition failed or at least one transfer failed
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config.logging_config import get_command_logger
from .config.settings import BridgeConfig, FundingConfig, NeoBridgeConfig, load_env
from .errors import FundingError
from .funding.account_funder import fund_accounts, send_relayer_transaction
from .funding.bridge_funder import fund_bridges, wait_for_deployment_and_fund
from .helpers.web3_setup import get_web3_instance, wait_for_node_ready
from .neo.message_bridge import MessageBridgeReader, collect_bridge_info
from .neo.rpc import NeoRpcClient

logger = logging.getLogger(__name__)


def _funding_config(args: argparse.Namespace) -> FundingConfig:
    config = FundingConfig.from_env()
    overrides = {}
    if args.rpc_url:
        overrides["rpc_url"] = args.rpc_url
    if args.csv:
        overrides["funding_csv"] = Path(args.csv)
    if args.wallets_dir:
        overrides["wallets_dir"] = Path(args.wallets_dir)
    if args.keystore:
        overrides["keystore_path"] = Path(args.keystore)
    if args.keystore_pass is not None:
        overrides["keystore_password"] = args.keystore_pass
    if args.sender:
        overrides["sender_address"] = args.sender
    return replace(config, **overrides) if overrides else config


def _bridge_config(args: argparse.Namespace) -> BridgeConfig:
    config = BridgeConfig.from_env()
    overrides = {}
    if args.rpc_url:
        overrides["rpc_url"] = args.rpc_url
    if args.addresses_file:
        overrides["addresses_file"] = Path(args.addresses_file)
    if args.wallets_dir:
        overrides["wallets_dir"] = Path(args.wallets_dir)
    if args.max_wait is not None:
        overrides["max_wait"] = args.max_wait
    if args.settle_delay is not None:
        overrides["settle_delay"] = args.settle_delay
    return replace(config, **overrides) if overrides else config


def cmd_accounts(args: argparse.Namespace) -> int:
    config = _funding_config(args)
    result = fund_accounts(
        config,
        dry_run=args.dry_run,
        report_path=Path(args.report) if args.report else None,
        bump_relayer=args.bump_relayer,
    )
    if result.error is not None:
        logger.error(f"Funding aborted: {result.error}")
    return result.exit_code


def cmd_bridge(args: argparse.Namespace) -> int:
    config = _bridge_config(args)
    w3 = get_web3_instance(config.rpc_url)
    wait_for_node_ready(w3, config.node_ready_retries, config.node_ready_interval)
    if args.no_wait:
        ok = fund_bridges(w3, config)
    else:
        ok = wait_for_deployment_and_fund(w3, config)
    return 0 if ok else 1


def cmd_relayer(args: argparse.Namespace) -> int:
    config = _funding_config(args)
    w3 = get_web3_instance(config.rpc_url)
    wait_for_node_ready(w3, config.node_ready_retries, config.node_ready_interval)
    ok = send_relayer_transaction(w3, config.wallets_dir, config.gas, config.confirmation_timeout)
    return 0 if ok else 1


def cmd_neo_bridge_info(args: argparse.Namespace) -> int:
    config = NeoBridgeConfig.from_env()
    overrides = {}
    if args.neo_rpc_url:
        overrides["rpc_url"] = args.neo_rpc_url
    if args.contract_hash:
        overrides["contract_hash"] = args.contract_hash
    if args.nonce is not None:
        overrides["message_nonce"] = args.nonce
    config = replace(config, **overrides).require()

    client = NeoRpcClient(config.rpc_url, timeout=config.request_timeout)
    version = client.get_version() or {}
    network = (version.get("protocol") or {}).get("network")
    logger.info(f"Neo node {config.rpc_url} (network magic {network})")
    collect_bridge_info(MessageBridgeReader(client, config.contract_hash), config.message_nonce)
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--env-file", default=None, help="Path to .env file to load on top of ./.env")
    p.add_argument("--rpc-url", default=None, help="neox RPC URL (overrides NEOX_RPC_URL)")
    p.add_argument("--wallets-dir", default=None, help="Directory of wallet JSON files (overrides NEOX_WALLETS_DIR)")
    p.add_argument("--debug", action="store_true", help="Verbose logging")
    p.add_argument("--log-dir", default=None, help="Directory for log files (overrides LOG_DIR)")
    p.add_argument("--no-log-file", action="store_true", help="Log to the console only")


def _add_sender(p: argparse.ArgumentParser) -> None:
    p.add_argument("--keystore", default=None, help="Sender keystore path (overrides SENDER_KEYSTORE_PATH)")
    p.add_argument("--keystore-pass", default=None, help="Sender keystore password")
    p.add_argument("--sender", default=None, help="Expected sender address (overrides SENDER_ADDRESS)")
    p.add_argument("--csv", default=None, help="Funding CSV file (overrides FUNDING_CSV)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="neox-funding", description="Fund neox test accounts and bridge contracts")
    sub = parser.add_subparsers(dest="command", required=True)

    p_accounts = sub.add_parser("accounts", help="Fund addresses from the CSV file and wallet directory")
    _add_common(p_accounts)
    _add_sender(p_accounts)
    p_accounts.add_argument("--dry-run", action="store_true", help="Check balances and log the plan without sending")
    p_accounts.add_argument("--report", default=None, help="Write a JSON report of the run to this path")
    p_accounts.add_argument("--bump-relayer", action="store_true", help="Send a self-transfer from the relayer wallet afterwards")
    p_accounts.set_defaults(func=cmd_accounts)

    p_bridge = sub.add_parser("bridge", help="Wait for bridge deployment and fund the bridge contracts")
    _add_common(p_bridge)
    p_bridge.add_argument("--addresses-file", default=None, help="Deployed contract addresses JSON (overrides ADDRESSES_FILE)")
    p_bridge.add_argument("--no-wait", action="store_true", help="Fund immediately instead of polling for deployment")
    p_bridge.add_argument("--max-wait", type=float, default=None, help="Seconds to wait for the deployment file")
    p_bridge.add_argument("--settle-delay", type=float, default=None, help="Seconds to wait after deployment is complete")
    p_bridge.set_defaults(func=cmd_bridge)

    p_relayer = sub.add_parser("relayer", help="Send a self-transfer from the relayer wallet to bump its nonce")
    _add_common(p_relayer)
    _add_sender(p_relayer)
    p_relayer.set_defaults(func=cmd_relayer)

    p_neo = sub.add_parser("neo-bridge-info", help="Read the Neo N3 message bridge state (no transactions)")
    p_neo.add_argument("--env-file", default=None, help="Path to .env file to load on top of ./.env")
    p_neo.add_argument("--neo-rpc-url", default=None, help="Neo N3 RPC URL (overrides NEO_NODE_URL)")
    p_neo.add_argument("--contract-hash", default=None, help="Message bridge hash (overrides MESSAGE_BRIDGE_CONTRACT_HASH)")
    p_neo.add_argument("--nonce", type=int, default=None, help="Also look up this message nonce (overrides MESSAGE_NONCE)")
    p_neo.add_argument("--debug", action="store_true", help="Verbose logging")
    p_neo.add_argument("--log-dir", default=None, help="Directory for log files (overrides LOG_DIR)")
    p_neo.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    p_neo.set_defaults(func=cmd_neo_bridge_info)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        load_env(args.env_file)
    except FundingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    get_command_logger(
        args.command,
        debug=args.debug,
        log_dir=Path(args.log_dir) if args.log_dir else None,
        file_logging=not args.no_log_file,
    )

    try:
        return args.func(args)
    except FundingError as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 1


if __name__ == "__main__":
    sys.exit(main())
