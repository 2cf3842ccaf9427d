#!/usr/bin/env python3
# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
shMON Auto-Staking Bot

Cycles MON -> shMON -> MON through the shMonad staking contract with
configurable amounts and delays.

Usage:
    # Interactive menu (default)
    shmon-bot

    # One-shot commands
    shmon-bot balance
    shmon-bot approve
    shmon-bot deposit 10
    shmon-bot redeem all

    # Headless cycle, Ctrl-C stops after the current operation
    shmon-bot run --deposit 10 --redeem all --after-deposit 180 --after-redeem 360

Configuration:
    PRIVATE_KEY in .env or the environment (never commit it!), or a JSON
    config file passed with --config.
"""

import argparse
import logging
import sys

from .bot_types import REDEEM_ALL
from .chain_client import StakingClient
from .config import NETWORKS, ConfigError, Settings, load_dotenv_file, load_settings
from .cycle import CountdownTimer, CycleController
from .menu import OperatorMenu
from .operations import StakingOperations

log = logging.getLogger("shmon_bot")


def setup_logging(debug: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="shMON Auto-Staking Bot")
    parser.add_argument("--config", "-c", help="JSON config file")
    parser.add_argument("--env-file", default=".env", help="Env file to load (default: .env)")
    parser.add_argument("--network", choices=list(NETWORKS.keys()), help="Network to use")
    parser.add_argument("--rpc-url", help="Override the network's RPC endpoint")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("menu", help="Interactive menu (default)")
    subparsers.add_parser("balance", help="Show MON and shMON balances")
    subparsers.add_parser("approve", help="Grant unlimited shMON spending to the staking contract")

    deposit_parser = subparsers.add_parser("deposit", help="Convert MON to shMON once")
    deposit_parser.add_argument("amount", help="MON amount")

    redeem_parser = subparsers.add_parser("redeem", help="Convert shMON to MON once")
    redeem_parser.add_argument("amount", help=f'shMON amount or "{REDEEM_ALL}"')

    run_parser = subparsers.add_parser("run", help="Run the auto-swap cycle without the menu")
    run_parser.add_argument("--deposit", help="MON to convert each cycle")
    run_parser.add_argument("--redeem", help=f'shMON to convert back each cycle, or "{REDEEM_ALL}"')
    run_parser.add_argument("--after-deposit", type=int, help="Minutes to wait after depositing")
    run_parser.add_argument("--after-redeem", type=int, help="Minutes to wait after redeeming")

    return parser


def build_bot(settings: Settings):
    """Wire client, operations and controller from validated settings."""
    net = settings.network_config
    client = StakingClient.from_settings(settings)
    operations = StakingOperations(client, net)
    controller = CycleController(
        operations,
        settings.cycle,
        timer=CountdownTimer(settings.tick_seconds),
        retry_cooldown_minutes=settings.retry_cooldown_minutes,
        max_consecutive_faults=settings.max_consecutive_faults,
        native_symbol=net["symbol"],
        share_symbol=net["share_symbol"],
    )
    return operations, controller


def apply_run_args(settings: Settings, args):
    cycle = settings.cycle
    if args.deposit is not None:
        cycle.deposit_amount = args.deposit
    if args.redeem is not None:
        cycle.redeem_amount = args.redeem
    if args.after_deposit is not None:
        cycle.post_deposit_delay_minutes = args.after_deposit
    if args.after_redeem is not None:
        cycle.post_redeem_delay_minutes = args.after_redeem


def run_headless(controller: CycleController) -> int:
    if not controller.start(background=True):
        return 1
    try:
        while not controller.join(timeout=1.0):
            pass
    except KeyboardInterrupt:
        log.info("Shutting down...")
        controller.request_stop()
        controller.join()
    return 1 if controller.state.last_error else 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug)

    load_dotenv_file(args.env_file)

    try:
        settings = load_settings(args.config, network=args.network, rpc_url=args.rpc_url)
        if args.command == "run":
            apply_run_args(settings, args)
        settings.validate()
    except ConfigError as e:
        log.error(f"Configuration error: {e}")
        return 1

    log.info(f"Private key loaded: {settings.masked_key()}")
    try:
        operations, controller = build_bot(settings)
    except ValueError as e:
        log.error(f"Cannot load wallet: {e}")
        return 1

    command = args.command or "menu"
    if command == "balance":
        return 0 if operations.show_balances() is not None else 1
    if command == "approve":
        return 0 if operations.ensure_approval() else 1
    if command == "deposit":
        return 0 if operations.deposit(args.amount).success else 1
    if command == "redeem":
        return 0 if operations.redeem(args.amount).success else 1
    if command == "run":
        return run_headless(controller)

    menu = OperatorMenu(operations, controller)
    operations.show_balances()
    try:
        menu.run()
    except (KeyboardInterrupt, EOFError):
        log.info("Shutting down...")
        controller.request_stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
