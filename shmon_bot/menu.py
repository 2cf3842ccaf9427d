# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
Interactive operator menu.

1. Show Current Balances
2. Setup Auto-Swap Configuration
3. Start Auto-Swap
4. Stop Auto-Swap
5. Show Auto-Swap Status
6. Exit
"""

import sys

from .bot_types import NATIVE_DECIMALS, REDEEM_ALL, parse_units

MENU_ITEMS = [
    "Show Current Balances",
    "Setup Auto-Swap Configuration",
    "Start Auto-Swap",
    "Stop Auto-Swap",
    "Show Auto-Swap Status",
    "Exit",
]


class OperatorMenu:
    """Line-oriented front end over StakingOperations and CycleController."""

    def __init__(self, operations, controller, input_fn=input, output=print):
        self.operations = operations
        self.controller = controller
        self.input = input_fn
        self.output = output

    @property
    def symbols(self):
        return self.operations.symbol, self.operations.share_symbol

    def show_menu(self):
        self.output("")
        self.output(f"===== {self.operations.share_symbol} Auto-Staking Bot =====")
        for i, item in enumerate(MENU_ITEMS, 1):
            self.output(f"{i}. {item}")

    def run(self):
        """Prompt until Exit is chosen; Exit ends the process with code 0."""
        while True:
            self.show_menu()
            choice = self.input(f"Select an option (1-{len(MENU_ITEMS)}): ").strip()
            self.handle(choice)

    def handle(self, choice: str):
        if choice == "1":
            self.show_balances()
        elif choice == "2":
            self.setup()
        elif choice == "3":
            self.controller.start()
        elif choice == "4":
            self.controller.request_stop()
        elif choice == "5":
            self.show_status()
        elif choice == "6":
            self.output("Exiting...")
            if self.controller.state.running:
                self.controller.request_stop()
            sys.exit(0)
        else:
            self.output("Invalid option")

    # -------------------------------------------------------------------------

    def show_balances(self):
        try:
            balances = self.operations.read_balances()
        except Exception as e:
            self.output(f"Could not fetch balances: {e}")
            return
        native, share = self.symbols
        self.output("")
        self.output("Current Balances:")
        self.output("-----------------")
        self.output(f"Native {native} Balance: {balances.native_formatted} {native}")
        self.output(f"{share} Token Balance: {balances.share_formatted} {share}")
        self.output(f"Wallet Address: {self.operations.client.address}")

    def show_status(self):
        self.output("")
        self.output("Auto-Swap Status:")
        self.output("-----------------")
        for line in self.controller.status_lines():
            self.output(line)

    def setup(self):
        """Four prompts, then offer to start immediately."""
        native, share = self.symbols
        config = self.controller.config

        deposit = self._ask(f"Enter amount of {native} to convert to {share}: ", self._check_amount)
        redeem = self._ask(f'Enter amount of {share} to convert back to {native} (or "all" for all balance): ',
                           self._check_redeem)
        delay1 = self._ask(f"Enter delay (in minutes) after {native} to {share} conversion: ",
                           self._check_minutes)
        delay2 = self._ask(f"Enter delay (in minutes) after {share} to {native} conversion: ",
                           self._check_minutes)

        if self.controller.state.running:
            self.output("Auto-swap is running; new settings apply from the next step.")

        config.deposit_amount = deposit
        config.redeem_amount = REDEEM_ALL if redeem.lower() == REDEEM_ALL else redeem
        config.post_deposit_delay_minutes = int(delay1)
        config.post_redeem_delay_minutes = int(delay2)

        self.output("")
        self.output("Auto-swap configuration complete!")
        for line in config.describe(native, share):
            self.output(line)

        answer = self.input("Start auto-swap now? (y/n): ").strip().lower()
        if answer == "y":
            self.controller.start()

    def _ask(self, prompt: str, check) -> str:
        while True:
            value = self.input(prompt).strip()
            error = check(value)
            if error is None:
                return value
            self.output(error)

    @staticmethod
    def _check_amount(value: str):
        try:
            parse_units(value, NATIVE_DECIMALS)
        except ValueError as e:
            return str(e)
        return None

    @classmethod
    def _check_redeem(cls, value: str):
        if value.lower() == REDEEM_ALL:
            return None
        return cls._check_amount(value)

    @staticmethod
    def _check_minutes(value: str):
        if not (value.isascii() and value.isdigit()):
            return f"Delay must be a whole number of minutes, got {value!r}"
        return None
