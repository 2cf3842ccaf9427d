# Copyright (c) 2025 The shMON Auto-Staking Bot developers
# Distributed under the MIT software license

"""
Auto-swap cycle controller.

Loop:
1. Deposit MON -> shMON
2. Wait post_deposit_delay_minutes
3. Redeem shMON -> MON
4. Wait post_redeem_delay_minutes
5. Repeat until stopped or a conversion fails

Stop requests are cooperative: the flag is polled at iteration start and
once per timer tick during waits. A transaction that has been submitted
is always allowed to finish.
"""

import logging
import math
import threading
import time
from typing import Callable, Optional

from .bot_types import CycleConfig, CycleState, CycleStep

log = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe stop flag."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class CountdownTimer:
    """
    Interruptible wait with a progress line every tick.

    sleep and clock are injectable so tests can run a fake clock.
    """

    def __init__(self, tick_seconds: float = 60,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.tick_seconds = tick_seconds
        self.sleep = sleep
        self.clock = clock

    def wait(self, minutes: int, token: CancellationToken) -> bool:
        """Return True when the full delay elapsed, False if cancelled."""
        log.info(f"Waiting for {minutes} minutes...")
        deadline = self.clock() + minutes * 60

        while True:
            if token.cancelled:
                log.info("Operation canceled by user.")
                return False
            remaining = deadline - self.clock()
            if remaining <= 0:
                log.info("Wait completed!")
                return True
            self.sleep(min(self.tick_seconds, remaining))
            remaining = deadline - self.clock()
            if remaining > 0:
                log.info(f"Remaining time: {math.ceil(remaining / 60)} minutes")


class CycleController:
    """
    Owns the CycleState and drives deposit/redeem through `operations`,
    which must provide deposit(amount) and redeem(amount) returning a
    TransactionOutcome.
    """

    def __init__(self, operations, config: Optional[CycleConfig] = None,
                 timer: Optional[CountdownTimer] = None,
                 retry_cooldown_minutes: int = 1,
                 max_consecutive_faults: int = 5,
                 native_symbol: str = "MON", share_symbol: str = "shMON"):
        self.operations = operations
        self.config = config or CycleConfig()
        self.timer = timer or CountdownTimer()
        self.retry_cooldown_minutes = retry_cooldown_minutes
        self.max_consecutive_faults = max_consecutive_faults
        self.native_symbol = native_symbol
        self.share_symbol = share_symbol

        self.state = CycleState()
        self.token = CancellationToken()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    # -------------------------------------------------------------------------
    # commands
    # -------------------------------------------------------------------------

    def start(self, background: bool = True) -> bool:
        """
        Start the cycle. Returns False (and warns) if one is already running
        or the configuration is invalid.
        """
        with self._lock:
            if self.state.running:
                log.warning("Auto-swap is already running!")
                return False
            try:
                self.config.validate()
            except ValueError as e:
                log.error(f"Cannot start auto-swap: {e}")
                return False
            self.state.running = True
            self.state.stop_requested = False
            self.state.last_error = None
            self.token.reset()

        if background:
            self._thread = threading.Thread(target=self._run, name="auto-swap", daemon=True)
            self._thread.start()
        else:
            self._run()
        return True

    def request_stop(self) -> bool:
        if not self.state.running:
            log.info("Auto-swap is not running.")
            return False
        log.info("Stopping auto-swap after current operation completes...")
        self.state.stop_requested = True
        self.token.cancel()
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the background cycle thread. True if it has exited."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def status_lines(self) -> list:
        lines = [f"Running: {'Yes' if self.state.running else 'No'}"]
        if self.state.running:
            lines.append(f"Current operation: {self.state.current_operation}")
            lines.append(f"Step: {self.state.step.value}")
            lines.extend(self.config.describe(self.native_symbol, self.share_symbol))
        lines.append(f"Cycles completed: {self.state.cycles_completed}")
        if self.state.last_error:
            lines.append(f"Last error: {self.state.last_error}")
        return lines

    # -------------------------------------------------------------------------
    # loop
    # -------------------------------------------------------------------------

    def _enter(self, step: CycleStep, operation: Optional[str] = None):
        self.state.step = step
        if operation is not None:
            self.state.current_operation = operation
        log.debug(f"Cycle step -> {step.value}")

    def _run(self):
        log.info("===== STARTING AUTO SWAP CYCLE =====")
        for line in self.config.describe(self.native_symbol, self.share_symbol):
            log.info(line)

        faults = 0
        try:
            while not self.token.cancelled:
                try:
                    if not self._run_iteration():
                        break
                    faults = 0
                    self.state.last_error = None
                    log.info("===== STARTING NEW CYCLE =====")
                except Exception as e:
                    faults += 1
                    self.state.last_error = str(e)
                    log.exception(f"Error in auto-swap cycle: {e}")
                    if self.max_consecutive_faults and faults >= self.max_consecutive_faults:
                        log.error(f"Giving up after {faults} consecutive errors")
                        break
                    log.info(f"Waiting {self.retry_cooldown_minutes} minute(s) before retrying...")
                    self.state.current_operation = "retry cooldown"
                    if not self.timer.wait(self.retry_cooldown_minutes, self.token):
                        break
        finally:
            self.state.running = False
            self.state.step = CycleStep.IDLE
            self.state.current_operation = None
            log.info("Auto-swap stopped.")

    def _run_iteration(self) -> bool:
        """One deposit/wait/redeem/wait pass. False means leave the loop."""
        native, share = self.native_symbol, self.share_symbol

        self._enter(CycleStep.DEPOSITING, f"{native} to {share}")
        log.info(f"----- CYCLE: Converting {native} to {share} -----")
        outcome = self.operations.deposit(self.config.deposit_amount)
        if not outcome.success:
            self.state.last_error = outcome.failure_reason
            log.error("Stopping auto-swap due to deposit failure.")
            return False

        self._enter(CycleStep.WAITING_AFTER_DEPOSIT)
        log.info(f"Waiting for {self.config.post_deposit_delay_minutes} minutes "
                 f"before converting back to {native}...")
        if not self.timer.wait(self.config.post_deposit_delay_minutes, self.token):
            return False

        self._enter(CycleStep.REDEEMING, f"{share} to {native}")
        log.info(f"----- CYCLE: Converting {share} to {native} -----")
        outcome = self.operations.redeem(self.config.redeem_amount)
        if not outcome.success:
            self.state.last_error = outcome.failure_reason
            log.error("Stopping auto-swap due to redeem failure.")
            return False

        self._enter(CycleStep.WAITING_AFTER_REDEEM)
        log.info(f"Waiting for {self.config.post_redeem_delay_minutes} minutes "
                 f"before starting next cycle...")
        if not self.timer.wait(self.config.post_redeem_delay_minutes, self.token):
            return False

        self.state.cycles_completed += 1
        return True
