"""Operator menu driven with scripted input."""

from __future__ import annotations

import pytest

from shmon_bot.bot_types import CycleConfig
from shmon_bot.cycle import CycleController
from shmon_bot.menu import OperatorMenu

from conftest import ONE, WALLET


class Script:
    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.prompts: list = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answers.pop(0)


@pytest.fixture
def controller(operations, timer) -> CycleController:
    return CycleController(operations, CycleConfig(), timer=timer)


def make_menu(operations, controller, *answers):
    lines: list = []
    script = Script(*answers)
    return OperatorMenu(operations, controller, input_fn=script, output=lines.append), script, lines


def test_setup_updates_config(operations, controller) -> None:
    menu, script, lines = make_menu(operations, controller, "10", "ALL", "5", "7", "n")
    menu.handle("2")

    config = controller.config
    assert config.deposit_amount == "10"
    assert config.redeem_amount == "all"
    assert config.post_deposit_delay_minutes == 5
    assert config.post_redeem_delay_minutes == 7
    assert "Auto-swap configuration complete!" in lines
    assert len(script.prompts) == 5
    assert controller.state.running is False


def test_setup_reprompts_on_bad_input(operations, controller) -> None:
    menu, script, lines = make_menu(operations, controller,
                                    "-1", "1.5", "many", "0.5", "soon", "0", "60", "n")
    menu.handle("2")

    assert controller.config.deposit_amount == "1.5"
    assert controller.config.redeem_amount == "0.5"
    assert controller.config.post_deposit_delay_minutes == 0
    assert len(script.prompts) == 8
    assert any("whole number of minutes" in line for line in lines)


def test_setup_can_start_immediately(operations, controller, monkeypatch) -> None:
    started = []
    monkeypatch.setattr(controller, "start", lambda: started.append(True) or True)
    menu, _, _ = make_menu(operations, controller, "1", "all", "1", "1", "Y")
    menu.handle("2")
    assert started == [True]


def test_show_balances(client, operations, controller) -> None:
    client.native = 3 * ONE
    client.shares = ONE // 4
    menu, _, lines = make_menu(operations, controller)
    menu.handle("1")
    assert "Native MON Balance: 3 MON" in lines
    assert "shMON Token Balance: 0.25 shMON" in lines
    assert f"Wallet Address: {WALLET}" in lines


def test_status_and_stop_when_idle(operations, controller) -> None:
    menu, _, lines = make_menu(operations, controller)
    menu.handle("5")
    menu.handle("4")
    assert "Running: No" in lines
    assert controller.state.stop_requested is False


def test_invalid_option(operations, controller) -> None:
    menu, _, lines = make_menu(operations, controller)
    menu.handle("9")
    assert lines == ["Invalid option"]


def test_exit_terminates_with_code_zero(operations, controller) -> None:
    menu, _, lines = make_menu(operations, controller, "6")
    with pytest.raises(SystemExit) as exc:
        menu.run()
    assert exc.value.code == 0
    assert "Exiting..." in lines
    assert "6. Exit" in lines


def test_show_balances_prints_once_without_logging_again(client, operations, controller, monkeypatch) -> None:
    def logged_again():
        raise AssertionError("balances were logged by the menu")
    monkeypatch.setattr(operations, "show_balances", logged_again)
    menu, _, lines = make_menu(operations, controller)
    menu.handle("1")
    assert sum(1 for line in lines if line.startswith("Native MON Balance")) == 1


def test_show_balances_reports_network_failure(client, operations, controller, network_down) -> None:
    client.read_error = network_down
    menu, _, lines = make_menu(operations, controller)
    menu.handle("1")
    assert any(line.startswith("Could not fetch balances") for line in lines)


def test_setup_rejects_non_ascii_digits(operations, controller) -> None:
    menu, script, lines = make_menu(operations, controller, "1", "all", "²", "3", "4", "n")
    menu.handle("2")
    assert controller.config.post_deposit_delay_minutes == 3
    assert len(script.prompts) == 6
    assert any("whole number of minutes" in line for line in lines)
