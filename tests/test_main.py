"""Tests for the command-line entry point and wiring."""

from unittest.mock import patch

import pytest

from hook_dispatcher import main as cli
from hook_dispatcher.adapters.rate_limit.in_memory import InMemoryWindowThrottle
from hook_dispatcher.adapters.subscription.factory import create_subscriber
from hook_dispatcher.adapters.subscription.kafka import KafkaSubscriber
from hook_dispatcher.core.config import load_settings
from hook_dispatcher.core.errors import (
    INVALID_CONFIGURATION,
    SUBSCRIPTION_SETUP_ERROR,
    SubscriptionSetupAppError,
    ValidationAppError,
)
from hook_dispatcher.services.dispatcher import Dispatcher


@pytest.mark.parametrize("flag", ["--enable-debug", "--enable_debug"])
def test_parse_args_debug_flag(flag: str) -> None:
    args = cli._parse_args([flag, "--config-file", "/etc/dispatcher/.env"])

    assert args.enable_debug is True
    assert args.config_file == "/etc/dispatcher/.env"


def test_parse_args_defaults() -> None:
    args = cli._parse_args([])

    assert args.enable_debug is False
    assert args.config_file is None


def test_build_dispatcher_wires_settings() -> None:
    settings = load_settings()

    dispatcher = cli.build_dispatcher(settings)

    assert isinstance(dispatcher, Dispatcher)
    assert dispatcher.topic == settings.dispatcher.topic
    assert dispatcher.expected_value == settings.dispatcher.user_agent
    assert dispatcher.header_name == "User-Agent"
    assert dispatcher.forwarder.endpoint == settings.dispatcher.access_endpoint
    assert isinstance(dispatcher.rate_limiter, InMemoryWindowThrottle)
    assert isinstance(dispatcher.subscriber, KafkaSubscriber)
    dispatcher.forwarder.client.close()


def test_unknown_subscription_provider(monkeypatch) -> None:
    monkeypatch.setenv("KAFKA_PROVIDER", "nats")
    settings = load_settings()

    with pytest.raises(ValidationAppError) as exc:
        create_subscriber(settings)

    assert exc.value.code == INVALID_CONFIGURATION


@patch("hook_dispatcher.main.configure_logging")
def test_main_returns_1_on_invalid_configuration(_configure, tmp_path) -> None:
    assert cli.main(["--config-file", str(tmp_path / "missing.env")]) == 1


@patch("hook_dispatcher.main.configure_logging")
@patch("hook_dispatcher.main.run_until_cancelled")
def test_main_runs_until_cancelled(run, _configure) -> None:
    assert cli.main([]) == 0

    run.assert_called_once()
    assert isinstance(run.call_args.args[0], Dispatcher)


@patch("hook_dispatcher.main.configure_logging")
@patch("hook_dispatcher.main.run_until_cancelled")
def test_main_returns_1_when_subscription_fails(run, _configure) -> None:
    run.side_effect = SubscriptionSetupAppError(
        code=SUBSCRIPTION_SETUP_ERROR, message="broker unreachable"
    )

    assert cli.main(["--enable-debug"]) == 1
