import json

import pytest
from typer.testing import CliRunner

from gosbot.client import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def log_levels(monkeypatch):
    levels = []
    monkeypatch.setattr(cli, "configure_root_logging", levels.append)
    return levels


def test_frame_command_encodes_event():
    result = runner.invoke(cli.app, ["frame", "42", '["hello_broker",{"uuid":"x"}]'])
    assert result.exit_code == 0
    assert result.output.strip() == '42["hello_broker",{"uuid":"x"}]'


def test_frame_command_bare_code():
    result = runner.invoke(cli.app, ["frame", "3"])
    assert result.exit_code == 0
    assert result.output.strip() == "3"


def test_frame_command_rejects_bad_json():
    result = runner.invoke(cli.app, ["frame", "42", "[oops"])
    assert result.exit_code == 2


def test_token_command(monkeypatch):
    async def fake_acquire(session_id, platform, settings=None):
        return f"token-for-{platform}"

    monkeypatch.setattr(cli, "acquire_token", fake_acquire)
    sid = "3f2b8c1e-9a4d-4e7f-b123-0123456789ab"

    result = runner.invoke(cli.app, ["token", "--session-id", sid, "--platform", "widget"])

    assert result.exit_code == 0
    assert json.loads(result.output) == {"sessionId": sid, "token": "token-for-widget"}


def test_log_level_option_configures_logging(log_levels):
    result = runner.invoke(cli.app, ["--log-level", "DEBUG", "frame", "3"])
    assert result.exit_code == 0
    assert log_levels == ["DEBUG"]


def test_log_level_defaults_to_environment(log_levels):
    result = runner.invoke(cli.app, ["frame", "3"])
    assert result.exit_code == 0
    assert log_levels == [None]
