"""Tests for the command-line interface."""

import httpx
import pytest
from conftest import BASE_URL, creator_info, envelope
from typer.testing import CliRunner

from tiktok_kit import __version__, cli
from tiktok_kit.adapters.tiktok.capabilities import CREATOR_INFO_PATH
from tiktok_kit.adapters.tiktok.sessions import VIDEO_INIT_PATH
from tiktok_kit.adapters.tiktok.status import STATUS_FETCH_PATH
from tiktok_kit.adapters.tiktok.transport import Transport

runner = CliRunner()


@pytest.fixture
def fake_api(monkeypatch, fake_tiktok):
    """Route the CLI's transport to the fake API."""

    def factory(credentials):
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake_tiktok))
        return Transport(credentials, client=client, base_url=BASE_URL)

    monkeypatch.setattr(cli, "Transport", factory)
    return fake_tiktok


class TestCLI:
    """Tests for CLI commands."""

    def test_version(self):
        result = runner.invoke(cli.app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_debug_option_configures_logging(self, monkeypatch):
        levels = []
        monkeypatch.setattr(cli, "setup_logging", lambda level=None: levels.append(level))

        result = runner.invoke(cli.app, ["--debug", "auth-url"])

        assert result.exit_code == 0
        assert levels == ["DEBUG"]

    def test_auth_url(self):
        result = runner.invoke(cli.app, ["auth-url"])

        assert result.exit_code == 0
        assert "https://www.tiktok.com/v2/auth/authorize/" in result.stdout
        assert "client_key=test_client_key" in result.stdout

    def test_auth_url_invalid_scope(self):
        result = runner.invoke(cli.app, ["auth-url", "--scope", "bogus.scope"])

        assert result.exit_code == 1

    def test_missing_token(self):
        result = runner.invoke(cli.app, ["creator-info"])

        assert result.exit_code == 1
        assert "No access token" in result.stdout

    def test_creator_info(self, fake_api):
        fake_api.add(CREATOR_INFO_PATH, envelope(creator_info()))

        result = runner.invoke(cli.app, ["creator-info", "--token", "act.cli"])

        assert result.exit_code == 0
        assert "@tiktok" in result.stdout
        assert fake_api.requests[0].headers["Authorization"] == "Bearer act.cli"

    def test_publish_url_coerce(self, fake_api):
        fake_api.add(
            CREATOR_INFO_PATH, envelope(creator_info(privacy_level_options=["SELF_ONLY"]))
        )
        fake_api.add(VIDEO_INIT_PATH, envelope({"publish_id": "v_pub_url~1"}))

        result = runner.invoke(
            cli.app,
            [
                "publish-url",
                "https://example.com/clip.mp4",
                "--privacy",
                "PUBLIC_TO_EVERYONE",
                "--policy",
                "coerce",
                "--token",
                "act.cli",
            ],
        )

        assert result.exit_code == 0
        assert "v_pub_url~1" in result.stdout
        sent = fake_api.body(fake_api.calls(VIDEO_INIT_PATH)[0])
        assert sent["post_info"]["privacy_level"] == "SELF_ONLY"

    def test_publish_url_strict_rejected(self, fake_api):
        fake_api.add(
            CREATOR_INFO_PATH, envelope(creator_info(privacy_level_options=["SELF_ONLY"]))
        )

        result = runner.invoke(
            cli.app,
            [
                "publish-url",
                "https://example.com/clip.mp4",
                "--privacy",
                "PUBLIC_TO_EVERYONE",
                "--token",
                "act.cli",
            ],
        )

        assert result.exit_code == 1
        assert fake_api.calls(VIDEO_INIT_PATH) == []

    def test_status(self, fake_api):
        fake_api.add(
            STATUS_FETCH_PATH,
            envelope({"status": "PUBLISH_COMPLETE", "publicaly_available_post_id": ["7301"]}),
        )

        result = runner.invoke(cli.app, ["status", "v_pub_url~1", "--token", "act.cli"])

        assert result.exit_code == 0
        assert "PUBLISH_COMPLETE" in result.stdout
        assert "7301" in result.stdout

    def test_status_network_failure(self, fake_api):
        fake_api.add(STATUS_FETCH_PATH, httpx.ConnectError("down"))

        result = runner.invoke(cli.app, ["status", "v_pub_url~1", "--token", "act.cli"])

        assert result.exit_code == 1
