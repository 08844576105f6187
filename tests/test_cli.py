"""Tests for CLI commands."""

import json
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from autoupload.client.api import PhotoShareClient
from autoupload.client.cli import cli
from autoupload.client.state import SettingsStore
from autoupload.core.types import ConsentStatus

SERVER = "http://test"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the CLI at a temporary configuration directory."""
    config = tmp_path / ".autoupload"
    with patch("autoupload.client.cli.config.get_config_dir", return_value=config):
        yield config


@pytest.fixture
def library(tmp_path: Path) -> Path:
    """Create an empty photo library."""
    path = tmp_path / "Pictures"
    path.mkdir()
    return path


def configure(runner: CliRunner, library: Path, *extra: str) -> None:
    """Run 'autoupload configure' against the test server."""
    result = runner.invoke(
        cli,
        [
            "configure",
            "--server", f"{SERVER}/",
            "--token", "tok",
            "--library", str(library),
            "--user-id", "u1",
            "--device-id", "dev1",
            *extra,
        ],
    )
    assert result.exit_code == 0, result.output


def open_store(config_dir: Path) -> SettingsStore:
    """Open the store the CLI writes to."""
    return SettingsStore(config_dir / "state.db")


class TestConfigureCommand:
    """Tests for 'autoupload configure'."""

    def test_saves_config(self, runner: CliRunner, config_dir: Path, library: Path) -> None:
        """Configure should write config.json and the user id."""
        configure(runner, library, "--api-key", "anon")

        config = json.loads((config_dir / "config.json").read_text())
        assert config["server_url"] == SERVER
        assert config["auth_token"] == "tok"
        assert config["api_key"] == "anon"
        assert config["library_path"] == str(library)
        with open_store(config_dir) as store:
            settings = store.load_settings()
        assert settings is not None
        assert settings.user_id == "u1"
        assert settings.auto_upload_enabled is False

    def test_requires_server(self, runner: CliRunner, config_dir: Path) -> None:
        """Configure without --server should fail."""
        result = runner.invoke(cli, ["configure"])
        assert result.exit_code != 0


class TestSettingsCommands:
    """Tests for 'autoupload settings'."""

    def test_show_without_user(self, runner: CliRunner, config_dir: Path) -> None:
        """Show should explain that no user is configured."""
        result = runner.invoke(cli, ["settings", "show"])
        assert result.exit_code == 0
        assert "No user configured" in result.output

    def test_set_without_user_fails(self, runner: CliRunner, config_dir: Path) -> None:
        """Set should require a user id the first time."""
        result = runner.invoke(cli, ["settings", "set", "--auto-upload"])
        assert result.exit_code == 1

    def test_set_and_show(self, runner: CliRunner, config_dir: Path) -> None:
        """Set should change only the given values."""
        runner.invoke(cli, ["settings", "set", "--user-id", "u1", "--wifi-only"])
        result = runner.invoke(cli, ["settings", "set", "--auto-upload", "--background"])
        assert result.exit_code == 0

        result = runner.invoke(cli, ["settings", "show"])
        assert "User: u1" in result.output
        assert "Auto-upload: on" in result.output
        assert "WiFi only: on" in result.output
        assert "Background upload: on" in result.output
        assert "Consent: not recorded" in result.output


class TestConsentCommands:
    """Tests for 'autoupload consent'."""

    def test_grant_and_revoke(self, runner: CliRunner, config_dir: Path) -> None:
        """Consent commands should update the stored flag."""
        runner.invoke(cli, ["consent", "grant"])
        with open_store(config_dir) as store:
            assert store.get_consent() == ConsentStatus.GRANTED

        runner.invoke(cli, ["consent", "revoke"])
        with open_store(config_dir) as store:
            assert store.get_consent() == ConsentStatus.DENIED


class TestStatusCommand:
    """Tests for 'autoupload status'."""

    def test_reports_closed_gate(self, runner: CliRunner, config_dir: Path, library: Path) -> None:
        """Without consent the gate should be reported closed."""
        configure(runner, library)
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "Gate: closed (consent_pending)" in result.output
        assert "Network:" in result.output

    def test_reports_open_gate(self, runner: CliRunner, config_dir: Path, library: Path) -> None:
        """With consent and a readable library the gate should be open."""
        configure(runner, library)
        runner.invoke(cli, ["consent", "grant"])
        result = runner.invoke(cli, ["status"])
        assert "Gate: open (ready)" in result.output


class TestSyncCommand:
    """Tests for 'autoupload sync'."""

    def test_requires_server(self, runner: CliRunner, config_dir: Path) -> None:
        """Sync without configuration should fail."""
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 1
        assert "configure" in result.output

    def test_gate_closed(self, runner: CliRunner, config_dir: Path, library: Path) -> None:
        """Sync without consent should not start."""
        configure(runner, library)
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 1
        assert "Sync not started" in result.output

    def test_disabled_auto_upload(self, runner: CliRunner, config_dir: Path, library: Path) -> None:
        """With auto-upload off the pass should be skipped."""
        configure(runner, library)
        runner.invoke(cli, ["consent", "grant"])
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 0
        assert "Sync skipped: auto_upload_disabled" in result.output

    def test_cooldown(self, runner: CliRunner, config_dir: Path, library: Path) -> None:
        """A recent sync should postpone the next one unless forced."""
        configure(runner, library)
        with open_store(config_dir) as store:
            store.set_last_sync(datetime.now(UTC) - timedelta(minutes=5))

        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 0
        assert "--force" in result.output

    def test_uploads_event_photos(
        self, runner: CliRunner, config_dir: Path, library: Path, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """A full pass should upload new photos of the user's events."""
        configure(runner, library)
        runner.invoke(cli, ["consent", "grant"])
        runner.invoke(cli, ["settings", "set", "--auto-upload"])
        (library / "IMG_0001.jpg").write_bytes(b"\xff\xd8" + b"\x10" * 4096)

        now = datetime.now(UTC)
        httpx_mock.add_response(
            url=f"{SERVER}/functions/v1/api-auto-upload-user-events?user_id=u1",
            match_headers={"Authorization": "Bearer tok"},
            json={
                "events": [
                    {
                        "event_id": "e1",
                        "name": "Today",
                        "start_time": (now - timedelta(days=1)).isoformat(),
                        "end_time": (now + timedelta(days=1)).isoformat(),
                    }
                ]
            },
        )
        httpx_mock.add_response(
            url=f"{SERVER}/functions/v1/api-events-uploaded-photos/e1",
            json={"uploadedHashes": []},
        )
        httpx_mock.add_response(
            url=f"{SERVER}/functions/v1/mobile-upload",
            method="POST",
            json={"success": True, "mediaId": "m1"},
        )

        result = runner.invoke(cli, ["sync", "--force"])

        assert result.exit_code == 0, result.output
        assert "1 uploaded" in result.output
        upload = json.loads(httpx_mock.get_requests()[-1].content)
        assert upload["eventId"] == "e1"
        assert upload["deviceId"] == "dev1"
        with open_store(config_dir) as store:
            assert store.get_last_sync() is not None

    def test_event_list_failure_exits_nonzero(
        self, runner: CliRunner, config_dir: Path, library: Path, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """A failing catalog should be reported with a non-zero exit code."""
        configure(runner, library)
        runner.invoke(cli, ["consent", "grant"])
        runner.invoke(cli, ["settings", "set", "--auto-upload"])
        httpx_mock.add_response(
            url=f"{SERVER}/functions/v1/api-auto-upload-user-events?user_id=u1",
            status_code=401,
        )

        result = runner.invoke(cli, ["sync", "--force"])

        assert result.exit_code == 1
        assert "event_list_failed" in result.output


class TestDaemonCommand:
    """Tests for 'autoupload daemon'."""

    def run_daemon(self, runner: CliRunner, *args: str):  # type: ignore[no-untyped-def]
        """Run the daemon until the first sleep, with the scheduler mocked."""
        with (
            patch("time.sleep", side_effect=KeyboardInterrupt),
            patch("autoupload.client.sync.scheduler.BackgroundScheduler") as mock_cls,
            patch.object(PhotoShareClient, "close") as mock_close,
        ):
            result = runner.invoke(cli, ["daemon", *args])
        return result, mock_cls.return_value, mock_close

    def test_requires_server(self, runner: CliRunner, config_dir: Path) -> None:
        """The daemon without configuration should fail."""
        result = runner.invoke(cli, ["daemon"])
        assert result.exit_code == 1
        assert "configure" in result.output

    def test_runs_initial_pass_and_shuts_down(
        self, runner: CliRunner, config_dir: Path, library: Path
    ) -> None:
        """The daemon should sync once, schedule the job and clean up on Ctrl+C."""
        configure(runner, library)
        runner.invoke(cli, ["consent", "grant"])

        result, background, mock_close = self.run_daemon(runner, "--interval", "900")

        assert result.exit_code == 0, result.output
        assert "background upload is disabled" in result.output
        assert "Last pass: Sync skipped: auto_upload_disabled" in result.output
        background.add_job.assert_called_once()
        assert background.add_job.call_args.kwargs["trigger"].interval.total_seconds() == 900
        background.start.assert_called_once()
        background.shutdown.assert_called_once_with(wait=True)
        mock_close.assert_called_once()

    def test_no_warning_with_background_enabled(
        self, runner: CliRunner, config_dir: Path, library: Path
    ) -> None:
        """With background upload on, the daemon should not warn."""
        configure(runner, library)
        runner.invoke(cli, ["consent", "grant"])
        runner.invoke(cli, ["settings", "set", "--background"])

        result, _, _ = self.run_daemon(runner)

        assert result.exit_code == 0, result.output
        assert "background upload is disabled" not in result.output
        assert "Stopping" in result.output
