"""
Tests for cloudleaf/cli.py

Tests the CLI interface including:
- Vendor management commands
- Source listing and testing
- Export/import through files
- Upload confirmation when a remote copy is newer
"""
import json
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

import tomli

from cloudleaf import cli
from cloudleaf.models import Result, SyncOutcome, SyncStatus
from cloudleaf.providers.gist import GistProvider
from conftest import make_payload


CHROME_FILE = {
    "roots": {
        "bookmark_bar": {
            "children": [
                {"date_added": "13300000000000000", "id": "4", "name": "Python",
                 "type": "url", "url": "https://python.org"},
            ],
            "date_added": "13200000000000000",
            "date_modified": "13300000000000000",
            "id": "1",
            "name": "Bookmarks bar",
            "type": "folder",
        },
        "other": {"children": [], "date_added": "0", "date_modified": "0",
                  "id": "2", "name": "Other bookmarks", "type": "folder"},
        "synced": {"children": [], "date_added": "0", "date_modified": "0",
                   "id": "3", "name": "Mobile bookmarks", "type": "folder"},
    },
    "version": 1,
}


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Empty cwd/home, a config file path and a Chromium Bookmarks file."""
    monkeypatch.chdir(tmp_path)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))

    bookmarks = tmp_path / "Bookmarks"
    bookmarks.write_text(json.dumps(CHROME_FILE), encoding="utf-8")
    return tmp_path


def run(workspace, *argv):
    return cli.main([
        "--config", str(workspace / "cloudleaf.toml"),
        "--bookmarks", str(workspace / "Bookmarks"),
        *argv,
    ])


def read_config(workspace):
    with open(workspace / "cloudleaf.toml", "rb") as f:
        return tomli.load(f)


class TestVendorCommands:
    """Test the vendor subcommands."""

    def test_add_persists_vendor(self, workspace, capsys):
        run(workspace, "vendor", "add", "nextcloud", "https://cloud.example.com/dav", "--name", "Nextcloud")

        assert "Registered vendor Nextcloud" in capsys.readouterr().out
        assert read_config(workspace)["vendors"] == [
            {"id": "nextcloud", "name": "Nextcloud", "server_url": "https://cloud.example.com/dav"},
        ]

    def test_list_shows_presets_and_customs(self, workspace, capsys):
        run(workspace, "vendor", "add", "nc", "https://nc.example.com")
        capsys.readouterr()

        run(workspace, "vendor", "list")
        out = capsys.readouterr().out
        assert "jianguoyun" in out
        assert "nc" in out

    def test_add_preset_id_fails(self, workspace, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run(workspace, "vendor", "add", "jianguoyun", "https://x.example.com")

        assert exc_info.value.code == 1
        assert "already exists" in capsys.readouterr().out

    def test_remove(self, workspace):
        run(workspace, "vendor", "add", "nc", "https://nc.example.com")
        run(workspace, "vendor", "remove", "nc")
        assert read_config(workspace)["vendors"] == []

    def test_remove_unknown_fails(self, workspace):
        with pytest.raises(SystemExit) as exc_info:
            run(workspace, "vendor", "remove", "jianguoyun")
        assert exc_info.value.code == 1


class TestSourceCommands:
    """Test the sources and test commands."""

    @pytest.fixture
    def configured(self, workspace):
        (workspace / "cloudleaf.toml").write_text(
            '[gist]\naccess_token = "t"\ngist_id = "g1"\npriority = 1\n\n'
            '[[webdav]]\nvendor_id = "jianguoyun"\nusername = "me"\npassword = "p"\npriority = 0\n'
        )
        return workspace

    def test_sources_table(self, configured, capsys):
        run(configured, "sources")
        out = capsys.readouterr().out
        assert "webdav-0" in out
        assert "gist" in out
        assert out.index("webdav-0") < out.index("g1")

    def test_test_reports_failures(self, configured, capsys):
        with patch.object(GistProvider, "is_valid", return_value=Result.success(True)), \
                patch("cloudleaf.providers.webdav.WebDAVProvider.is_valid",
                      return_value=Result.success(False, error="Invalid token")):
            with pytest.raises(SystemExit) as exc_info:
                run(configured, "test")

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Invalid token" in out

    def test_test_without_sources(self, workspace, capsys):
        run(workspace, "test")
        assert "no sync source configured" in capsys.readouterr().out


class TestFileCommands:
    """Test export and import."""

    def test_export_to_directory(self, workspace):
        out_dir = workspace / "exports"
        out_dir.mkdir()
        run(workspace, "export", str(out_dir))

        exported = list(out_dir.glob("CloudLeaf_*.json"))
        assert len(exported) == 1
        data = json.loads(exported[0].read_text(encoding="utf-8"))
        assert data["numBookmarks"] == 1
        assert data["bookmarks"][0]["id"] == "bar"

    def test_import_apply_force_rewrites_bookmarks(self, workspace, capsys):
        source = workspace / "incoming.json"
        source.write_text(make_payload(updated_at=1, titles=("Rust", "Go")).to_json(), encoding="utf-8")

        run(workspace, "import", str(source), "--apply", "--force")

        saved = json.loads((workspace / "Bookmarks").read_text(encoding="utf-8"))
        names = [item["name"] for item in saved["roots"]["bookmark_bar"]["children"]]
        assert names == ["Rust", "Go"]
        assert "Applied" in capsys.readouterr().out

    def test_import_declined_leaves_bookmarks(self, workspace):
        source = workspace / "incoming.json"
        source.write_text(make_payload(updated_at=1, titles=("Rust",)).to_json(), encoding="utf-8")
        before = (workspace / "Bookmarks").read_text(encoding="utf-8")

        with patch("cloudleaf.cli.Confirm.ask", return_value=False):
            run(workspace, "import", str(source), "--apply")

        assert (workspace / "Bookmarks").read_text(encoding="utf-8") == before

    def test_import_bad_file(self, workspace, capsys):
        source = workspace / "broken.json"
        source.write_text("{", encoding="utf-8")

        with pytest.raises(SystemExit):
            run(workspace, "import", str(source))
        assert "Failed to parse file" in capsys.readouterr().out


class TestSyncCommands:
    """Test upload and download."""

    def test_upload_without_sources(self, workspace, capsys):
        run(workspace, "upload")
        assert "no sync source configured" in capsys.readouterr().out

    def test_upload_behind_confirmed_forces(self, workspace):
        payload = make_payload()
        engine = MagicMock()
        engine.upload.side_effect = [
            Result.success(SyncOutcome(SyncStatus.BEHIND, payload=payload)),
            Result.success(SyncOutcome(SyncStatus.SYNCED, payload=payload)),
        ]
        with patch("cloudleaf.cli.build_engine", return_value=engine), \
                patch("cloudleaf.cli.Confirm.ask", return_value=True):
            run(workspace, "upload")

        assert engine.upload.call_args_list[1].kwargs == {"force": True, "local_snapshot": payload}

    def test_upload_behind_declined(self, workspace, capsys):
        engine = MagicMock()
        engine.upload.return_value = Result.success(SyncOutcome(SyncStatus.BEHIND, payload=make_payload()))
        with patch("cloudleaf.cli.build_engine", return_value=engine), \
                patch("cloudleaf.cli.Confirm.ask", return_value=False):
            run(workspace, "upload")

        assert engine.upload.call_count == 1
        assert "Upload skipped" in capsys.readouterr().out

    def test_upload_failure_exits(self, workspace, capsys):
        engine = MagicMock()
        engine.upload.return_value = Result.failure("Gist: boom")
        with patch("cloudleaf.cli.build_engine", return_value=engine):
            with pytest.raises(SystemExit) as exc_info:
                run(workspace, "upload", "--force")

        assert exc_info.value.code == 1
        assert "Gist: boom" in capsys.readouterr().out

    def test_download_reports_without_applying(self, workspace, capsys):
        engine = MagicMock()
        engine.download.return_value = Result.success(
            SyncOutcome(SyncStatus.BEHIND, payload=make_payload(updated_at=9))
        )
        with patch("cloudleaf.cli.build_engine", return_value=engine):
            run(workspace, "download")

        engine.apply.assert_not_called()
        assert "remote is newer" in capsys.readouterr().out

    def test_download_apply_when_behind_needs_no_prompt(self, workspace):
        engine = MagicMock()
        engine.download.return_value = Result.success(SyncOutcome(SyncStatus.BEHIND, payload=make_payload()))
        engine.apply.return_value = Result.success()
        with patch("cloudleaf.cli.build_engine", return_value=engine), \
                patch("cloudleaf.cli.Confirm.ask") as mock_ask:
            run(workspace, "download", "--apply")

        mock_ask.assert_not_called()
        engine.apply.assert_called_once()


class TestBookmarksFileResolution:
    """Test resolve_bookmarks_file()."""

    def test_flag_wins(self, tmp_path):
        args = MagicMock(bookmarks=str(tmp_path / "B"))
        config = cli.CloudLeafConfig(bookmarks_file="/config/B")
        assert cli.resolve_bookmarks_file(args, config) == tmp_path / "B"

    def test_config_used(self):
        args = MagicMock(bookmarks=None)
        config = cli.CloudLeafConfig(bookmarks_file="/config/B")
        assert cli.resolve_bookmarks_file(args, config) == Path("/config/B")

    def test_no_profile_found(self):
        args = MagicMock(bookmarks=None)
        with patch("cloudleaf.cli.find_bookmark_files", return_value=[]):
            with pytest.raises(cli.CommandError):
                cli.resolve_bookmarks_file(args, cli.CloudLeafConfig())


class TestColorOutput:
    """Test that color_output reaches the console."""

    def test_disabled_in_config(self, workspace):
        (workspace / "cloudleaf.toml").write_text("color_output = false\n")
        run(workspace, "sources")
        assert cli.console.no_color is True

    def test_enabled_by_default(self, workspace, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        run(workspace, "sources")
        assert cli.console.no_color is False
