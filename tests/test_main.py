"""Tests for __main__.py CLI functions."""

import json
from unittest.mock import MagicMock, patch

import pytest

from cliphive.__main__ import list_workspaces, main, run_app


class TestListWorkspaces:
    def test_marks_active(self, tmp_path, capsys):
        (tmp_path / "workspaces.json").write_text(json.dumps({"workspaces": ["A", "B"], "activeWorkspace": "B"}))
        assert list_workspaces(tmp_path) == 0
        assert capsys.readouterr().out.splitlines() == ["  A", "* B"]

    def test_bootstraps_defaults(self, tmp_path, capsys):
        list_workspaces(tmp_path)
        assert "* Workspace1" in capsys.readouterr().out
        assert (tmp_path / "workspaces.json").exists()


class TestRunApp:
    @patch("cliphive.__main__.setup_logging")
    @patch("cliphive.__main__.time.sleep", side_effect=KeyboardInterrupt)
    def test_polls_until_interrupted(self, _mock_sleep, _mock_logging, tmp_path):
        fake_clipboard = MagicMock()
        fake_module = MagicMock(PasteboardClipboard=MagicMock(return_value=fake_clipboard))
        with patch.dict("sys.modules", {"cliphive.pasteboard": fake_module}):
            assert run_app(tmp_path) == 0
        fake_clipboard.poll.assert_called_once()
        fake_clipboard.on_owner_changed.assert_called_once()
        assert (tmp_path / "Workspace1" / "clipboard.json").exists()


class TestMain:
    @patch("cliphive.__main__.list_workspaces", return_value=0)
    def test_workspaces_command(self, mock_list, tmp_path):
        with patch("sys.argv", ["cliphive", "workspaces", "--cache-dir", str(tmp_path)]):
            with pytest.raises(SystemExit) as exc:
                main()
        assert exc.value.code == 0
        mock_list.assert_called_once_with(tmp_path)

    @patch("cliphive.__main__.run_app", return_value=0)
    def test_default_runs_app(self, mock_run, tmp_path):
        with patch("sys.argv", ["cliphive", "--cache-dir", str(tmp_path)]):
            with pytest.raises(SystemExit):
                main()
        mock_run.assert_called_once_with(tmp_path)

    def test_unknown_command(self):
        with patch("sys.argv", ["cliphive", "bogus"]):
            with pytest.raises(SystemExit) as exc:
                main()
        assert exc.value.code == 2
