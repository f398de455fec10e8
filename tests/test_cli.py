"""Tests for the command-line entry point."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from membersync.__main__ import build_parser, main
from membersync.config import ConfigError
from membersync.models import ApplySummary
from membersync.sync import SyncFailedError


class TestParser:

    def test_sync_dry_run(self):
        args = build_parser().parse_args(["sync", "--dry-run"])
        assert args.command == "sync"
        assert args.dry_run is True

    def test_plan_flags(self):
        args = build_parser().parse_args(["--environment", "test", "plan", "--expired-only", "--all"])
        assert args.environment == "test"
        assert args.expired_only and args.all

    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])
        assert (args.host, args.port) == ("127.0.0.1", 8080)

    def test_rejects_unknown_environment(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--environment", "staging"])


class TestMain:

    def test_default_is_sync(self):
        cfg = MagicMock()
        with patch("membersync.__main__.load_config", return_value=cfg), \
             patch("membersync.sync.synchronize_mailing_list", return_value=ApplySummary()) as job:
            main([])
        job.assert_called_once_with(cfg, dry_run=False)

    def test_remove_expired(self):
        cfg = MagicMock()
        with patch("membersync.__main__.load_config", return_value=cfg), \
             patch("membersync.sync.remove_expired_members", return_value=ApplySummary()) as job:
            main(["remove-expired", "--dry-run"])
        job.assert_called_once_with(cfg, dry_run=True)

    def test_failed_sync_exits_1(self):
        summary = ApplySummary(num_failed=1)
        with patch("membersync.__main__.load_config"), \
             patch("membersync.sync.synchronize_mailing_list", side_effect=SyncFailedError(summary)):
            with pytest.raises(SystemExit) as exc_info:
                main(["sync"])
        assert exc_info.value.code == 1

    def test_config_error_exits_2(self):
        with patch("membersync.__main__.load_config", side_effect=ConfigError("bad")):
            with pytest.raises(SystemExit) as exc_info:
                main(["sync"])
        assert exc_info.value.code == 2

    def test_plan_prints_table(self):
        roster, directory, notifier = MagicMock(), MagicMock(), MagicMock()
        with patch("membersync.__main__.load_config"), \
             patch("membersync.sync.build_clients", return_value=(roster, directory, notifier)), \
             patch("membersync.sync.plan_changes", return_value=[]) as plan_changes:
            main(["plan", "--expired-only"])
        notifier.close.assert_called_once()
        assert plan_changes.call_args.args[2].value == "remove_expired"
