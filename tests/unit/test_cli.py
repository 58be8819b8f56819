"""Unit tests for the command-line entry point."""

from unittest.mock import Mock, patch

import pytest

from aws_tutorials import cli
from aws_tutorials.config import CleanupMode
from aws_tutorials.core.tutorial import EXIT_FAILURE, EXIT_INTERRUPTED


class TestList:
    """Test the list command."""

    def test_lists_slugs_and_titles(self, capsys):
        assert cli.main(["list"]) == 0

        out = capsys.readouterr().out
        assert "s3-getting-started" in out
        assert "Amazon S3 Getting Started" in out
        assert "redshift-serverless" in out


class TestRun:
    """Test the run command."""

    @patch("aws_tutorials.cli.get_tutorial")
    def test_run_returns_exit_code(self, mock_get_tutorial):
        tutorial_cls = Mock()
        tutorial_cls.return_value.run.return_value.exit_code = EXIT_INTERRUPTED
        mock_get_tutorial.return_value = tutorial_cls

        code = cli.main(["run", "ec2-basics", "--cleanup", "on-error", "--region", "eu-west-1"])

        assert code == EXIT_INTERRUPTED
        mock_get_tutorial.assert_called_once_with("ec2-basics")
        tutorial_cls.assert_called_once_with(cleanup_mode=CleanupMode.ON_ERROR, region="eu-west-1")

    @patch("aws_tutorials.cli.get_tutorial")
    def test_run_defaults(self, mock_get_tutorial):
        tutorial_cls = Mock()
        tutorial_cls.return_value.run.return_value.exit_code = 0
        mock_get_tutorial.return_value = tutorial_cls

        assert cli.main(["run", "vpc-peering"]) == 0
        tutorial_cls.assert_called_once_with(cleanup_mode=None, region=None)

    def test_unknown_tutorial(self):
        assert cli.main(["run", "no-such-tutorial"]) == EXIT_FAILURE

    def test_invalid_cleanup_mode(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["run", "ec2-basics", "--cleanup", "sometimes"])
        assert exc_info.value.code == 2

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.main([])
