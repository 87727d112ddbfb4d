"""Tests for CLI module"""

import signal

import pytest
from unittest.mock import patch, Mock

from eip_failover.cli import main, create_parser
from eip_failover.exceptions import CoordinationError, StaleAllocationError


@pytest.fixture
def mock_failover():
    with patch('eip_failover.cli.EIPFailover') as mock_cls:
        yield mock_cls


@pytest.fixture
def mock_config():
    with patch('eip_failover.cli.Config') as mock_cls:
        yield mock_cls


class TestCLI:
    """Test suite for CLI functionality"""

    def test_parser_defaults(self):
        """Test argument parser creation"""
        parser = create_parser()

        args = parser.parse_args([])
        assert args.prefix == 'nginx/eip/'
        assert args.config == '/etc/eip-failover/config.yaml'
        assert args.hold is False

    def test_parser_with_prefix(self):
        parser = create_parser()
        args = parser.parse_args(['--prefix', 'haproxy/eip/'])

        assert args.prefix == 'haproxy/eip/'

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(['--version'])

        assert excinfo.value.code == 0
        assert 'eip-failover 1.0.0' in capsys.readouterr().out

    def test_main_success(self, mock_config, mock_failover):
        """Test successful main execution"""
        exit_code = main(['--prefix', 'haproxy/eip/', '-c', '/tmp/config.yaml'])

        assert exit_code == 0
        mock_config.assert_called_once_with('/tmp/config.yaml')
        mock_failover.assert_called_once_with(mock_config.return_value, prefix='haproxy/eip/')
        instance = mock_failover.return_value
        instance.execute_failover.assert_called_once()
        instance.hold.assert_not_called()

    def test_main_hold(self, mock_config, mock_failover):
        """Test that --hold keeps the lock and installs a SIGTERM handler"""
        with patch('eip_failover.cli.signal.signal') as mock_signal:
            exit_code = main(['--hold'])

        assert exit_code == 0
        mock_failover.return_value.hold.assert_called_once()
        assert mock_signal.call_args[0][0] == signal.SIGTERM

    @pytest.mark.parametrize("error", [
        StaleAllocationError("Could not find EIP with AllocationId eipalloc-404"),
        CoordinationError("Failed to connect to Consul"),
    ])
    def test_main_fatal_error(self, mock_config, mock_failover, capsys, error):
        """Test that fatal errors exit non-zero with a diagnostic"""
        mock_failover.return_value.execute_failover.side_effect = error

        exit_code = main([])

        assert exit_code == 1
        assert str(error) in capsys.readouterr().err

    def test_main_unexpected_error(self, mock_config, mock_failover, capsys):
        mock_failover.return_value.execute_failover.side_effect = RuntimeError("boom")

        exit_code = main([])

        assert exit_code == 1
        assert "Fatal error: boom" in capsys.readouterr().err

    def test_main_interrupted(self, mock_config, mock_failover):
        mock_failover.return_value.execute_failover.side_effect = KeyboardInterrupt

        assert main([]) == 130

    def test_main_config_error(self):
        """Test main with configuration error"""
        exit_code = main(['-c', '/nonexistent/config.yaml'])

        assert exit_code == 1
