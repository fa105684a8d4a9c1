"""Unit tests for the age-plugin-fido2prf command line."""

from unittest.mock import patch

import pytest

from fido2prf.core.exceptions import AmbiguousDeviceError, PINError, ProtocolError
from fido2prf.frontend.cli import app


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def mock_generate():
    """Patches read_pin and new_credential within the CLI module."""
    with patch("fido2prf.frontend.cli.app.read_pin", return_value="1234") as read_pin, \
            patch("fido2prf.frontend.cli.app.new_credential") as new_credential:
        yield {"read_pin": read_pin, "new_credential": new_credential}


@pytest.fixture
def mock_plugin():
    with patch("fido2prf.frontend.cli.app.Plugin") as plugin_cls:
        plugin_cls.return_value.run.return_value = 0
        yield plugin_cls


# ==============================================================================
# Tests: --generate
# ==============================================================================

def test_generate_prints_identity(mock_generate, capsys):
    mock_generate["new_credential"].return_value = "AGE-PLUGIN-FIDO2PRF-1TEST"

    assert app.main(["--generate", "example.com"]) == 0

    mock_generate["new_credential"].assert_called_once_with("example.com", "1234")
    assert capsys.readouterr().out.strip() == "AGE-PLUGIN-FIDO2PRF-1TEST"


def test_generate_reports_errors(mock_generate, capsys):
    mock_generate["new_credential"].side_effect = AmbiguousDeviceError(
        "multiple FIDO2 devices found, please remove all but one"
    )

    assert app.main(["--generate", "example.com"]) == 1
    assert "Error: multiple FIDO2 devices found" in capsys.readouterr().out


def test_generate_pin_read_failure(mock_generate, capsys):
    mock_generate["read_pin"].side_effect = PINError("could not read the PIN")

    assert app.main(["--generate", "example.com"]) == 1
    mock_generate["new_credential"].assert_not_called()


def test_read_pin_uses_getpass_on_stderr():
    with patch("fido2prf.frontend.cli.app.getpass.getpass", return_value="9999") as gp:
        assert app.read_pin() == "9999"
    assert gp.call_args.kwargs["stream"] is app.sys.stderr


def test_read_pin_eof_is_pin_error():
    with patch("fido2prf.frontend.cli.app.getpass.getpass", side_effect=EOFError):
        with pytest.raises(PINError):
            app.read_pin()


# ==============================================================================
# Tests: --age-plugin
# ==============================================================================

@pytest.mark.parametrize("state_machine", ["recipient-v1", "identity-v1"])
def test_plugin_mode_runs_state_machine(mock_plugin, state_machine):
    assert app.main([f"--age-plugin={state_machine}"]) == 0
    mock_plugin.return_value.run.assert_called_once_with(state_machine)


def test_plugin_mode_unknown_state_machine(mock_plugin, capsys):
    assert app.main(["--age-plugin=recipient-v9"]) == 1
    mock_plugin.assert_not_called()
    assert "unknown state machine" in capsys.readouterr().err


def test_plugin_mode_protocol_error(mock_plugin, capsys):
    mock_plugin.return_value.run.side_effect = ProtocolError("unexpected end of input from age")
    assert app.main(["--age-plugin=identity-v1"]) == 1
    assert "unexpected end of input" in capsys.readouterr().err


# ==============================================================================
# Tests: usage
# ==============================================================================

def test_no_arguments_prints_usage(capsys):
    assert app.main([]) == 1
    assert "usage:" in capsys.readouterr().err


def test_parser_options():
    args = app.build_parser().parse_args(["--generate", "rp.example"])
    assert args.generate == "rp.example"
    assert args.state_machine is None
