from typer.testing import CliRunner

from client.chat_cli import app

runner = CliRunner()


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("send", "fetch", "chat"):
        assert name in result.output


def test_send_without_credentials_fails_cleanly():
    result = runner.invoke(app, ["send", "bob", "hello"])
    assert result.exit_code == 1
    assert "ConfigMissing" in result.output
    assert "Username not found" in result.output


def test_bad_server_address_fails_cleanly():
    result = runner.invoke(app, ["fetch", "-u", "alice", "-p", "secret", "--server", "nowhere"])
    assert result.exit_code == 1
    assert "ConfigMissing" in result.output
