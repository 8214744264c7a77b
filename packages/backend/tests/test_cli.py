"""CLI tests — secret generation and the unreachable-backend path."""

from click.testing import CliRunner

from inkwell.cli.main import cli


def test_gen_secrets_prints_distinct_pair():
    result = CliRunner().invoke(cli, ["gen-secrets"])
    assert result.exit_code == 0

    lines = result.output.strip().splitlines()
    assert len(lines) == 2
    env = dict(line.split("=", 1) for line in lines)
    assert set(env) == {"INKWELL_ACCESS_TOKEN_SECRET", "INKWELL_REFRESH_TOKEN_SECRET"}
    assert env["INKWELL_ACCESS_TOKEN_SECRET"] != env["INKWELL_REFRESH_TOKEN_SECRET"]
    assert all(len(v) >= 32 for v in env.values())


def test_whoami_backend_unreachable():
    result = CliRunner().invoke(
        cli,
        [
            "whoami",
            "--email", "alice@example.com",
            "--password", "pw12345678",
            "--api-url", "http://127.0.0.1:9/api/v1",
        ],
    )
    assert result.exit_code == 1
    assert "not reachable" in result.output
