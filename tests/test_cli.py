"""Command-line interface tests."""

import json

import pytest
import yaml

from boxoffice.cli import BoxOfficeCLI, CLIError, OutputFormat, format_output, main


def _run(capsys, *argv):
    code = main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err


class TestFormatOutput:

    def test_json(self):
        assert json.loads(format_output({"a": 1})) == {"a": 1}

    def test_yaml(self):
        assert yaml.safe_load(format_output({"a": [1, 2]}, OutputFormat.YAML)) == {"a": [1, 2]}

    def test_text(self):
        text = format_output({"chain_id": 31337, "accounts": [{"index": 0}]}, OutputFormat.TEXT)
        assert "chain_id: 31337" in text
        assert "accounts:" in text
        assert "index: 0" in text


class TestAccountsCommand:

    def test_accounts(self, capsys):
        code, out, _ = _run(capsys, "accounts", "--count", "3")
        data = json.loads(out)
        assert code == 0
        assert data["chain_id"] == 31337
        assert [a["index"] for a in data["accounts"]] == [0, 1, 2]

    def test_negative_count(self, capsys):
        code, _, err = _run(capsys, "accounts", "--count", "-1")
        assert code == 1
        assert "--count must be non-negative" in err

    def test_yaml_format(self, capsys):
        code, out, _ = _run(capsys, "--format", "yaml", "accounts", "-n", "1")
        assert code == 0
        assert len(yaml.safe_load(out)["accounts"]) == 1


class TestSimulateCommand:

    def test_single_purchase(self, capsys):
        code, out, _ = _run(capsys, "simulate")
        data = json.loads(out)

        assert code == 0
        assert data["event"] == "2022-in-person"
        assert data["token"] == "dai"
        assert data["price"] == "33.0"
        assert data["purchases"][0]["status"] == "ok"
        assert data["purchases"][0]["token_id"] == 1
        assert data["tickets_sold"] == 1
        assert data["balances"] == {"ticket_contract": "33.0", "treasury": "0.0"}

    def test_sold_out_and_withdraw(self, capsys):
        code, out, _ = _run(capsys, "simulate", "--purchases", "2", "--token", "USDC", "--withdraw")
        data = json.loads(out)

        assert code == 0
        first, second = data["purchases"]
        assert first["status"] == "ok"
        assert second == {"buyer": second["buyer"], "status": "reverted", "reason": "Error"}
        assert data["tickets_sold"] == 1
        assert data["withdrawn"] == {"usdc": "33.0"}
        assert data["balances"] == {"ticket_contract": "0.0", "treasury": "33.0"}

    def test_virtual_purchase(self, capsys):
        code, out, _ = _run(capsys, "simulate", "--virtual", "--token", "gohm")
        data = json.loads(out)

        assert code == 0
        assert data["price"] == "3.0"
        assert data["purchases"][0]["token_id"] == 0

    def test_manifest(self, capsys, tmp_path):
        path = tmp_path / "sale.yaml"
        path.write_text(
            "inventory: 5\n"
            "events:\n"
            "  - tag: meetup\n"
            "    usd_price: 12\n",
            encoding="utf-8",
        )
        code, out, _ = _run(capsys, "simulate", "-m", str(path), "-p", "3")
        data = json.loads(out)

        assert code == 0
        assert data["event"] == "meetup"
        assert [p["token_id"] for p in data["purchases"]] == [1, 2, 3]
        assert data["balances"]["ticket_contract"] == "36.0"

    def test_unknown_token(self, capsys):
        code, _, err = _run(capsys, "simulate", "--token", "weth")
        assert code == 1
        assert "Unknown payment token" in err

    def test_unpriced_event(self, capsys):
        code, _, err = _run(capsys, "simulate", "--event", "2030-in-person")
        assert code == 2
        assert "Ticket price not set" in err

    def test_too_many_buyers(self, capsys):
        code, _, err = _run(capsys, "simulate", "--purchases", "50")
        assert code == 1
        assert "available buyer accounts" in err


class TestManifestCommand:

    def test_validate_ok(self, capsys, tmp_path):
        path = tmp_path / "sale.yaml"
        path.write_text("events:\n  - tag: a\n  - tag: b\n", encoding="utf-8")
        code, out, _ = _run(capsys, "manifest", "validate", str(path))
        assert code == 0
        assert json.loads(out) == {"valid": True, "events": ["a", "b"]}

    def test_validate_invalid(self, capsys, tmp_path):
        path = tmp_path / "sale.yaml"
        path.write_text("events: []\n", encoding="utf-8")
        code, _, err = _run(capsys, "--quiet", "manifest", "validate", str(path))
        assert code == 2
        assert "Error:" not in err


class TestConfigCommand:

    def test_show_masks_secrets(self, capsys):
        code, out, _ = _run(capsys, "config", "show")
        assert code == 0
        assert json.loads(out)["chain"]["mnemonic"] == "***"

    def test_config_file(self, capsys, tmp_path):
        path = tmp_path / "boxoffice.yaml"
        path.write_text("chain:\n  chain_id: 1337\n", encoding="utf-8")
        code, out, _ = _run(capsys, "--config", str(path), "config", "show")
        assert code == 0
        assert json.loads(out)["chain"]["chain_id"] == 1337

    def test_bad_config_file(self, capsys, tmp_path):
        code, _, err = _run(capsys, "--config", str(tmp_path / "missing.yaml"), "config", "show")
        assert code == 2
        assert "Configuration file not found" in err

    def test_validate(self, capsys):
        code, out, _ = _run(capsys, "config", "validate")
        assert code == 0
        assert json.loads(out)["valid"] is True

    def test_validate_reports_env_errors(self, capsys, monkeypatch):
        monkeypatch.setenv("BOXOFFICE_BLOCK_TIME", "0")
        code, _, err = _run(capsys, "config", "validate")
        assert code == 2
        assert "chain.block_time_seconds" in err

    def test_schema(self, capsys):
        code, out, _ = _run(capsys, "config", "schema")
        assert code == 0
        assert "observability" in json.loads(out)["properties"]


def test_no_command_prints_help(capsys):
    code, out, _ = _run(capsys)
    assert code == 0
    assert "usage: boxoffice" in out


def test_missing_subcommand(capsys):
    code, _, err = _run(capsys, "config")
    assert code == 1
    assert "Unknown command: config" in err


def test_cli_error_exit_code():
    assert CLIError("x", exit_code=3).exit_code == 3
    assert BoxOfficeCLI().parser.parse_args(["accounts"]).count is None


@pytest.mark.parametrize("var,value", [
    ("BOXOFFICE_LOG_LEVEL", "bogus"),
    ("BOXOFFICE_CHAIN_ID", "abc"),
    ("BOXOFFICE_ACCOUNT_COUNT", "0"),
])
def test_bad_environment_setting(capsys, monkeypatch, var, value):
    monkeypatch.setenv(var, value)
    code, _, err = _run(capsys, "accounts")
    assert code == 2
    assert var in err
