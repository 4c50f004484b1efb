"""Tests for ``flagresolve resolve``."""

from __future__ import annotations

import json
from pathlib import Path

from flagresolve.cli.main import cli


class TestResolveCommand:
    """Exit codes, JSON output, overrides."""

    def test_help(self, runner) -> None:
        result = runner.invoke(cli, ["resolve", "--help"])
        assert result.exit_code == 0
        assert "CONFIG_PATH" in result.output

    def test_text_output(self, runner, ecc_config: Path) -> None:
        result = runner.invoke(cli, ["resolve", str(ecc_config)])
        assert result.exit_code == 0
        assert "Resolution converged" in result.output
        assert "notice:" in result.output

    def test_json_output(self, runner, ecc_config: Path) -> None:
        result = runner.invoke(cli, ["resolve", str(ecc_config), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["state"] == "converged"
        assert data["requested"] == ["ecdsa-verify"]
        assert data["capabilities"]["ecdsa-verify"]["available"] is True
        assert data["flags"]["MBEDTLS_PK_PARSE_EC_COMPRESSED"] == "enabled"
        assert [n["flag"] for n in data["notices"]] == ["MBEDTLS_PK_PARSE_EC_COMPRESSED"]
        # Internal aliases are hidden unless asked for.
        assert "MBEDTLS_ECP_LIGHT" not in data["flags"]

    def test_show_internal(self, runner, ecc_config: Path) -> None:
        result = runner.invoke(
            cli, ["resolve", str(ecc_config), "--format", "json", "--show-internal"]
        )
        assert json.loads(result.output)["flags"]["MBEDTLS_ECP_LIGHT"] == "enabled"

    def test_without_config_file(self, runner) -> None:
        result = runner.invoke(cli, ["resolve", "-e", "MBEDTLS_MD_C", "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["explicit"] == {"MBEDTLS_MD_C": "command line"}

    def test_conflict_exit_code(self, runner) -> None:
        result = runner.invoke(
            cli,
            [
                "resolve",
                "-e", "MBEDTLS_PSA_CRYPTO_C",
                "-e", "MBEDTLS_RSA_C",
                "-d", "MBEDTLS_PK_WRITE_C",
                "--format", "json",
            ],
        )
        assert result.exit_code == 1
        error = json.loads(result.output)["error"]
        assert error["type"] == "ConflictError"
        assert error["flag"] == "MBEDTLS_PK_WRITE_C"
        assert error["source"] == "command line"
        assert error["rules"] == ["MBEDTLS_PK_WRITE_C <= MBEDTLS_PSA_CRYPTO_C && MBEDTLS_RSA_C"]

    def test_conflict_text(self, runner) -> None:
        result = runner.invoke(
            cli, ["resolve", "-e", "MBEDTLS_PSA_CRYPTO_C", "-d", "MBEDTLS_PSA_CRYPTO_CLIENT"]
        )
        assert result.exit_code == 1
        assert "Resolution failed" in result.output

    def test_unsatisfiable_request(self, runner) -> None:
        result = runner.invoke(cli, ["resolve", "-r", "ecdh", "--format", "json"])
        assert result.exit_code == 1
        error = json.loads(result.output)["error"]
        assert error["type"] == "UnsatisfiableRequestError"
        assert error["findings"][0]["subject"] == "ecdh"

    def test_command_line_overrides_file(self, runner, ecc_config: Path) -> None:
        result = runner.invoke(
            cli,
            ["resolve", str(ecc_config), "-d", "MBEDTLS_ECDSA_C", "--format", "json"],
        )
        # Without builtin ECDSA the requested verify capability is gone.
        assert result.exit_code == 1
        assert json.loads(result.output)["error"]["type"] == "UnsatisfiableRequestError"

    def test_bad_config_file(self, runner, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("flags:\n  MBEDTLS_MD_C: sometimes\n", encoding="utf-8")
        result = runner.invoke(cli, ["resolve", str(path), "--format", "json"])
        assert result.exit_code == 2
        assert json.loads(result.output)["error"]["type"] == "ConfigError"

    def test_missing_config_file(self, runner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["resolve", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 2

    def test_output_file(self, runner, ecc_config: Path, tmp_path: Path) -> None:
        out = tmp_path / "resolved.json"
        result = runner.invoke(cli, ["resolve", str(ecc_config), "-o", str(out)])
        assert result.exit_code == 0
        assert json.loads(out.read_text(encoding="utf-8"))["state"] == "converged"

    def test_json_output_is_reproducible(self, runner, ecc_config: Path) -> None:
        first = runner.invoke(cli, ["resolve", str(ecc_config), "--format", "json"])
        second = runner.invoke(cli, ["resolve", str(ecc_config), "--format", "json"])
        assert first.output == second.output


class TestMainGroup:
    """Top-level group options."""

    def test_version(self, runner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "legacy-crypto@" in result.output

    def test_verbose_flag(self, runner, restore_logging) -> None:
        result = runner.invoke(cli, ["-v", "resolve", "-e", "MBEDTLS_RSA_C", "--format", "json"])
        assert result.exit_code == 0
