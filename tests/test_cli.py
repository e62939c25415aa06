"""Tests for the vpceip command line (adapter backed by the in-memory API)."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vpceip.cli.main import ERROR_LOG, cli, main
from vpceip.config import settings
from vpceip.providers.base import ResourceOperationError
from vpceip.providers.vpc.client import APIError, AuthenticationError, EndpointNotFoundError, VpcClientProvider


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def use_adapter(adapter):
    with patch("vpceip.cli.main._build_adapter", return_value=adapter) as m:
        yield m


def test_create(runner, use_adapter, fake_api):
    result = runner.invoke(cli, [
        "create", "--type", "5_bgp", "--bandwidth-name", "eip-bw",
        "--bandwidth-size", "10", "--share-type", "PER",
        "--value-spec", "enterprise_project_id=ep-1",
    ])
    assert result.exit_code == 0, result.output
    assert "allocated" in result.output
    body = fake_api.calls_for("POST", "publicips")[0][2]
    assert body["enterprise_project_id"] == "ep-1"


def test_create_with_port_binds_after_allocation(runner, use_adapter, fake_api):
    result = runner.invoke(cli, [
        "create", "--type", "5_bgp", "--bandwidth-name", "eip-bw",
        "--bandwidth-size", "10", "--share-type", "PER", "--port-id", "port-3",
    ])
    assert result.exit_code == 0, result.output
    (eip,) = fake_api.eips.values()
    assert eip["port_id"] == "port-3"


def test_create_rejects_bad_value_spec(runner, use_adapter):
    result = runner.invoke(cli, [
        "create", "--type", "5_bgp", "--bandwidth-name", "bw",
        "--bandwidth-size", "10", "--share-type", "PER", "--value-spec", "novalue",
    ])
    assert result.exit_code != 0
    assert "KEY=VALUE" in result.output


def test_show(runner, use_adapter, fake_api):
    eip_id = fake_api.seed()
    result = runner.invoke(cli, ["show", eip_id])
    assert result.exit_code == 0, result.output
    assert "198.51.100.7" in result.output
    assert "seeded-bw" in result.output


def test_show_missing(runner, use_adapter):
    result = runner.invoke(cli, ["show", "eip-missing"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_update_bandwidth(runner, use_adapter, fake_api):
    eip_id = fake_api.seed()
    result = runner.invoke(cli, ["update", eip_id, "--bandwidth-size", "20"])
    assert result.exit_code == 0, result.output
    assert fake_api.bandwidths[f"bw-{eip_id}"]["size"] == 20
    assert fake_api.calls_for("PUT", "publicips") == []


def test_update_nothing(runner, use_adapter, fake_api):
    eip_id = fake_api.seed()
    result = runner.invoke(cli, ["update", eip_id])
    assert result.exit_code == 0, result.output
    assert "Nothing to change" in result.output


def test_update_unbind(runner, use_adapter, fake_api):
    eip_id = fake_api.seed(status="ACTIVE", port_id="port-1")
    result = runner.invoke(cli, ["update", eip_id, "--unbind"])
    assert result.exit_code == 0, result.output
    assert fake_api.eips[eip_id]["port_id"] == ""


def test_delete(runner, use_adapter, fake_api):
    eip_id = fake_api.seed()
    result = runner.invoke(cli, ["delete", eip_id, "--yes"])
    assert result.exit_code == 0, result.output
    assert eip_id not in fake_api.eips


class TestErrorsCommand:
    def test_lists_failed_operations(self, runner, use_adapter, fake_api):
        eip_id = fake_api.seed()
        fake_api.fail("DELETE", "publicips", APIError(409, "EIP is bound"))
        failed = runner.invoke(cli, ["delete", eip_id, "--yes"])
        assert isinstance(failed.exception, ResourceOperationError)

        result = runner.invoke(cli, ["errors", "--resource", eip_id])
        assert result.exit_code == 0, result.output
        assert "delete" in result.output
        assert "APIError" in result.output

    def test_failures_are_written_to_log_dir(self, runner, use_adapter, fake_api):
        runner.invoke(cli, ["update", "eip-unknown", "--port-id", "p"])
        fake_api.fail("GET", "publicips", APIError(503, "unavailable"))
        runner.invoke(cli, ["show", "eip-1"])

        log = settings.log_dir / ERROR_LOG
        (line,) = log.read_text().splitlines()
        assert json.loads(line)["operation"] == "read"

    def test_empty(self, runner):
        result = runner.invoke(cli, ["errors"])
        assert result.exit_code == 0, result.output
        assert "No recorded failures" in result.output

    def test_clear(self, runner, error_log):
        error_log.record("vpc_eip_v1", "read", RuntimeError("x"), resource_id="eip-1")
        result = runner.invoke(cli, ["errors", "--clear"])
        assert result.exit_code == 0, result.output
        assert error_log.count == 0


class TestMain:
    """The console entry point turns failures into a one-line error and exit code 1."""

    def _run(self, monkeypatch, capsys, *argv):
        monkeypatch.setattr("sys.argv", ["vpceip", *argv])
        with pytest.raises(SystemExit) as exc_info:
            main()
        return exc_info.value.code, capsys.readouterr().out

    def test_authentication_failure(self, monkeypatch, capsys):
        with patch("vpceip.cli.main._build_adapter", side_effect=AuthenticationError(401, "bad creds")):
            code, out = self._run(monkeypatch, capsys, "show", "eip-1")
        assert code == 1
        assert "bad creds" in out

    def test_endpoint_lookup_failure(self, monkeypatch, capsys):
        with patch.object(VpcClientProvider, "vpc_v1_client", side_effect=EndpointNotFoundError("no vpc endpoint")):
            code, out = self._run(monkeypatch, capsys, "endpoint", "--region", "xx-1")
        assert code == 1
        assert "no vpc endpoint" in out

    def test_invalid_configuration(self, monkeypatch, capsys, use_adapter, fake_api):
        code, out = self._run(
            monkeypatch, capsys,
            "create", "--type", "5_bgp", "--bandwidth-name", "bw",
            "--bandwidth-size", "0", "--share-type", "PER",
        )
        assert code == 1
        assert "Invalid configuration" in out
        assert fake_api.calls == []

    def test_operation_failure(self, monkeypatch, capsys, use_adapter, fake_api):
        fake_api.fail("GET", "publicips", APIError(503, "unavailable"))
        code, out = self._run(monkeypatch, capsys, "show", "eip-1")
        assert code == 1
        assert "Error retrieving EIP" in out
