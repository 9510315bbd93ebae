"""Unit tests for the scaffold-e2e command line."""

import json
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from scaffold_e2e.context import TeardownReport
from scaffold_e2e.errors import CommandError, SetupError, StepFailure
from scaffold_e2e.main import cli
from scaffold_e2e.scenario import ScenarioResult, ScenarioState
from scaffold_e2e.steps import Step


@pytest.fixture
def runner():
    """Create CLI runner."""
    return CliRunner()


class TestConfigShow:
    """Tests for scaffold-e2e config show."""

    def test_yaml_output(self, runner, tmp_path):
        """Test effective values and their sources are shown."""
        path = tmp_path / "e2e.yaml"
        path.write_text(yaml.dump({"kind_cluster": "ci"}))

        result = runner.invoke(cli, ["-c", str(path), "config", "show"])

        assert result.exit_code == 0
        assert "kind_cluster: ci" in result.output
        assert "sources:" in result.output
        assert "config file" in result.output

    def test_json_output(self, runner, monkeypatch):
        """Test JSON output carries config and sources."""
        monkeypatch.setenv("SCAFFOLD_E2E_POLL_TIMEOUT", "90")

        result = runner.invoke(cli, ["config", "show", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["config"]["poll_timeout"] == 90.0
        assert data["sources"]["poll_timeout"] == "environment"
        assert data["sources"]["kubectl_bin"] == "default"

    def test_missing_config_file(self, runner, tmp_path):
        """Test a missing explicit config file exits 1."""
        result = runner.invoke(cli, ["-c", str(tmp_path / "nope.yaml"), "config", "show"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestRunCommand:
    """Tests for scaffold-e2e run."""

    @pytest.fixture
    def scenario_class(self):
        """Patch the scenario and process-wide side effects of run."""
        with (
            patch("scaffold_e2e.scenario.WebhookScenario") as mock_class,
            patch("scaffold_e2e.main.configure_logging"),
            patch("scaffold_e2e.main.signal.signal"),
        ):
            yield mock_class

    def test_passed_exits_zero(self, runner, scenario_class):
        """Test a passing scenario exits 0."""
        scenario_class.return_value.run.return_value = ScenarioResult(
            suffix="abcd",
            state=ScenarioState.TORNDOWN,
            teardown=TeardownReport(),
            checks=["controller pod running"],
        )

        result = runner.invoke(cli, ["run"])

        assert result.exit_code == 0

    def test_failed_exits_one(self, runner, scenario_class):
        """Test a failing scenario exits 1."""
        step = Step("build image", ("make", "docker-build"))
        scenario_class.return_value.run.return_value = ScenarioResult(
            suffix="abcd",
            state=ScenarioState.TORNDOWN,
            failed_in=ScenarioState.BUILT,
            failure=StepFailure.for_step(step, CommandError("exit status 2")),
            teardown=TeardownReport(),
        )

        result = runner.invoke(cli, ["run"])

        assert result.exit_code == 1

    def test_options_override_config(self, runner, scenario_class):
        """Test command-line options win over loaded config."""
        scenario_class.return_value.run.return_value = ScenarioResult(suffix="abcd")

        runner.invoke(
            cli,
            ["run", "--keep-workspace", "--no-cert-manager", "--poll-timeout", "300"],
        )

        config = scenario_class.call_args.args[0]
        assert config.keep_workspace is True
        assert config.install_cert_manager is False
        assert config.poll_timeout == 300.0

    def test_verbosity_sets_log_level(self, runner, scenario_class):
        """Test -vv enables debug logging."""
        scenario_class.return_value.run.return_value = ScenarioResult(suffix="abcd")

        with patch("scaffold_e2e.main.configure_logging") as mock_logging:
            runner.invoke(cli, ["-vv", "run"])

        assert mock_logging.call_args.args[0] == "debug"

    def test_context_allocation_failure(self, runner, scenario_class):
        """Test a setup error before the run starts is reported without a traceback."""
        scenario_class.return_value.run.side_effect = SetupError(
            "Could not allocate a unique test suffix"
        )

        result = runner.invoke(cli, ["run"])

        assert result.exit_code == 1
        assert "Error: Could not allocate a unique test suffix" in result.output
        assert not isinstance(result.exception, SetupError)
