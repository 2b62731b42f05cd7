"""
Test the disaster recovery CLI
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from dr_automation.cli import cli

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "disaster_recovery.example.yaml"

HAZARD_YAML = """
recoverySteps:
  - {id: warm-cache, type: custom, order: 1, dependencies: [restart-api]}
  - {id: restart-api, type: service, order: 2}
"""


def _json_payload(output):
    return json.loads(output[output.index("{\n"):])


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DR_CONFIG_PATH", "DR_LOG_LEVEL", "DR_JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


class TestValidateCommand:
    """Test configuration validation"""

    def test_validate_example(self, runner):
        """Test the shipped example configuration is valid"""
        result = runner.invoke(cli, ["--log-level", "ERROR", "validate", str(EXAMPLE_CONFIG)])

        assert result.exit_code == 0
        assert "✓ Configuration valid" in result.output
        assert "Recovery steps: 5" in result.output
        assert "Notification channels: email, slack" in result.output

    def test_validate_missing_file(self, runner, tmp_path):
        """Test a missing file exits with status 1"""
        result = runner.invoke(cli, ["validate", str(tmp_path / "absent.yaml")])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_validate_invalid_config(self, runner, tmp_path):
        """Test a schema violation exits with status 1"""
        path = tmp_path / "bad.yaml"
        path.write_text("failureThreshold: 0\n")

        result = runner.invoke(cli, ["--log-level", "ERROR", "validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid disaster recovery configuration" in result.output

    def test_validate_uses_env_path(self, runner):
        """Test DR_CONFIG_PATH is used when no argument is given"""
        result = runner.invoke(
            cli, ["validate"],
            env={"DR_CONFIG_PATH": str(EXAMPLE_CONFIG), "DR_LOG_LEVEL": "ERROR"},
        )

        assert result.exit_code == 0
        assert str(EXAMPLE_CONFIG) in result.output

    def test_validate_without_any_path(self, runner):
        """Test a missing path and no environment fallback exits with status 1"""
        result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 1
        assert "No configuration given" in result.output


class TestPlanCommand:
    """Test the execution plan listing"""

    def test_plan_lists_steps_in_order(self, runner):
        """Test steps are listed by order with flags"""
        result = runner.invoke(cli, ["--log-level", "ERROR", "plan", str(EXAMPLE_CONFIG)])

        assert result.exit_code == 0
        assert "1. restore-database (database, order=1) [critical, rollback]" in result.output
        assert "5. validate-recovery (validation, order=5)" in result.output
        assert "depends on: apply-configuration" in result.output
        assert "Warnings:" not in result.output

    def test_plan_reports_hazards(self, runner, tmp_path):
        """Test a dependency ordered after its dependent is flagged"""
        path = tmp_path / "hazard.yaml"
        path.write_text(HAZARD_YAML)

        result = runner.invoke(cli, ["--log-level", "ERROR", "plan", str(path)])

        assert result.exit_code == 0
        assert "! warm-cache depends on restart-api, which runs later" in result.output


class TestDrillCommand:
    """Test simulated recovery drills"""

    def test_drill_completes(self, runner):
        """Test a drill without failures completes every step"""
        result = runner.invoke(
            cli,
            ["--log-level", "ERROR", "drill", str(EXAMPLE_CONFIG), "--system", "database"],
        )

        assert result.exit_code == 0
        payload = _json_payload(result.output)
        assert payload["status"] == "completed"
        assert payload["progress"] == 100
        assert [s["status"] for s in payload["steps"]] == ["completed"] * 5
        assert payload["steps"][0]["output"] == "Simulated database recovery: restore-db --latest"

    def test_drill_with_failing_critical_step(self, runner):
        """Test a failing critical step exits with status 2"""
        result = runner.invoke(
            cli,
            ["--log-level", "ERROR", "drill", str(EXAMPLE_CONFIG), "--fail", "restart-services"],
        )

        assert result.exit_code == 2
        payload = _json_payload(result.output)
        statuses = {s["step_id"]: s["status"] for s in payload["steps"]}
        assert payload["status"] == "failed"
        assert statuses["restart-services"] == "failed"
        assert statuses["validate-recovery"] == "pending"
        assert payload["progress"] == 60

    def test_drill_rejects_unknown_failing_step(self, runner):
        """Test unknown --fail ids exit with status 1"""
        result = runner.invoke(cli, ["drill", str(EXAMPLE_CONFIG), "--fail", "nope"])

        assert result.exit_code == 1
        assert "Unknown step ids: nope" in result.output
