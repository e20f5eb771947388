"""Tests for the mapping template commands."""

import json

import pytest
from typer.testing import CliRunner

from pharmadesk.cli import app


@pytest.fixture
def runner():
    """Create a CLI runner for testing."""
    return CliRunner()


def _list(runner, data_type="Inventory"):
    result = runner.invoke(app, ["templates", "list", "--type", data_type, "--format", "json"])
    assert result.exit_code == 0
    return json.loads(result.stdout)


class TestTemplateCommands:
    """Test cases for the templates commands."""

    def test_save_and_list(self, runner, cli_home):
        """Test saving explicit mappings."""
        result = runner.invoke(
            app,
            [
                "templates", "save", "legacy-pos", "--type", "Inventory",
                "--source-system", "Legacy POS", "--map", "Item=name", "--map", "MRP = selling_price",
            ],
        )  # fmt: skip

        assert result.exit_code == 0
        assert "Saved mapping template 'legacy-pos'" in result.stdout

        output = _list(runner)
        assert output["total_count"] == 1
        template = output["templates"][0]
        assert template["name"] == "legacy-pos"
        assert template["source_system"] == "Legacy POS"
        assert template["mappings"] == {"Item": "name", "MRP": "selling_price"}
        assert _list(runner, "Patients")["total_count"] == 0

    def test_save_from_file(self, runner, cli_home):
        """Test detecting mappings from a sample export."""
        sample = cli_home / "sample.csv"
        sample.write_text("Patient Name,Mobile,Remarks\nAsha,9876543210,\n")

        result = runner.invoke(
            app, ["templates", "save", "clinic", "-t", "Patients", "--from-file", str(sample)]
        )

        assert result.exit_code == 0
        assert _list(runner, "Patients")["templates"][0]["mappings"] == {
            "Patient Name": "patient_name",
            "Mobile": "phone_number",
        }

    def test_explicit_mapping_overrides_detected(self, runner, cli_home):
        """Test that --map wins over a detected mapping."""
        sample = cli_home / "sample.csv"
        sample.write_text("MRP,Qty\n30,1\n")

        runner.invoke(
            app,
            ["templates", "save", "pos", "-t", "Inventory", "--from-file", str(sample), "--map", "MRP=unit_cost"],
        )

        assert _list(runner)["templates"][0]["mappings"] == {"MRP": "unit_cost", "Qty": "quantity"}

    def test_save_requires_mappings(self, runner, cli_home):
        """Test that a template needs at least one mapping."""
        result = runner.invoke(app, ["templates", "save", "empty", "--type", "Inventory"])

        assert result.exit_code == 1
        assert "No mappings given" in result.stdout

    def test_save_rejects_malformed_mapping(self, runner, cli_home):
        """Test that mappings must be Header=field pairs."""
        result = runner.invoke(app, ["templates", "save", "bad", "-t", "Inventory", "--map", "MRP"])

        assert result.exit_code == 1
        assert "Invalid mapping 'MRP'" in result.stdout

    def test_delete(self, runner, cli_home):
        """Test deleting a template by id."""
        runner.invoke(app, ["templates", "save", "pos", "-t", "Inventory", "--map", "MRP=selling_price"])
        template_id = _list(runner)["templates"][0]["id"]

        result = runner.invoke(app, ["templates", "delete", template_id, "--yes"])

        assert result.exit_code == 0
        assert _list(runner)["total_count"] == 0

    def test_delete_cancelled(self, runner, cli_home):
        """Test that declining the prompt keeps the template."""
        runner.invoke(app, ["templates", "save", "pos", "-t", "Inventory", "--map", "MRP=selling_price"])
        template_id = _list(runner)["templates"][0]["id"]

        result = runner.invoke(app, ["templates", "delete", template_id], input="n\n")

        assert result.exit_code == 0
        assert "Deletion cancelled" in result.stdout
        assert _list(runner)["total_count"] == 1

    def test_list_empty_table(self, runner, cli_home):
        """Test the table output without templates."""
        result = runner.invoke(app, ["templates", "list", "--type", "Prescriptions"])

        assert result.exit_code == 0
        assert "No mapping templates found for Prescriptions" in result.stdout
