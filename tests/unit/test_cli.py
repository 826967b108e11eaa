"""Tests for the abilitykit command line."""
from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from abilitykit import __version__
from abilitykit.cli.main import cli

RULES_YAML = textwrap.dedent(
    """\
    version: "1.0"
    aliases:
      modify: [update, destroy]
    rules:
      - effect: grant
        actions: read
        subjects: all
        reason: Everyone reads
      - effect: deny
        actions: read
        subjects: Order
        conditions:
          status: secret
      - effect: grant
        actions: modify
        subjects: Order
        conditions:
          owner_id: {$var: actor.id}
    """
)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def rules_file(tmp_path: Path) -> Path:
    path = tmp_path / "abilities.yaml"
    path.write_text(RULES_YAML, encoding="utf-8")
    return path


def invoke(runner: CliRunner, *args: str) -> Result:
    return runner.invoke(cli, list(args))


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


class TestVersion:
    def test_version_command(self, runner: CliRunner) -> None:
        result = invoke(runner, "version")
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = invoke(runner, "--help")
        assert result.exit_code == 0
        for command in ("check", "filter", "rules", "aliases", "version"):
            assert command in result.output


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    def test_allowed_record(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "check", "-r", str(rules_file), "-a", "show", "-s", "Order",
            "--record", '{"status": "open"}', "--var", 'actor={"id": 1}',
        )
        assert result.exit_code == 0, result.output
        assert "ALLOWED" in result.output
        assert "Everyone reads" in result.output

    def test_denied_record(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "check", "-r", str(rules_file), "-a", "read", "-s", "Order",
            "--record", '{"status": "secret"}', "--var", 'actor={"id": 1}',
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output
        assert "Deciding rule" in result.output

    def test_owner_variable(self, runner: CliRunner, rules_file: Path) -> None:
        args = ["check", "-r", str(rules_file), "-a", "destroy", "-s", "Order", "--var", 'actor={"id": 7}']
        assert invoke(runner, *args, "--record", '{"owner_id": 7}').exit_code == 0
        assert invoke(runner, *args, "--record", '{"owner_id": 8}').exit_code == 1

    def test_type_only_check(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "check", "-r", str(rules_file), "-a", "update", "-s", "Order",
            "--var", 'actor={"id": 7}',
        )
        assert result.exit_code == 1
        assert "No rule grants" in result.output

    def test_named_subject(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "check", "-r", str(rules_file), "-a", "index", "-s", "dashboard",
            "--var", 'actor={"id": 7}',
        )
        assert result.exit_code == 0

    def test_unresolved_variable_is_config_error(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(runner, "check", "-r", str(rules_file), "-a", "read", "-s", "Order")
        assert result.exit_code == 2

    def test_invalid_record_json(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "check", "-r", str(rules_file), "-a", "read", "-s", "Order",
            "--record", "{not json", "--var", 'actor={"id": 1}',
        )
        assert result.exit_code == 2

    def test_invalid_rule_file(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("version: '9'\n", encoding="utf-8")
        result = invoke(runner, "check", "-r", str(path), "-a", "read", "-s", "Order")
        assert result.exit_code == 2

    def test_missing_rule_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = invoke(runner, "check", "-r", str(tmp_path / "nope.yaml"), "-a", "read", "-s", "Order")
        assert result.exit_code == 2

    def test_bad_var_syntax(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(runner, "check", "-r", str(rules_file), "-a", "read", "-s", "Order", "--var", "actor")
        assert result.exit_code == 2
        assert "NAME=JSON" in result.output

    def test_verbose_flag(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "-v", "check", "-r", str(rules_file), "-a", "read", "-s", "Order",
            "--record", '{"status": "open"}', "--var", 'actor={"id": 1}',
        )
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# filter
# ---------------------------------------------------------------------------


class TestFilter:
    def test_prints_mongo_query(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "filter", "-r", str(rules_file), "-a", "read", "-s", "Order",
            "--var", 'actor={"id": 1}',
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"$nor": [{"status": "secret"}]}

    def test_owner_filter(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "filter", "-r", str(rules_file), "-a", "update", "-s", "Order",
            "--var", 'actor={"id": 7}',
        )
        assert json.loads(result.output) == {"owner_id": 7}

    def test_no_rules_matches_nothing(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "filter", "-r", str(rules_file), "-a", "archive", "-s", "Order",
            "--var", 'actor={"id": 7}',
        )
        assert json.loads(result.output) == {"_id": {"$exists": False}}

    def test_unknown_subject(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(
            runner, "filter", "-r", str(rules_file), "-a", "read", "-s", "Invoice",
            "--var", 'actor={"id": 7}',
        )
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# rules / aliases
# ---------------------------------------------------------------------------


class TestListings:
    def test_rules_table(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(runner, "rules", "-r", str(rules_file))
        assert result.exit_code == 0
        assert "grant" in result.output
        assert "deny" in result.output
        assert "Order" in result.output

    def test_rules_empty_file(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("version: '1.0'\n", encoding="utf-8")
        result = invoke(runner, "rules", "-r", str(path))
        assert result.exit_code == 0
        assert "No rules defined" in result.output

    def test_aliases_table(self, runner: CliRunner, rules_file: Path) -> None:
        result = invoke(runner, "aliases", "-r", str(rules_file))
        assert result.exit_code == 0
        assert "modify" in result.output
        assert "destroy" in result.output
