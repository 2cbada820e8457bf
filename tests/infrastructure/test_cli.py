"""End-to-end CLI tests against a throwaway data directory."""

import re

import pytest
from click.testing import CliRunner

from wms.infrastructure.cli.main import cli


@pytest.fixture
def run(tmp_path):
    runner = CliRunner()
    env = {
        "WMS_DATA_DIR": str(tmp_path),
        "WMS_DATABASE_URL": "",
        "WMS_APPROVAL_THRESHOLDS_FILE": "",
        "WMS_LOG_LEVEL": "WARNING",
    }

    def invoke(*args: str):
        return runner.invoke(cli, list(args), env=env)

    return invoke


def _created_id(output: str) -> int:
    match = re.search(r"Document #(\d+) created", output)
    assert match, output
    return int(match.group(1))


class TestDocumentLifecycle:

    def test_receive_approve_issue(self, run):
        result = run(
            "stock", "receive", "--item", "CEMENT", "--warehouse", "WH1",
            "--qty", "10", "--unit-cost", "5", "--expiry", "2099-12-31",
        )
        assert result.exit_code == 0, result.output
        assert "Lot #1 received" in result.output
        assert run(
            "stock", "receive", "--item", "CEMENT", "--warehouse", "WH1", "--qty", "10", "--unit-cost", "7",
        ).exit_code == 0

        result = run("document", "create", "--type", "mirv", "--warehouse", "WH1", "--lines", "CEMENT:12@6")
        assert result.exit_code == 0, result.output
        doc_id = str(_created_id(result.output))

        result = run("document", "submit", "--id", doc_id)
        assert result.exit_code == 0, result.output
        assert "warehouse_staff" in result.output

        result = run("document", "approve", "--id", doc_id)
        assert result.exit_code == 0, result.output
        assert "stock reserved" in result.output

        result = run("document", "issue", "--id", doc_id)
        assert result.exit_code == 0, result.output
        assert f"Document #{doc_id} issued." in result.output
        # expiring lot first: 10 @ 5 + 2 @ 7
        assert "64.00" in result.output

        result = run("document", "show", "--id", doc_id)
        assert result.exit_code == 0, result.output
        assert "status=issued" in result.output

        result = run("stock", "show")
        assert re.search(r"CEMENT\s+WH1\s+8\s+0\s+8", result.output), result.output

        result = run("stock", "verify")
        assert result.exit_code == 0
        assert "Ledger OK." in result.output

    def test_cancel_releases_reservation(self, run):
        run("stock", "receive", "--item", "REBAR", "--warehouse", "WH1", "--qty", "5", "--unit-cost", "2")
        doc_id = str(_created_id(
            run("document", "create", "--type", "mirv", "--warehouse", "WH1", "--lines", "REBAR:4@2").output
        ))
        run("document", "submit", "--id", doc_id)
        run("document", "approve", "--id", doc_id)

        result = run("document", "cancel", "--id", doc_id)
        assert result.exit_code == 0, result.output

        result = run("stock", "show")
        assert re.search(r"REBAR\s+WH1\s+5\s+0\s+5", result.output), result.output


class TestCliErrors:

    def test_approve_without_stock_fails(self, run):
        doc_id = str(_created_id(
            run("document", "create", "--type", "mirv", "--warehouse", "WH1", "--lines", "PIPE:3@1").output
        ))
        run("document", "submit", "--id", doc_id)

        result = run("document", "approve", "--id", doc_id)

        assert result.exit_code == 1
        assert "insufficient stock" in result.output

        shown = run("document", "show", "--id", doc_id)
        assert "status=pending_approval" in shown.output

    def test_issue_before_approval_fails(self, run):
        doc_id = str(_created_id(
            run("document", "create", "--type", "mirv", "--warehouse", "WH1", "--lines", "PIPE:3@1").output
        ))
        result = run("document", "issue", "--id", doc_id)
        assert result.exit_code == 1

    def test_bad_line_format(self, run):
        result = run("document", "create", "--type", "mirv", "--warehouse", "WH1", "--lines", "PIPE")
        assert result.exit_code == 2
        assert "Expected 'Item:Qty@Cost'" in result.output

    def test_missing_document(self, run):
        result = run("document", "show", "--id", "42")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_empty_stock(self, run):
        result = run("stock", "show")
        assert result.exit_code == 0
        assert "No stock records found." in result.output

    def test_invalid_setting(self, run, monkeypatch):
        monkeypatch.setenv("WMS_LOCK_TIMEOUT_SECONDS", "later")
        result = run("stock", "show")
        assert result.exit_code == 1
        assert "WMS_LOCK_TIMEOUT_SECONDS" in result.output


class TestApprovalResolve:

    @pytest.mark.parametrize(
        "amount,role",
        [("9999.99", "warehouse_staff"), ("10000", "logistics_coordinator"), ("750000", "admin")],
    )
    def test_default_brackets(self, run, amount, role):
        result = run("approval", "resolve", "--type", "mirv", "--amount", amount)
        assert result.exit_code == 0, result.output
        assert role in result.output

    def test_unknown_type(self, run):
        result = run("approval", "resolve", "--type", "nope", "--amount", "1")
        assert result.exit_code == 1
