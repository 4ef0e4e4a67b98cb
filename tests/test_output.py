"""Tests for CSV, JSON and console output"""

import csv
import json
from datetime import datetime, timezone

from azure_report_tools.core.models import (
    ConsolidatedPortRule,
    DiskRecord,
    ReportResult,
    VirtualMachineRecord,
)
from azure_report_tools.utils.output import (
    build_table,
    display_result,
    export_to_csv,
    export_to_json,
    format_value,
)


def port_rule(ports="{22,80-90}"):
    return ConsolidatedPortRule(
        nsg_name="web-nsg",
        resource_group="web-rg",
        direction="Inbound",
        protocol="Tcp",
        access="Allow",
        ports=ports,
        range_count=2,
        rule_count=2,
        rule_names=["ssh", "web"],
    )


def test_format_value():
    assert format_value(None) == ""
    assert format_value(True) == "true"
    assert format_value(3.0) == "3"
    assert format_value(0.123456) == "0.1235"
    assert format_value(["a", "b"]) == "a;b"
    assert format_value({"env": "prod"}) == "env=prod"
    assert format_value(datetime(2024, 1, 2, 3, 4)) == "2024-01-02T03:04:00"


def test_csv_uses_configured_delimiter(tmp_path):
    path = tmp_path / "out" / "nsg.csv"
    written = export_to_csv([port_rule()], str(path), delimiter=";")

    assert written == [str(path)]
    with open(path, newline='') as f:
        rows = list(csv.reader(f, delimiter=";"))
    assert rows[0][:6] == ["nsg_name", "resource_group", "direction", "protocol", "access", "ports"]
    # Commas inside the port set stay in one cell
    assert rows[1][5] == "{22,80-90}"
    assert rows[1][rows[0].index("rule_names")] == "ssh;web"


def test_csv_splits_record_types(tmp_path):
    vm = VirtualMachineRecord(name="web-01", resource_group="rg", location="eastus", size="B1s")
    disk = DiskRecord(name="d1", resource_group="rg", location="eastus", sku="Premium_LRS", size_gb=64)

    written = export_to_csv([vm, disk], str(tmp_path / "inventory.csv"))

    assert sorted(written) == sorted([
        str(tmp_path / "inventory_VirtualMachineRecord.csv"),
        str(tmp_path / "inventory_DiskRecord.csv"),
    ])
    with open(tmp_path / "inventory_DiskRecord.csv", newline='') as f:
        rows = list(csv.DictReader(f))
    assert rows[0]['size_gb'] == "64"


def test_csv_without_records_writes_empty_file(tmp_path):
    path = tmp_path / "empty.csv"
    assert export_to_csv([], str(path)) == [str(path)]
    assert path.read_text() == ""


def test_json_contains_records_and_totals(tmp_path):
    result = ReportResult(
        report_name="NsgRulesReport",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        records=[port_rule()],
        totals={'record_count': 1},
        warnings=["nsg/bad: Invalid port range 'x'"],
    )
    path = export_to_json(result, str(tmp_path / "report.json"))

    with open(path) as f:
        data = json.load(f)
    assert data['report_name'] == "NsgRulesReport"
    assert data['timestamp'].startswith("2024-01-01")
    assert data['records'][0]['ports'] == "{22,80-90}"
    assert data['totals'] == {'record_count': 1}
    assert len(data['warnings']) == 1


def test_build_table_columns():
    table = build_table([port_rule()], columns=['nsg_name', 'ports', 'missing'])
    assert [column.header for column in table.columns] == ["Nsg Name", "Ports"]
    assert table.row_count == 1
    assert build_table([]).row_count == 0


def test_display_result_renders(capsys):
    result = ReportResult(
        report_name="NsgRulesReport",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        records=[port_rule(), port_rule("{443}")],
        totals={'record_count': 2, 'by_type': {'a': 1.5}},
        errors=["Subscription x: denied"],
    )
    display_result(result, limit=1)
    out = capsys.readouterr().out
    assert "NsgRulesReport Summary" in out
    assert "and 1 more" in out
    assert "denied" in out
