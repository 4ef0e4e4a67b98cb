"""Tests for the file share aging report"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from azure_report_tools.core.models import AgeBasis, ReportConfiguration
from azure_report_tools.reports.share_aging import (
    ROOT_FOLDER,
    TOTAL_FOLDER,
    ShareAgingReport,
    bucket_index,
    bucket_labels,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
THRESHOLDS = [30, 90, 180, 365, 730]


def write_file(path, size, age_days, accessed_days=None):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    mtime = (NOW - timedelta(days=age_days)).timestamp()
    atime = (NOW - timedelta(days=accessed_days)).timestamp() if accessed_days is not None else mtime
    os.utime(path, (atime, mtime))


def as_table(records):
    return {(r.folder, r.bucket): (r.file_count, r.total_bytes) for r in records}


@pytest.fixture
def share(tmp_path):
    write_file(tmp_path / "finance" / "q1.xlsx", 100, 10)
    write_file(tmp_path / "finance" / "archive" / "2019.xlsx", 1000, 1500)
    write_file(tmp_path / "hr" / "policy.docx", 50, 100, accessed_days=5)
    write_file(tmp_path / "readme.txt", 7, 31)
    return tmp_path


def test_bucket_labels():
    assert bucket_labels([30, 90]) == ["0-30 days", "31-90 days", "over 90 days"]


@pytest.mark.parametrize("age, expected", [(0, 0), (30, 0), (30.5, 1), (90, 1), (731, 5)])
def test_bucket_index(age, expected):
    assert bucket_index(age, THRESHOLDS) == expected


def test_groups_by_top_level_folder(share):
    result = ShareAgingReport(str(share), now=NOW).generate(ReportConfiguration())
    table = as_table(result.records)

    assert table[("finance", "0-30 days")] == (1, 100)
    assert table[("finance", "over 730 days")] == (1, 1000)
    assert table[("hr", "91-180 days")] == (1, 50)
    assert table[(ROOT_FOLDER, "31-90 days")] == (1, 7)
    assert ("finance", "31-90 days") not in table
    assert result.errors == []


def test_totals_cover_every_bucket(share):
    result = ShareAgingReport(str(share), now=NOW).generate(ReportConfiguration())
    totals = [r for r in result.records if r.folder == TOTAL_FOLDER]

    assert [r.bucket for r in totals] == bucket_labels(THRESHOLDS)
    assert sum(r.file_count for r in totals) == 4
    assert sum(r.total_bytes for r in totals) == 1157
    assert result.records[-len(totals):] == totals


def test_access_time_basis(share):
    report = ShareAgingReport(str(share), basis=AgeBasis.ACCESSED, now=NOW)
    table = as_table(report.generate(ReportConfiguration()).records)
    assert table[("hr", "0-30 days")] == (1, 50)


def test_include_and_exclude_patterns(share):
    report = ShareAgingReport(str(share), include_patterns=["*.xlsx"], exclude_patterns=["2019*"], now=NOW)
    records = report.generate(ReportConfiguration()).records
    assert [(r.folder, r.bucket) for r in records if r.folder != TOTAL_FOLDER] == [("finance", "0-30 days")]


def test_custom_thresholds(share):
    config = ReportConfiguration(share_age_thresholds=[365])
    records = ShareAgingReport(str(share), now=NOW).generate(config).records
    totals = {r.bucket: r.file_count for r in records if r.folder == TOTAL_FOLDER}
    assert totals == {"0-365 days": 3, "over 365 days": 1}


def test_missing_root_is_an_error(tmp_path):
    result = ShareAgingReport(str(tmp_path / "missing"), now=NOW).generate(ReportConfiguration())
    assert result.records == []
    assert len(result.errors) == 1


def test_summarize(share):
    report = ShareAgingReport(str(share), now=NOW)
    totals = report.summarize(report.generate(ReportConfiguration()).records)

    assert totals['folder_count'] == 3
    assert totals['file_count'] == 4
    assert totals['bytes_by_bucket']["over 730 days"] == 1000
