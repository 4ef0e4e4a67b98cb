"""Tests for the sequential report runner"""

from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError

from azure_report_tools.core.exceptions import RetryBudgetExceededError
from azure_report_tools.core.interfaces import ILocalReport, ISubscriptionReport
from azure_report_tools.core.models import ReportConfiguration, ReportResult
from azure_report_tools.core.runner import ReportRunner


class FakeAuthManager:

    def __init__(self, accessible):
        self.accessible = accessible
        self.client_requests = []

    def resolve_subscriptions(self, subscription_ids=None, excluded_subscription_ids=None):
        targets = list(subscription_ids or []) or list(self.accessible)
        return [s for s in targets if s not in set(excluded_subscription_ids or [])]

    def get_clients_for_subscription(self, subscription_id):
        self.client_requests.append(subscription_id)
        return {'subscription': subscription_id}


class EchoReport(ISubscriptionReport):
    """Returns the subscription id as its only record, failing where told to"""

    def __init__(self, failures=None):
        self.failures = failures or {}

    def get_report_name(self):
        return "EchoReport"

    def get_columns(self):
        return []

    def collect(self, subscription_id, clients, config, result):
        if subscription_id in self.failures:
            raise self.failures[subscription_id]
        result.warnings.append(f"visited {subscription_id}")
        return [clients['subscription']]


class StaticReport(ILocalReport):

    def get_report_name(self):
        return "StaticReport"

    def get_columns(self):
        return []

    def generate(self, config):
        return ReportResult(self.get_report_name(), timestamp=None, records=[1, 2, 3])


def test_runs_every_accessible_subscription_in_order():
    auth = FakeAuthManager(["sub-a", "sub-b", "sub-c"])
    runner = ReportRunner(ReportConfiguration(excluded_subscription_ids=["sub-b"]), auth)

    result = runner.run(EchoReport())

    assert result.records == ["sub-a", "sub-c"]
    assert auth.client_requests == ["sub-a", "sub-c"]
    assert result.warnings == ["visited sub-a", "visited sub-c"]
    assert result.totals == {'record_count': 2}
    assert result.duration_seconds >= 0


def test_explicit_subscriptions_take_precedence():
    auth = FakeAuthManager(["sub-a", "sub-b"])
    config = ReportConfiguration(subscription_ids=["sub-b"])

    assert ReportRunner(config, auth).run(EchoReport()).records == ["sub-b"]
    assert ReportRunner(config, auth).run(EchoReport(), ["sub-a"]).records == ["sub-a"]


def test_azure_errors_are_recorded_and_run_continues():
    auth = FakeAuthManager(["sub-a", "sub-b"])
    report = EchoReport({"sub-a": HttpResponseError(message="AuthorizationFailed")})

    result = ReportRunner(ReportConfiguration(), auth).run(report)

    assert result.records == ["sub-b"]
    assert len(result.errors) == 1
    assert "sub-a" in result.errors[0]
    assert "AuthorizationFailed" in result.errors[0]


def test_exhausted_retry_budget_aborts_run():
    auth = FakeAuthManager(["sub-a", "sub-b"])
    budget_error = RetryBudgetExceededError("Cost query", 748.9, 10, HttpResponseError(message="429"))
    report = EchoReport({"sub-a": budget_error})

    with pytest.raises(RetryBudgetExceededError):
        ReportRunner(ReportConfiguration(), auth).run(report)
    assert auth.client_requests == ["sub-a"]


def test_unexpected_errors_propagate():
    auth = FakeAuthManager(["sub-a"])
    with pytest.raises(KeyError):
        ReportRunner(ReportConfiguration(), auth).run(EchoReport({"sub-a": KeyError("x")}))


def test_run_local_adds_totals():
    runner = ReportRunner(ReportConfiguration(), auth_manager=MagicMock())
    result = runner.run_local(StaticReport())
    assert result.totals == {'record_count': 3}
    runner.auth_manager.resolve_subscriptions.assert_not_called()
