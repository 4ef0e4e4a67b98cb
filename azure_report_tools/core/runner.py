"""Runs subscription reports across one or more Azure subscriptions"""

import time
from datetime import datetime, timezone
from typing import List, Optional

from azure.core.exceptions import AzureError

from .exceptions import RetryBudgetExceededError
from .interfaces import ILocalReport, ISubscriptionReport
from .models import ReportConfiguration, ReportResult
from ..auth.manager import AuthenticationManager
from ..utils.logger import setup_logger


class ReportRunner:
    """Sequential orchestrator for report generation"""

    def __init__(
        self,
        config: Optional[ReportConfiguration] = None,
        auth_manager: Optional[AuthenticationManager] = None,
    ):
        self.config = config or ReportConfiguration()
        self.logger = setup_logger(self.__class__.__name__)
        self.auth_manager = auth_manager or AuthenticationManager()

    def run(self, report: ISubscriptionReport, subscription_ids: Optional[List[str]] = None) -> ReportResult:
        """Collect a report from every target subscription in turn"""

        start_time = time.time()
        result = ReportResult(
            report_name=report.get_report_name(),
            timestamp=datetime.now(timezone.utc),
        )

        subs_to_scan = self.auth_manager.resolve_subscriptions(
            subscription_ids or self.config.subscription_ids,
            self.config.excluded_subscription_ids,
        )
        self.logger.info(f"Running {result.report_name} for {len(subs_to_scan)} subscription(s)")

        for index, subscription_id in enumerate(subs_to_scan, start=1):
            self.logger.info(f"[{index}/{len(subs_to_scan)}] {subscription_id}")
            try:
                clients = self.auth_manager.get_clients_for_subscription(subscription_id)
                records = report.collect(subscription_id, clients, self.config, result)
            except RetryBudgetExceededError:
                # Exhausted retries abort the whole run
                raise
            except AzureError as e:
                self.logger.error(f"Error collecting {result.report_name} for {subscription_id}: {e}")
                result.errors.append(f"Subscription {subscription_id}: {e}")
                continue

            result.records.extend(records)

        result.totals = report.summarize(result.records)
        result.duration_seconds = time.time() - start_time

        self.logger.info(
            f"{result.report_name} completed: {len(result.records)} records, "
            f"{len(result.warnings)} warnings, {len(result.errors)} errors"
        )
        return result

    def run_local(self, report: ILocalReport) -> ReportResult:
        """Generate a report that needs no Azure management clients"""

        start_time = time.time()
        result = report.generate(self.config)
        result.totals = report.summarize(result.records)
        result.duration_seconds = time.time() - start_time
        self.logger.info(f"{result.report_name} completed: {len(result.records)} records")
        return result
