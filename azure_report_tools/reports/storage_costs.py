"""Storage account cost breakdown by meter"""

from typing import Any, Dict, List, Optional

from ..core.interfaces import ISubscriptionReport
from ..core.models import ReportConfiguration, ReportResult, StorageCostLine
from ..cost.query import BillingPeriod, CostQueryClient, row_cost, row_currency, row_usage
from ..utils.filters import matches_any, resource_group_from_id
from ..utils.logger import setup_logger
from ..utils.retry import RetryPolicy

STORAGE_ACCOUNT_TYPE = "Microsoft.Storage/storageAccounts"
NO_COST_METER = "(no charges)"


class StorageCostReport(ISubscriptionReport):
    """Joins storage accounts with their metered cost for a period"""

    def __init__(
        self,
        period: Optional[BillingPeriod] = None,
        name_patterns: Optional[List[str]] = None,
        resource_group_patterns: Optional[List[str]] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.period = period or BillingPeriod.previous_month()
        self.name_patterns = name_patterns or []
        self.resource_group_patterns = resource_group_patterns or []
        self.retry_policy = retry_policy

    def get_report_name(self) -> str:
        return "StorageCostReport"

    def get_columns(self) -> List[str]:
        return ['account_name', 'resource_group', 'location', 'sku', 'kind', 'meter', 'cost', 'usage_quantity']

    def collect(
        self,
        subscription_id: str,
        clients: Dict[str, Any],
        config: ReportConfiguration,
        result: ReportResult,
    ) -> List[StorageCostLine]:
        accounts = {}
        for account in clients['storage'].storage_accounts.list():
            resource_group = resource_group_from_id(account.id)
            if not matches_any(account.name, self.name_patterns):
                continue
            if not matches_any(resource_group, self.resource_group_patterns):
                continue
            accounts[account.id.lower()] = (account, resource_group)

        if not accounts:
            self.logger.info(f"{subscription_id}: no matching storage accounts")
            return []

        retry_policy = self.retry_policy or RetryPolicy.from_config(config)
        query_client = CostQueryClient(clients['cost'], retry_policy)
        rows = query_client.query_rows(
            subscription_id, self.period, ['ResourceId', 'Meter'],
            resource_types=[STORAGE_ACCOUNT_TYPE],
        )

        meters: Dict[str, Dict[str, StorageCostLine]] = {}
        for row in rows:
            resource_id = (row.get('ResourceId') or "").lower()
            match = accounts.get(resource_id)
            if match is None:
                continue
            account, resource_group = match
            meter = row.get('Meter') or "Unknown"

            account_lines = meters.setdefault(resource_id, {})
            line = account_lines.get(meter)
            if line is None:
                line = self._line(account, resource_group, meter, subscription_id, row_currency(row, config.currency))
                account_lines[meter] = line
            line.cost += row_cost(row)
            line.usage_quantity += row_usage(row)

        records = []
        for resource_id, (account, resource_group) in sorted(accounts.items()):
            lines = list(meters.get(resource_id, {}).values())
            if not lines:
                lines = [self._line(account, resource_group, NO_COST_METER, subscription_id, config.currency)]
            records.extend(sorted(lines, key=lambda l: (-l.cost, l.meter)))

        return records

    def _line(self, account: Any, resource_group: str, meter: str, subscription_id: str, currency: str) -> StorageCostLine:
        sku = getattr(account.sku, 'name', None) if account.sku else None
        return StorageCostLine(
            account_name=account.name,
            resource_group=resource_group,
            location=account.location or "",
            sku=getattr(sku, 'value', sku) or "",
            kind=getattr(account.kind, 'value', account.kind) or "",
            meter=meter,
            currency=currency,
            subscription_id=subscription_id,
        )

    def summarize(self, records: List[StorageCostLine]) -> Dict[str, Any]:
        per_account: Dict[str, float] = {}
        per_meter: Dict[str, float] = {}
        for line in records:
            per_account[line.account_name] = per_account.get(line.account_name, 0.0) + line.cost
            if line.meter != NO_COST_METER:
                per_meter[line.meter] = per_meter.get(line.meter, 0.0) + line.cost

        return {
            'record_count': len(records),
            'billing_period': self.period.label,
            'account_count': len(per_account),
            'total_cost': round(sum(per_account.values()), 2),
            'by_account': {k: round(v, 2) for k, v in sorted(per_account.items(), key=lambda i: -i[1])},
            'by_meter': {k: round(v, 2) for k, v in sorted(per_meter.items(), key=lambda i: -i[1])},
        }
