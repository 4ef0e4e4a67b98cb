"""Per-resource cost and usage report for a billing period"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.interfaces import ISubscriptionReport
from ..core.models import ReportConfiguration, ReportResult, ResourceCost
from ..cost.query import (
    BillingPeriod,
    CostQueryClient,
    row_cost,
    row_currency,
    row_usage,
)
from ..utils.filters import (
    matches_any,
    name_from_id,
    resource_group_from_id,
    resource_type_from_id,
)
from ..utils.logger import setup_logger
from ..utils.retry import RetryPolicy


def aggregate_cost_rows(
    rows: Iterable[Dict[str, Any]],
    by_meter: bool = False,
    default_currency: str = "USD",
) -> List[ResourceCost]:
    """Sum cost and usage per resource (and meter category), highest cost first"""

    totals: Dict[Tuple[str, str], ResourceCost] = {}
    for row in rows:
        resource_id = row.get('ResourceId') or ""
        meter_category = (row.get('MeterCategory') or "") if by_meter else ""
        key = (resource_id.lower(), meter_category)

        entry = totals.get(key)
        if entry is None:
            entry = ResourceCost(
                resource_id=resource_id,
                resource_name=name_from_id(resource_id),
                resource_type=row.get('ResourceType') or resource_type_from_id(resource_id),
                resource_group=row.get('ResourceGroupName') or resource_group_from_id(resource_id),
                currency=row_currency(row, default_currency),
                meter_category=meter_category,
            )
            totals[key] = entry

        entry.cost += row_cost(row)
        entry.usage_quantity += row_usage(row)

    return sorted(totals.values(), key=lambda r: (-r.cost, r.resource_id))


class ResourceCostReport(ISubscriptionReport):
    """Actual cost per resource, filtered by name, type and resource group patterns"""

    def __init__(
        self,
        period: Optional[BillingPeriod] = None,
        name_patterns: Optional[List[str]] = None,
        type_patterns: Optional[List[str]] = None,
        resource_group_patterns: Optional[List[str]] = None,
        by_meter: bool = False,
        min_cost: float = 0.0,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.period = period or BillingPeriod.previous_month()
        self.name_patterns = name_patterns or []
        self.type_patterns = type_patterns or []
        self.resource_group_patterns = resource_group_patterns or []
        self.by_meter = by_meter
        self.min_cost = min_cost
        self.retry_policy = retry_policy

    def get_report_name(self) -> str:
        return "ResourceCostReport"

    def get_columns(self) -> List[str]:
        columns = ['resource_name', 'resource_type', 'resource_group']
        if self.by_meter:
            columns.append('meter_category')
        return columns + ['cost', 'usage_quantity', 'currency']

    def collect(
        self,
        subscription_id: str,
        clients: Dict[str, Any],
        config: ReportConfiguration,
        result: ReportResult,
    ) -> List[ResourceCost]:
        """Query, aggregate and filter costs for one subscription"""

        retry_policy = self.retry_policy or RetryPolicy.from_config(config)
        query_client = CostQueryClient(clients['cost'], retry_policy)

        group_by = ['ResourceId']
        if self.by_meter:
            group_by.append('MeterCategory')

        rows = query_client.query_rows(subscription_id, self.period, group_by)
        aggregated = aggregate_cost_rows(rows, self.by_meter, config.currency)

        records = []
        for record in aggregated:
            if not self._matches(record):
                continue
            if record.cost < self.min_cost:
                continue
            record.subscription_id = subscription_id
            record.billing_period = self.period.label
            records.append(record)

        self.logger.info(
            f"{subscription_id}: {len(records)} of {len(aggregated)} resources matched, "
            f"{sum(r.cost for r in records):.2f} total"
        )
        return records

    def _matches(self, record: ResourceCost) -> bool:
        return (
            matches_any(record.resource_name, self.name_patterns)
            and matches_any(record.resource_type, self.type_patterns)
            and matches_any(record.resource_group, self.resource_group_patterns)
        )

    def summarize(self, records: List[ResourceCost]) -> Dict[str, Any]:
        by_subscription: Dict[str, float] = {}
        by_type: Dict[str, float] = {}
        for record in records:
            by_subscription[record.subscription_id] = by_subscription.get(record.subscription_id, 0.0) + record.cost
            by_type[record.resource_type] = by_type.get(record.resource_type, 0.0) + record.cost

        return {
            'record_count': len(records),
            'billing_period': self.period.label,
            'total_cost': round(sum(r.cost for r in records), 2),
            'total_usage': round(sum(r.usage_quantity for r in records), 4),
            'by_subscription': {k: round(v, 2) for k, v in by_subscription.items()},
            'top_types': dict(sorted(
                ((k, round(v, 2)) for k, v in by_type.items()),
                key=lambda item: -item[1],
            )[:10]),
        }
