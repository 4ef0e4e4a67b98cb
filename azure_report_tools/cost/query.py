"""Azure Cost Management queries"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from azure.core.rest import HttpRequest
from azure.mgmt.costmanagement.models import (
    QueryAggregation,
    QueryComparisonExpression,
    QueryDataset,
    QueryDefinition,
    QueryFilter,
    QueryGrouping,
    QueryTimePeriod,
)

from ..utils.logger import setup_logger
from ..utils.retry import RetryPolicy

COST_COLUMNS = ('totalCost', 'PreTaxCost', 'Cost', 'CostUSD')
USAGE_COLUMNS = ('totalUsage', 'UsageQuantity')
CURRENCY_COLUMNS = ('Currency', 'BillingCurrency')


@dataclass(frozen=True)
class BillingPeriod:
    """Inclusive date range a cost query covers"""
    start: date
    end: date
    label: str = ""

    @classmethod
    def from_month(cls, period: str) -> "BillingPeriod":
        """Parse a ``YYYYMM`` billing period"""
        try:
            parsed = datetime.strptime(period.strip(), "%Y%m")
        except ValueError:
            raise ValueError(f"Billing period must be in YYYYMM format, got '{period}'")
        last_day = calendar.monthrange(parsed.year, parsed.month)[1]
        return cls(
            start=date(parsed.year, parsed.month, 1),
            end=date(parsed.year, parsed.month, last_day),
            label=parsed.strftime("%Y%m"),
        )

    @classmethod
    def previous_month(cls, today: Optional[date] = None) -> "BillingPeriod":
        today = today or date.today()
        last_of_previous = today.replace(day=1) - timedelta(days=1)
        return cls.from_month(last_of_previous.strftime("%Y%m"))

    @classmethod
    def from_dates(cls, start: date, end: date) -> "BillingPeriod":
        if start > end:
            raise ValueError(f"Start date {start} is after end date {end}")
        return cls(start=start, end=end, label=f"{start.isoformat()}..{end.isoformat()}")


def _first_column(row: Dict[str, Any], candidates) -> Any:
    for name in candidates:
        if name in row and row[name] is not None:
            return row[name]
    return None


def row_cost(row: Dict[str, Any]) -> float:
    return float(_first_column(row, COST_COLUMNS) or 0.0)


def row_usage(row: Dict[str, Any]) -> float:
    return float(_first_column(row, USAGE_COLUMNS) or 0.0)


def row_currency(row: Dict[str, Any], default: str = "USD") -> str:
    return _first_column(row, CURRENCY_COLUMNS) or default


class CostQueryClient:
    """Runs grouped ActualCost queries at subscription scope"""

    def __init__(self, cost_client: Any, retry_policy: Optional[RetryPolicy] = None):
        self.cost_client = cost_client
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = setup_logger(self.__class__.__name__)

    def build_definition(
        self,
        period: BillingPeriod,
        group_by: List[str],
        resource_types: Optional[List[str]] = None,
    ) -> QueryDefinition:
        """Query definition summing cost and usage over the period"""

        query_filter = None
        if resource_types:
            query_filter = QueryFilter(
                dimensions=QueryComparisonExpression(
                    name="ResourceType",
                    operator="In",
                    values=[t.lower() for t in resource_types],
                )
            )

        return QueryDefinition(
            type="ActualCost",
            timeframe="Custom",
            time_period=QueryTimePeriod(
                from_property=datetime.combine(period.start, datetime.min.time()),
                to=datetime.combine(period.end, datetime.max.time().replace(microsecond=0)),
            ),
            dataset=QueryDataset(
                aggregation={
                    "totalCost": QueryAggregation(name="PreTaxCost", function="Sum"),
                    "totalUsage": QueryAggregation(name="UsageQuantity", function="Sum"),
                },
                grouping=[QueryGrouping(type="Dimension", name=name) for name in group_by],
                filter=query_filter,
            ),
        )

    def query_rows(
        self,
        subscription_id: str,
        period: BillingPeriod,
        group_by: List[str],
        resource_types: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Execute the query and return rows keyed by column name

        Large result sets come back in pages; each ``next_link`` is POSTed
        with the same definition until the service stops returning one.
        """

        scope = f"/subscriptions/{subscription_id}"
        definition = self.build_definition(period, group_by, resource_types)
        operation = f"Cost query for {scope} ({period.label})"

        result = self.retry_policy.call(operation, self.cost_client.query.usage, scope, definition)
        columns = [column.name for column in (result.columns or [])]
        rows = [dict(zip(columns, row)) for row in (result.rows or [])]
        next_link = getattr(result, 'next_link', None)

        page = 1
        while next_link:
            page += 1
            body = self.retry_policy.call(f"{operation} page {page}", self._fetch_page, next_link, definition)
            properties = body.get('properties') or {}
            columns = [column['name'] for column in (properties.get('columns') or [])] or columns
            rows.extend(dict(zip(columns, row)) for row in (properties.get('rows') or []))
            next_link = properties.get('nextLink')

        self.logger.debug(f"Cost query for {scope} returned {len(rows)} rows in {page} page(s)")
        return rows

    def _fetch_page(self, next_link: str, definition: QueryDefinition) -> Dict[str, Any]:
        request = HttpRequest("POST", next_link, json=definition.serialize())
        response = self.cost_client.send_request(request)
        response.raise_for_status()
        return response.json()
