"""Azure retail price lookup"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from ..core.interfaces import ILocalReport
from ..core.models import ReportConfiguration, ReportResult, RetailPrice
from ..utils.filters import matches_any
from ..utils.logger import setup_logger
from ..utils.retry import RetryPolicy

RETAIL_PRICES_URL = "https://prices.azure.com/api/retail/prices"


class TransientHttpError(requests.HTTPError):
    """Throttling or server-side failure worth retrying"""


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_filter(
    service_name: Optional[str] = None,
    region: Optional[str] = None,
    price_type: Optional[str] = "Consumption",
) -> str:
    """OData $filter for the retail prices API"""
    clauses = []
    if service_name:
        clauses.append(f"serviceName eq {_quote(service_name)}")
    if region:
        clauses.append(f"armRegionName eq {_quote(region.lower())}")
    if price_type:
        clauses.append(f"priceType eq {_quote(price_type)}")
    return " and ".join(clauses)


class RetailPriceReport(ILocalReport):
    """Looks up public list prices, following API pagination"""

    def __init__(
        self,
        service_name: Optional[str] = None,
        region: Optional[str] = None,
        price_type: Optional[str] = "Consumption",
        product_patterns: Optional[List[str]] = None,
        sku_patterns: Optional[List[str]] = None,
        meter_patterns: Optional[List[str]] = None,
        currency: Optional[str] = None,
        max_pages: int = 50,
        session: Optional[requests.Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.service_name = service_name
        self.region = region
        self.price_type = price_type
        self.product_patterns = product_patterns or []
        self.sku_patterns = sku_patterns or []
        self.meter_patterns = meter_patterns or []
        self.currency = currency
        self.max_pages = max_pages
        self.session = session or requests.Session()
        self.retry_policy = retry_policy

    def get_report_name(self) -> str:
        return "RetailPriceReport"

    def get_columns(self) -> List[str]:
        return ['product_name', 'sku_name', 'meter_name', 'region', 'unit_price', 'unit_of_measure', 'currency']

    def fetch_items(self, config: ReportConfiguration) -> List[Dict[str, Any]]:
        """Fetch all pages of raw price items"""

        retry_policy = self.retry_policy or RetryPolicy.from_config(
            config, retry_on=(requests.ConnectionError, requests.Timeout, TransientHttpError)
        )

        params: Optional[Dict[str, str]] = {}
        odata_filter = build_filter(self.service_name, self.region, self.price_type)
        if odata_filter:
            params['$filter'] = odata_filter
        currency = self.currency or config.currency
        if currency:
            params['currencyCode'] = currency

        url: Optional[str] = RETAIL_PRICES_URL
        items: List[Dict[str, Any]] = []
        pages = 0
        while url and pages < self.max_pages:
            data = retry_policy.call(f"Retail price page {pages + 1}", self._get_page, url, params)
            items.extend(data.get("Items", []))
            url = data.get("NextPageLink")
            # NextPageLink already carries the query string
            params = None
            pages += 1

        if url:
            self.logger.warning(f"Stopped after {self.max_pages} pages; results are incomplete")
        self.logger.debug(f"Fetched {len(items)} price items in {pages} pages")
        return items

    def _get_page(self, url: str, params: Optional[Dict[str, str]]) -> Dict[str, Any]:
        response = self.session.get(url, params=params, timeout=60)
        if response.status_code == 429 or response.status_code >= 500:
            raise TransientHttpError(f"HTTP {response.status_code} from {url}", response=response)
        response.raise_for_status()
        return response.json()

    def generate(self, config: ReportConfiguration) -> ReportResult:
        result = ReportResult(report_name=self.get_report_name(), timestamp=datetime.now(timezone.utc))

        for item in self.fetch_items(config):
            price = self._to_price(item)
            if not matches_any(price.product_name, self.product_patterns):
                continue
            if not matches_any(price.sku_name, self.sku_patterns):
                continue
            if not matches_any(price.meter_name, self.meter_patterns):
                continue
            result.records.append(price)

        result.records.sort(key=lambda p: (p.unit_price, p.product_name, p.sku_name, p.region))
        return result

    @staticmethod
    def _to_price(item: Dict[str, Any]) -> RetailPrice:
        return RetailPrice(
            service_name=item.get("serviceName", ""),
            product_name=item.get("productName", ""),
            sku_name=item.get("skuName", ""),
            meter_name=item.get("meterName", ""),
            region=item.get("armRegionName", ""),
            unit_price=float(item.get("retailPrice", item.get("unitPrice", 0.0)) or 0.0),
            unit_of_measure=item.get("unitOfMeasure", ""),
            price_type=item.get("type", ""),
            currency=item.get("currencyCode", "USD"),
            effective_date=item.get("effectiveStartDate", ""),
        )

    def summarize(self, records: List[RetailPrice]) -> Dict[str, Any]:
        if not records:
            return {'record_count': 0}
        return {
            'record_count': len(records),
            'regions': len({r.region for r in records}),
            'lowest_price': records[0].unit_price,
            'highest_price': max(r.unit_price for r in records),
        }
