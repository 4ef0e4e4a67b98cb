"""Core interfaces for Azure Report Tools"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import ReportConfiguration, ReportResult


class IReport(ABC):
    """Interface shared by all reports"""

    @abstractmethod
    def get_report_name(self) -> str:
        """Return report name"""
        pass

    @abstractmethod
    def get_columns(self) -> Optional[List[str]]:
        """Return the record fields shown in table output, or None for every scalar field"""
        pass

    def summarize(self, records: List[Any]) -> Dict[str, Any]:
        """Return aggregate totals for the collected records"""
        return {'record_count': len(records)}


class ISubscriptionReport(IReport):
    """Report that collects records from one Azure subscription at a time"""

    @abstractmethod
    def collect(
        self,
        subscription_id: str,
        clients: Dict[str, Any],
        config: ReportConfiguration,
        result: ReportResult,
    ) -> List[Any]:
        """Collect records for a single subscription"""
        pass


class ILocalReport(IReport):
    """Report that runs without Azure management credentials"""

    @abstractmethod
    def generate(self, config: ReportConfiguration) -> ReportResult:
        """Collect, filter and aggregate the report's records"""
        pass
