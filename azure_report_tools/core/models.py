"""Core data models for Azure Report Tools"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Any, Optional


class OutputFormat(Enum):
    """Supported report output formats"""
    TABLE = "table"
    CSV = "csv"
    JSON = "json"


class RuleGrouping(Enum):
    """Grouping keys used when consolidating NSG port ranges"""
    SUMMARY = "summary"  # (direction, protocol, access)
    DETAILED = "detailed"  # (direction, source, destination, protocol, access)


class RuleDirection(Enum):
    """NSG rule direction filter"""
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"
    BOTH = "Both"


class AgeBasis(Enum):
    """Timestamp used to age files on a share"""
    MODIFIED = "modified"
    ACCESSED = "accessed"


@dataclass
class ConsolidatedPortRule:
    """One consolidated port set for an NSG grouping key"""
    nsg_name: str
    resource_group: str
    direction: str
    protocol: str
    access: str
    ports: str
    source: str = "*"
    destination: str = "*"
    range_count: int = 0
    rule_count: int = 0
    rule_names: List[str] = field(default_factory=list)
    subscription_id: str = ""


@dataclass
class ResourceCost:
    """Aggregated cost and usage of one resource for a period"""
    resource_id: str
    resource_name: str
    resource_type: str
    resource_group: str
    cost: float = 0.0
    usage_quantity: float = 0.0
    currency: str = "USD"
    meter_category: str = ""
    subscription_id: str = ""
    billing_period: str = ""


@dataclass
class StorageCostLine:
    """Cost of one meter on one storage account"""
    account_name: str
    resource_group: str
    location: str
    sku: str
    kind: str
    meter: str
    cost: float = 0.0
    usage_quantity: float = 0.0
    currency: str = "USD"
    subscription_id: str = ""


@dataclass
class VirtualMachineRecord:
    """Inventory entry for a virtual machine"""
    name: str
    resource_group: str
    location: str
    size: str
    os_type: str = ""
    power_state: str = ""
    os_disk: str = ""
    data_disk_count: int = 0
    tags: Dict[str, str] = field(default_factory=dict)
    subscription_id: str = ""


@dataclass
class DiskRecord:
    """Inventory entry for a managed disk"""
    name: str
    resource_group: str
    location: str
    sku: str
    size_gb: int = 0
    disk_state: str = ""
    attached_to: str = ""
    created: Optional[datetime] = None
    tags: Dict[str, str] = field(default_factory=dict)
    subscription_id: str = ""


@dataclass
class SubnetRecord:
    """Inventory entry for a subnet within a virtual network"""
    vnet_name: str
    resource_group: str
    location: str
    address_space: List[str] = field(default_factory=list)
    subnet_name: str = ""
    subnet_prefix: str = ""
    nsg_name: str = ""
    nic_count: int = 0
    subscription_id: str = ""


@dataclass
class NetworkInterfaceRecord:
    """Inventory entry for a network interface"""
    name: str
    resource_group: str
    location: str
    private_ips: List[str] = field(default_factory=list)
    attached_vm: str = ""
    nsg_name: str = ""
    has_public_ip: bool = False
    subscription_id: str = ""


@dataclass
class ShareAgingBucket:
    """File count and size of one age bucket within one folder"""
    folder: str
    bucket: str
    file_count: int = 0
    total_bytes: int = 0

    @property
    def total_gb(self) -> float:
        return self.total_bytes / (1024 ** 3)


@dataclass
class RetailPrice:
    """Azure retail price entry"""
    service_name: str
    product_name: str
    sku_name: str
    meter_name: str
    region: str
    unit_price: float
    unit_of_measure: str = ""
    price_type: str = "Consumption"
    currency: str = "USD"
    effective_date: str = ""


@dataclass
class ReportConfiguration:
    """Settings shared by all reports"""
    subscription_ids: List[str] = field(default_factory=list)
    excluded_subscription_ids: List[str] = field(default_factory=list)
    output_directory: str = "."
    csv_delimiter: str = ","
    retry_initial_delay: float = 10.0
    retry_multiplier: float = 1.5
    retry_max_total_delay: float = 600.0
    nsg_grouping: str = RuleGrouping.SUMMARY.value
    nsg_include_default_rules: bool = False
    share_age_thresholds: List[int] = field(default_factory=lambda: [30, 90, 180, 365, 730])
    currency: str = "USD"


@dataclass
class ReportResult:
    """Records and diagnostics produced by one report run"""
    report_name: str
    timestamp: datetime
    records: List[Any] = field(default_factory=list)
    totals: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
