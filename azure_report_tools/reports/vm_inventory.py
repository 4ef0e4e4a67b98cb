"""Virtual machine and managed disk inventory"""

from typing import Any, Dict, List, Optional

from azure.core.exceptions import HttpResponseError

from ..core.interfaces import ISubscriptionReport
from ..core.models import DiskRecord, ReportConfiguration, ReportResult, VirtualMachineRecord
from ..utils.filters import matches_any, name_from_id, resource_group_from_id
from ..utils.logger import setup_logger


def _value(obj: Any) -> str:
    obj = getattr(obj, 'value', obj)
    return "" if obj is None else str(obj)


class VmInventoryReport(ISubscriptionReport):
    """VMs and managed disks of a subscription"""

    def __init__(
        self,
        name_patterns: Optional[List[str]] = None,
        resource_group_patterns: Optional[List[str]] = None,
        include_power_state: bool = False,
        include_disks: bool = True,
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.name_patterns = name_patterns or []
        self.resource_group_patterns = resource_group_patterns or []
        self.include_power_state = include_power_state
        self.include_disks = include_disks

    def get_report_name(self) -> str:
        return "VmInventoryReport"

    def get_columns(self) -> Optional[List[str]]:
        # VM and disk tables each show all of their own fields
        return None

    def collect(
        self,
        subscription_id: str,
        clients: Dict[str, Any],
        config: ReportConfiguration,
        result: ReportResult,
    ) -> List[Any]:
        compute_client = clients['compute']
        records: List[Any] = []

        for vm in compute_client.virtual_machines.list_all():
            resource_group = resource_group_from_id(vm.id)
            if not self._matches(vm.name, resource_group):
                continue
            records.append(self._vm_record(vm, resource_group, subscription_id, compute_client, result))

        if self.include_disks:
            for disk in compute_client.disks.list():
                resource_group = resource_group_from_id(disk.id)
                if not self._matches(disk.name, resource_group):
                    continue
                records.append(self._disk_record(disk, resource_group, subscription_id))

        return records

    def _matches(self, name: str, resource_group: str) -> bool:
        return matches_any(name, self.name_patterns) and matches_any(resource_group, self.resource_group_patterns)

    def _vm_record(
        self,
        vm: Any,
        resource_group: str,
        subscription_id: str,
        compute_client: Any,
        result: ReportResult,
    ) -> VirtualMachineRecord:
        storage = vm.storage_profile
        os_disk = storage.os_disk if storage else None

        record = VirtualMachineRecord(
            name=vm.name,
            resource_group=resource_group,
            location=vm.location or "",
            size=_value(vm.hardware_profile.vm_size) if vm.hardware_profile else "",
            os_type=_value(os_disk.os_type) if os_disk else "",
            os_disk=(os_disk.name or "") if os_disk else "",
            data_disk_count=len(storage.data_disks or []) if storage else 0,
            tags=dict(vm.tags or {}),
            subscription_id=subscription_id,
        )

        if self.include_power_state:
            try:
                view = compute_client.virtual_machines.instance_view(resource_group, vm.name)
            except HttpResponseError as e:
                message = f"Instance view unavailable for {vm.name}: {e}"
                self.logger.warning(message)
                result.warnings.append(message)
            else:
                record.power_state = self._power_state(view)

        return record

    @staticmethod
    def _power_state(instance_view: Any) -> str:
        for status in getattr(instance_view, 'statuses', None) or []:
            code = status.code or ""
            if code.startswith("PowerState/"):
                return code.split("/", 1)[1]
        return "unknown"

    def _disk_record(self, disk: Any, resource_group: str, subscription_id: str) -> DiskRecord:
        return DiskRecord(
            name=disk.name,
            resource_group=resource_group,
            location=disk.location or "",
            sku=_value(disk.sku.name) if disk.sku else "",
            size_gb=disk.disk_size_gb or 0,
            disk_state=_value(disk.disk_state),
            attached_to=name_from_id(disk.managed_by),
            created=disk.time_created,
            tags=dict(disk.tags or {}),
            subscription_id=subscription_id,
        )

    def summarize(self, records: List[Any]) -> Dict[str, Any]:
        vms = [r for r in records if isinstance(r, VirtualMachineRecord)]
        disks = [r for r in records if isinstance(r, DiskRecord)]

        vms_by_size: Dict[str, int] = {}
        for vm in vms:
            vms_by_size[vm.size] = vms_by_size.get(vm.size, 0) + 1

        disk_gb_by_sku: Dict[str, int] = {}
        for disk in disks:
            disk_gb_by_sku[disk.sku] = disk_gb_by_sku.get(disk.sku, 0) + disk.size_gb

        unattached = [d for d in disks if not d.attached_to]
        return {
            'vm_count': len(vms),
            'disk_count': len(disks),
            'vms_by_size': dict(sorted(vms_by_size.items())),
            'disk_gb_by_sku': dict(sorted(disk_gb_by_sku.items())),
            'unattached_disk_count': len(unattached),
            'unattached_disk_gb': sum(d.size_gb for d in unattached),
        }
