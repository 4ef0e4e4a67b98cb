"""Virtual network, subnet and network interface inventory"""

from typing import Any, Dict, List, Optional

from ..core.interfaces import ISubscriptionReport
from ..core.models import NetworkInterfaceRecord, ReportConfiguration, ReportResult, SubnetRecord
from ..utils.filters import matches_any, name_from_id, resource_group_from_id
from ..utils.logger import setup_logger


class NetworkInventoryReport(ISubscriptionReport):
    """One record per subnet and one per network interface"""

    def __init__(
        self,
        name_patterns: Optional[List[str]] = None,
        resource_group_patterns: Optional[List[str]] = None,
        include_nics: bool = True,
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.name_patterns = name_patterns or []
        self.resource_group_patterns = resource_group_patterns or []
        self.include_nics = include_nics

    def get_report_name(self) -> str:
        return "NetworkInventoryReport"

    def get_columns(self) -> Optional[List[str]]:
        return None

    def collect(
        self,
        subscription_id: str,
        clients: Dict[str, Any],
        config: ReportConfiguration,
        result: ReportResult,
    ) -> List[Any]:
        network_client = clients['network']
        records: List[Any] = []

        for vnet in network_client.virtual_networks.list_all():
            resource_group = resource_group_from_id(vnet.id)
            if not self._matches(vnet.name, resource_group):
                continue
            records.extend(self._subnet_records(vnet, resource_group, subscription_id))

        if self.include_nics:
            for nic in network_client.network_interfaces.list_all():
                resource_group = resource_group_from_id(nic.id)
                if not self._matches(nic.name, resource_group):
                    continue
                records.append(self._nic_record(nic, resource_group, subscription_id))

        return records

    def _matches(self, name: str, resource_group: str) -> bool:
        return matches_any(name, self.name_patterns) and matches_any(resource_group, self.resource_group_patterns)

    def _subnet_records(self, vnet: Any, resource_group: str, subscription_id: str) -> List[SubnetRecord]:
        address_space = list(vnet.address_space.address_prefixes or []) if vnet.address_space else []
        subnets = vnet.subnets or []

        if not subnets:
            return [SubnetRecord(
                vnet_name=vnet.name,
                resource_group=resource_group,
                location=vnet.location or "",
                address_space=address_space,
                subscription_id=subscription_id,
            )]

        records = []
        for subnet in subnets:
            prefix = subnet.address_prefix or ",".join(getattr(subnet, 'address_prefixes', None) or [])
            nsg = getattr(subnet, 'network_security_group', None)
            records.append(SubnetRecord(
                vnet_name=vnet.name,
                resource_group=resource_group,
                location=vnet.location or "",
                address_space=address_space,
                subnet_name=subnet.name,
                subnet_prefix=prefix,
                nsg_name=name_from_id(nsg.id) if nsg else "",
                nic_count=len(getattr(subnet, 'ip_configurations', None) or []),
                subscription_id=subscription_id,
            ))
        return records

    def _nic_record(self, nic: Any, resource_group: str, subscription_id: str) -> NetworkInterfaceRecord:
        private_ips = []
        has_public_ip = False
        for ip_config in nic.ip_configurations or []:
            if ip_config.private_ip_address:
                private_ips.append(ip_config.private_ip_address)
            if getattr(ip_config, 'public_ip_address', None):
                has_public_ip = True

        vm = getattr(nic, 'virtual_machine', None)
        nsg = getattr(nic, 'network_security_group', None)
        return NetworkInterfaceRecord(
            name=nic.name,
            resource_group=resource_group,
            location=nic.location or "",
            private_ips=private_ips,
            attached_vm=name_from_id(vm.id) if vm else "",
            nsg_name=name_from_id(nsg.id) if nsg else "",
            has_public_ip=has_public_ip,
            subscription_id=subscription_id,
        )

    def summarize(self, records: List[Any]) -> Dict[str, Any]:
        subnets = [r for r in records if isinstance(r, SubnetRecord)]
        nics = [r for r in records if isinstance(r, NetworkInterfaceRecord)]
        return {
            'vnet_count': len({(r.subscription_id, r.resource_group, r.vnet_name) for r in subnets}),
            'subnet_count': len([r for r in subnets if r.subnet_name]),
            'subnets_without_nsg': len([r for r in subnets if r.subnet_name and not r.nsg_name]),
            'nic_count': len(nics),
            'unattached_nic_count': len([n for n in nics if not n.attached_vm]),
            'nics_with_public_ip': len([n for n in nics if n.has_public_ip]),
        }
