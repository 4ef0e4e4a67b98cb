"""Tests for the VM, disk and network inventory reports"""

from datetime import datetime
from types import SimpleNamespace

from azure.core.exceptions import ResourceNotFoundError

from azure_report_tools.core.models import (
    DiskRecord,
    NetworkInterfaceRecord,
    ReportResult,
    SubnetRecord,
    VirtualMachineRecord,
)
from azure_report_tools.reports.network_inventory import NetworkInventoryReport
from azure_report_tools.reports.vm_inventory import VmInventoryReport
from azure_report_tools.utils.output import build_table
from conftest import SUBSCRIPTION_ID, arm_id


def make_vm(name, resource_group, size="Standard_D2s_v3", os_type="Linux", data_disks=0, tags=None):
    return SimpleNamespace(
        id=arm_id(resource_group, "Microsoft.Compute/virtualMachines", name),
        name=name,
        location="westeurope",
        hardware_profile=SimpleNamespace(vm_size=size),
        storage_profile=SimpleNamespace(
            os_disk=SimpleNamespace(name=f"{name}-osdisk", os_type=os_type),
            data_disks=[SimpleNamespace(lun=i) for i in range(data_disks)],
        ),
        tags=tags,
    )


def make_disk(name, resource_group, size_gb, sku="Premium_LRS", managed_by=None):
    return SimpleNamespace(
        id=arm_id(resource_group, "Microsoft.Compute/disks", name),
        name=name,
        location="westeurope",
        sku=SimpleNamespace(name=sku),
        disk_size_gb=size_gb,
        disk_state="Attached" if managed_by else "Unattached",
        managed_by=managed_by,
        time_created=datetime(2023, 5, 1, 12, 0),
        tags=None,
    )


def instance_view(*codes):
    return SimpleNamespace(statuses=[SimpleNamespace(code=code) for code in codes])


class TestVmInventoryReport:

    def _setup(self, clients):
        compute = clients['compute']
        compute.virtual_machines.list_all.return_value = [
            make_vm("web-01", "web-rg", data_disks=2, tags={"env": "prod"}),
            make_vm("db-01", "db-rg", size="Standard_E4s_v3", os_type="Windows"),
        ]
        compute.disks.list.return_value = [
            make_disk("web-01-osdisk", "web-rg", 128, managed_by=arm_id("web-rg", "Microsoft.Compute/virtualMachines", "web-01")),
            make_disk("old-data", "web-rg", 512, sku="Standard_LRS"),
        ]
        return compute

    def test_collect_vms_and_disks(self, clients, config):
        self._setup(clients)
        records = VmInventoryReport().collect(SUBSCRIPTION_ID, clients, config, ReportResult("x", None))

        vms = [r for r in records if isinstance(r, VirtualMachineRecord)]
        disks = [r for r in records if isinstance(r, DiskRecord)]
        assert [v.name for v in vms] == ["web-01", "db-01"]
        assert vms[0].data_disk_count == 2
        assert vms[0].os_disk == "web-01-osdisk"
        assert vms[0].tags == {"env": "prod"}
        assert vms[1].os_type == "Windows"
        assert vms[0].power_state == ""
        assert disks[0].attached_to == "web-01"
        assert disks[1].attached_to == ""
        assert disks[1].disk_state == "Unattached"

    def test_filters_apply_to_vms_and_disks(self, clients, config):
        self._setup(clients)
        report = VmInventoryReport(resource_group_patterns=["db-*"])
        records = report.collect(SUBSCRIPTION_ID, clients, config, ReportResult("x", None))
        assert [r.name for r in records] == ["db-01"]

    def test_disks_can_be_excluded(self, clients, config):
        compute = self._setup(clients)
        records = VmInventoryReport(include_disks=False).collect(SUBSCRIPTION_ID, clients, config, ReportResult("x", None))
        assert all(isinstance(r, VirtualMachineRecord) for r in records)
        compute.disks.list.assert_not_called()

    def test_power_state(self, clients, config):
        compute = self._setup(clients)
        compute.virtual_machines.instance_view.side_effect = [
            instance_view("ProvisioningState/succeeded", "PowerState/running"),
            ResourceNotFoundError(message="gone"),
        ]
        result = ReportResult("x", None)

        report = VmInventoryReport(include_power_state=True, include_disks=False)
        records = report.collect(SUBSCRIPTION_ID, clients, config, result)

        assert [r.power_state for r in records] == ["running", ""]
        compute.virtual_machines.instance_view.assert_any_call("web-rg", "web-01")
        assert len(result.warnings) == 1
        assert "db-01" in result.warnings[0]

    def test_power_state_unknown_without_status(self):
        assert VmInventoryReport._power_state(instance_view("ProvisioningState/succeeded")) == "unknown"

    def test_summarize(self, clients, config):
        self._setup(clients)
        report = VmInventoryReport()
        totals = report.summarize(report.collect(SUBSCRIPTION_ID, clients, config, ReportResult("x", None)))

        assert totals['vm_count'] == 2
        assert totals['disk_count'] == 2
        assert totals['vms_by_size'] == {"Standard_D2s_v3": 1, "Standard_E4s_v3": 1}
        assert totals['disk_gb_by_sku'] == {"Premium_LRS": 128, "Standard_LRS": 512}
        assert totals['unattached_disk_count'] == 1
        assert totals['unattached_disk_gb'] == 512


def make_subnet(name, prefix, nsg=None, ip_configs=0):
    return SimpleNamespace(
        name=name,
        address_prefix=prefix,
        address_prefixes=None,
        network_security_group=SimpleNamespace(id=arm_id("net-rg", "Microsoft.Network/networkSecurityGroups", nsg)) if nsg else None,
        ip_configurations=[SimpleNamespace() for _ in range(ip_configs)],
    )


def make_vnet(name, resource_group, prefixes, subnets):
    return SimpleNamespace(
        id=arm_id(resource_group, "Microsoft.Network/virtualNetworks", name),
        name=name,
        location="eastus",
        address_space=SimpleNamespace(address_prefixes=prefixes),
        subnets=subnets,
    )


def make_nic(name, resource_group, ips, vm=None, public=False, nsg=None):
    return SimpleNamespace(
        id=arm_id(resource_group, "Microsoft.Network/networkInterfaces", name),
        name=name,
        location="eastus",
        ip_configurations=[
            SimpleNamespace(private_ip_address=ip, public_ip_address=SimpleNamespace(id="pip") if public else None)
            for ip in ips
        ],
        virtual_machine=SimpleNamespace(id=arm_id(resource_group, "Microsoft.Compute/virtualMachines", vm)) if vm else None,
        network_security_group=SimpleNamespace(id=arm_id(resource_group, "Microsoft.Network/networkSecurityGroups", nsg)) if nsg else None,
    )


class TestNetworkInventoryReport:

    def _setup(self, clients):
        network = clients['network']
        network.virtual_networks.list_all.return_value = [
            make_vnet("hub-vnet", "net-rg", ["10.0.0.0/16"], [
                make_subnet("GatewaySubnet", "10.0.0.0/27"),
                make_subnet("app", "10.0.1.0/24", nsg="app-nsg", ip_configs=3),
            ]),
            make_vnet("empty-vnet", "net-rg", ["10.9.0.0/16", "10.10.0.0/16"], []),
        ]
        network.network_interfaces.list_all.return_value = [
            make_nic("web-01-nic", "web-rg", ["10.0.1.4"], vm="web-01", public=True),
            make_nic("spare-nic", "web-rg", ["10.0.1.9", "10.0.1.10"], nsg="nic-nsg"),
        ]
        return network

    def test_subnet_records(self, clients, config):
        self._setup(clients)
        records = NetworkInventoryReport(include_nics=False).collect(
            SUBSCRIPTION_ID, clients, config, ReportResult("x", None)
        )

        assert all(isinstance(r, SubnetRecord) for r in records)
        assert [(r.vnet_name, r.subnet_name) for r in records] == [
            ("hub-vnet", "GatewaySubnet"),
            ("hub-vnet", "app"),
            ("empty-vnet", ""),
        ]
        app = records[1]
        assert app.nsg_name == "app-nsg"
        assert app.nic_count == 3
        assert app.subnet_prefix == "10.0.1.0/24"
        assert records[2].address_space == ["10.9.0.0/16", "10.10.0.0/16"]

    def test_nic_records(self, clients, config):
        self._setup(clients)
        records = NetworkInventoryReport(name_patterns=["*-nic"]).collect(
            SUBSCRIPTION_ID, clients, config, ReportResult("x", None)
        )

        nics = [r for r in records if isinstance(r, NetworkInterfaceRecord)]
        assert len(records) == len(nics) == 2
        web, spare = nics
        assert web.attached_vm == "web-01"
        assert web.has_public_ip
        assert spare.private_ips == ["10.0.1.9", "10.0.1.10"]
        assert spare.nsg_name == "nic-nsg"
        assert not spare.has_public_ip

    def test_summarize(self, clients, config):
        self._setup(clients)
        report = NetworkInventoryReport()
        totals = report.summarize(report.collect(SUBSCRIPTION_ID, clients, config, ReportResult("x", None)))

        assert totals == {
            'vnet_count': 2,
            'subnet_count': 2,
            'subnets_without_nsg': 1,
            'nic_count': 2,
            'unattached_nic_count': 1,
            'nics_with_public_ip': 1,
        }


def table_headers(report, record):
    return [column.header for column in build_table([record], report.get_columns()).columns]


def test_vm_and_disk_tables_show_their_own_fields():
    report = VmInventoryReport()
    vm = VirtualMachineRecord("web-01", "web-rg", "westeurope", "Standard_D2s_v3", os_type="Linux", power_state="running")
    disk = DiskRecord("old-data", "web-rg", "westeurope", "Standard_LRS", size_gb=512, disk_state="Unattached")

    assert table_headers(report, vm) == [
        "Name", "Resource Group", "Location", "Size", "Os Type", "Power State", "Os Disk", "Data Disk Count",
    ]
    assert table_headers(report, disk) == [
        "Name", "Resource Group", "Location", "Sku", "Size Gb", "Disk State", "Attached To", "Created",
    ]


def test_subnet_and_nic_tables_show_their_own_fields():
    report = NetworkInventoryReport()
    subnet = SubnetRecord("hub-vnet", "net-rg", "eastus", ["10.0.0.0/16"], "app", "10.0.1.0/24", "app-nsg", 3)
    nic = NetworkInterfaceRecord("web-01-nic", "web-rg", "eastus", ["10.0.1.4"], "web-01", has_public_ip=True)

    assert table_headers(report, subnet) == [
        "Vnet Name", "Resource Group", "Location", "Address Space", "Subnet Name", "Subnet Prefix", "Nsg Name", "Nic Count",
    ]
    assert table_headers(report, nic) == [
        "Name", "Resource Group", "Location", "Private Ips", "Attached Vm", "Nsg Name", "Has Public Ip",
    ]
