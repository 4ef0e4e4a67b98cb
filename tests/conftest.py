"""Shared fixtures and fake Azure SDK objects"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from azure_report_tools.core.models import ReportConfiguration

SUBSCRIPTION_ID = "00000000-1111-2222-3333-444444444444"


def arm_id(resource_group, provider_type, name, subscription_id=SUBSCRIPTION_ID):
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/{provider_type}/{name}"
    )


def make_rule(
    name,
    ports=None,
    port_list=None,
    protocol="Tcp",
    access="Allow",
    direction="Inbound",
    source="*",
    destination="*",
    priority=100,
):
    return SimpleNamespace(
        name=name,
        priority=priority,
        protocol=protocol,
        access=access,
        direction=direction,
        source_address_prefix=source,
        source_address_prefixes=[],
        source_application_security_groups=None,
        destination_address_prefix=destination,
        destination_address_prefixes=[],
        destination_application_security_groups=None,
        destination_port_range=ports,
        destination_port_ranges=port_list or [],
    )


def make_nsg(name, resource_group, rules, default_rules=None):
    return SimpleNamespace(
        id=arm_id(resource_group, "Microsoft.Network/networkSecurityGroups", name),
        name=name,
        location="eastus",
        security_rules=rules,
        default_security_rules=default_rules or [],
    )


def make_query_result(columns, rows, next_link=None):
    return SimpleNamespace(
        columns=[SimpleNamespace(name=column, type="String") for column in columns],
        rows=rows,
        next_link=next_link,
    )


@pytest.fixture
def config():
    return ReportConfiguration(retry_initial_delay=0.01, retry_max_total_delay=0.05)


@pytest.fixture
def clients():
    return {
        'compute': MagicMock(),
        'network': MagicMock(),
        'storage': MagicMock(),
        'cost': MagicMock(),
    }
