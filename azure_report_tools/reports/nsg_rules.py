"""NSG rule report with consolidated destination port ranges"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..core.exceptions import IntervalParseError
from ..core.interfaces import ISubscriptionReport
from ..core.intervals import PORT_MAX, PORT_MIN, ClosedInterval, IntervalSet
from ..core.models import (
    ConsolidatedPortRule,
    ReportConfiguration,
    ReportResult,
    RuleDirection,
    RuleGrouping,
)
from ..utils.filters import matches_any, resource_group_from_id
from ..utils.logger import setup_logger

GroupKey = Tuple[str, ...]


def _enum_value(value: Any) -> str:
    """SDK models return either plain strings or str enums"""
    value = getattr(value, 'value', value)
    return "" if value is None else str(value)


def _address_field(rule: Any, single_attr: str, list_attr: str, asg_attr: str) -> str:
    prefixes = []
    single = getattr(rule, single_attr, None)
    if single:
        prefixes.append(single)
    prefixes.extend(getattr(rule, list_attr, None) or [])
    for asg in getattr(rule, asg_attr, None) or []:
        asg_id = getattr(asg, 'id', None) or ""
        prefixes.append(asg_id.rstrip('/').split('/')[-1] or "asg")
    return ",".join(sorted(set(prefixes))) or "*"


def destination_port_descriptors(rule: Any) -> List[str]:
    """All destination port descriptors of a rule, as strings"""
    descriptors = []
    single = getattr(rule, 'destination_port_range', None)
    if single:
        descriptors.append(single)
    descriptors.extend(getattr(rule, 'destination_port_ranges', None) or [])

    expanded = []
    for descriptor in descriptors:
        expanded.extend(part.strip() for part in str(descriptor).split(',') if part.strip())
    return expanded


@dataclass
class PortGroup:
    """Consolidated ports and contributing rule names for one grouping key"""
    ports: IntervalSet = field(default_factory=IntervalSet)
    rule_names: List[str] = field(default_factory=list)


class RuleConsolidator:
    """Groups security rules and merges their destination port ranges

    One IntervalSet is kept per grouping key. In summary mode the key is
    (direction, protocol, access); detailed mode adds the source and
    destination address prefixes.
    """

    def __init__(
        self,
        grouping: RuleGrouping = RuleGrouping.SUMMARY,
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self.grouping = grouping
        self.logger = setup_logger(self.__class__.__name__)
        self._on_warning = on_warning
        self.groups: Dict[GroupKey, PortGroup] = {}

    def key_for(self, rule: Any) -> GroupKey:
        direction = _enum_value(getattr(rule, 'direction', None)) or "Inbound"
        protocol = _enum_value(getattr(rule, 'protocol', None)) or "*"
        access = _enum_value(getattr(rule, 'access', None)) or "Allow"
        if self.grouping == RuleGrouping.DETAILED:
            source = _address_field(
                rule, 'source_address_prefix', 'source_address_prefixes',
                'source_application_security_groups'
            )
            destination = _address_field(
                rule, 'destination_address_prefix', 'destination_address_prefixes',
                'destination_application_security_groups'
            )
            return (direction, source, destination, protocol, access)
        return (direction, protocol, access)

    def add_rule(self, rule: Any, context: str = "") -> None:
        """Fold one rule's destination ports into its group"""

        rule_name = getattr(rule, 'name', None) or "<unnamed>"
        label = f"{context}/{rule_name}" if context else rule_name

        descriptors = destination_port_descriptors(rule)
        if not descriptors:
            self._warn(f"{label}: rule has no destination port range, skipped")
            return

        key = self.key_for(rule)
        group = self.groups.get(key)
        if group is None:
            group = PortGroup()
            self.groups[key] = group

        skipped = []

        def _skip(descriptor: str, error: ValueError) -> None:
            skipped.append(descriptor)
            self._warn(f"{label}: {error}")

        consolidate_port_ranges(descriptors, on_error=_skip, ports=group.ports)
        if len(skipped) < len(descriptors):
            group.rule_names.append(rule_name)

    def add_rules(self, rules: Iterable[Any], context: str = "") -> None:
        for rule in rules:
            self.add_rule(rule, context)

    def results(self) -> List[Tuple[GroupKey, PortGroup]]:
        """Non-empty groups sorted by key"""
        return sorted(
            ((key, group) for key, group in self.groups.items() if len(group.ports)),
            key=lambda item: item[0],
        )

    def _warn(self, message: str) -> None:
        self.logger.warning(message)
        if self._on_warning:
            self._on_warning(message)


def consolidate_port_ranges(
    descriptors: Iterable[str],
    on_error: Optional[Callable[[str, ValueError], None]] = None,
    ports: Optional[IntervalSet] = None,
) -> IntervalSet:
    """Fold port descriptors into ``ports``, skipping (and reporting) malformed ones

    Descriptors outside 1-65535 are rejected like unparseable ones. Without
    ``on_error`` the first bad descriptor raises.
    """
    if ports is None:
        ports = IntervalSet()
    for descriptor in descriptors:
        try:
            interval = ClosedInterval.parse(descriptor)
            if interval.lower < PORT_MIN or interval.upper > PORT_MAX:
                raise IntervalParseError(descriptor, f"outside port range {PORT_MIN}-{PORT_MAX}")
            ports.add(interval)
        except ValueError as e:
            if on_error is None:
                raise
            on_error(descriptor, e)
    return ports


class NsgRulesReport(ISubscriptionReport):
    """Consolidated port ranges per NSG and rule group"""

    def __init__(
        self,
        name_patterns: Optional[List[str]] = None,
        resource_group_patterns: Optional[List[str]] = None,
        direction: RuleDirection = RuleDirection.BOTH,
        grouping: Optional[RuleGrouping] = None,
        include_default_rules: Optional[bool] = None,
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.name_patterns = name_patterns or []
        self.resource_group_patterns = resource_group_patterns or []
        self.direction = direction
        self.grouping = grouping
        self.include_default_rules = include_default_rules

    def get_report_name(self) -> str:
        return "NsgRulesReport"

    def get_columns(self) -> List[str]:
        columns = ['nsg_name', 'resource_group', 'direction']
        if self.grouping == RuleGrouping.DETAILED:
            columns += ['source', 'destination']
        return columns + ['protocol', 'access', 'ports', 'rule_count']

    def collect(
        self,
        subscription_id: str,
        clients: Dict[str, Any],
        config: ReportConfiguration,
        result: ReportResult,
    ) -> List[ConsolidatedPortRule]:
        """Consolidate rules of every matching NSG in the subscription"""

        if self.grouping is None:
            self.grouping = RuleGrouping(config.nsg_grouping)
        include_defaults = (
            config.nsg_include_default_rules
            if self.include_default_rules is None
            else self.include_default_rules
        )

        network_client = clients['network']
        records = []
        for nsg in network_client.network_security_groups.list_all():
            resource_group = resource_group_from_id(nsg.id)
            if not matches_any(nsg.name, self.name_patterns):
                continue
            if not matches_any(resource_group, self.resource_group_patterns):
                continue

            rules = list(nsg.security_rules or [])
            if include_defaults:
                rules.extend(nsg.default_security_rules or [])

            self.logger.debug(f"Consolidating {len(rules)} rules of {nsg.name}")
            records.extend(
                self.consolidate_nsg(nsg.name, resource_group, rules, subscription_id, result.warnings.append)
            )

        return records

    def consolidate_nsg(
        self,
        nsg_name: str,
        resource_group: str,
        rules: Iterable[Any],
        subscription_id: str = "",
        on_warning: Optional[Callable[[str], None]] = None,
    ) -> List[ConsolidatedPortRule]:
        """Group one NSG's rules and return a record per non-empty group"""

        grouping = self.grouping or RuleGrouping.SUMMARY
        consolidator = RuleConsolidator(grouping, on_warning=on_warning)
        consolidator.add_rules(
            (rule for rule in rules if self._direction_matches(rule)),
            context=nsg_name,
        )

        records = []
        for key, group in consolidator.results():
            if grouping == RuleGrouping.DETAILED:
                direction, source, destination, protocol, access = key
            else:
                direction, protocol, access = key
                source = destination = "*"
            records.append(ConsolidatedPortRule(
                nsg_name=nsg_name,
                resource_group=resource_group,
                direction=direction,
                protocol=protocol,
                access=access,
                ports=str(group.ports),
                source=source,
                destination=destination,
                range_count=len(group.ports),
                rule_count=len(group.rule_names),
                rule_names=list(group.rule_names),
                subscription_id=subscription_id,
            ))
        return records

    def _direction_matches(self, rule: Any) -> bool:
        if self.direction == RuleDirection.BOTH:
            return True
        return _enum_value(getattr(rule, 'direction', None)).lower() == self.direction.value.lower()

    def summarize(self, records: List[ConsolidatedPortRule]) -> Dict[str, Any]:
        open_inbound = [
            r for r in records
            if r.direction == "Inbound" and r.access == "Allow" and r.ports == "{1-65535}"
        ]
        return {
            'record_count': len(records),
            'nsg_count': len({(r.subscription_id, r.resource_group, r.nsg_name) for r in records}),
            'rules_consolidated': sum(r.rule_count for r in records),
            'port_ranges': sum(r.range_count for r in records),
            'inbound_allow_all_ports': len(open_inbound),
        }
