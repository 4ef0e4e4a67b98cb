"""Name and type pattern filters"""

import fnmatch
from typing import Iterable, Optional


def matches_any(value: Optional[str], patterns: Optional[Iterable[str]]) -> bool:
    """Case-insensitive shell wildcard match; no patterns means match everything"""
    patterns = [p for p in (patterns or []) if p]
    if not patterns:
        return True
    value = (value or "").lower()
    return any(fnmatch.fnmatchcase(value, pattern.lower()) for pattern in patterns)


def resource_group_from_id(resource_id: Optional[str]) -> str:
    """Extract the resource group segment from an ARM resource id"""
    if not resource_id:
        return ""
    parts = resource_id.split('/')
    for index, part in enumerate(parts[:-1]):
        if part.lower() == 'resourcegroups':
            return parts[index + 1]
    return ""


def name_from_id(resource_id: Optional[str]) -> str:
    """Return the last segment of an ARM resource id"""
    if not resource_id:
        return ""
    return resource_id.rstrip('/').split('/')[-1]


def resource_type_from_id(resource_id: Optional[str]) -> str:
    """Provider namespace and type path of an ARM resource id

    ``/subscriptions/s/resourceGroups/rg/providers/Microsoft.Storage/storageAccounts/sa``
    gives ``Microsoft.Storage/storageAccounts``; nested types keep every type
    segment, e.g. ``Microsoft.Sql/servers/databases``.
    """
    if not resource_id:
        return ""
    parts = resource_id.strip('/').split('/')
    lowered = [p.lower() for p in parts]
    if 'providers' not in lowered:
        return ""
    index = len(lowered) - 1 - lowered[::-1].index('providers')
    tail = parts[index + 1:]
    if not tail:
        return ""
    namespace, segments = tail[0], tail[1:]
    types = segments[0::2]
    return "/".join([namespace] + types)
