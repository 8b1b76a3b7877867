"""Sort comparators for discovery listings.

Every sort returns a new list and leaves its input untouched. Python's sort
is stable, so records that compare equal keep their input order.
"""

from datetime import date, datetime, timezone
from enum import Enum
from functools import cmp_to_key
from typing import Any, List, Optional, Tuple, Type, Union

import structlog

from ..models.records import Funder, Grant, Nonprofit, Organization, coerce_record

logger = structlog.get_logger(__name__)

FAR_FUTURE = date.max


class GrantSort(str, Enum):
    DUE_DATE_ASC = "dueDate_asc"
    DUE_DATE_DESC = "dueDate_desc"
    FUNDING_ASC = "funding_asc"
    FUNDING_DESC = "funding_desc"
    TITLE_ASC = "title_asc"
    TITLE_DESC = "title_desc"
    AMOUNT_ASC = "amount_asc"
    AMOUNT_DESC = "amount_desc"


class FunderSort(str, Enum):
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    FUNDING_ASC = "funding_asc"
    FUNDING_DESC = "funding_desc"
    GRANTS_OFFERED_ASC = "grantsOffered_asc"
    GRANTS_OFFERED_DESC = "grantsOffered_desc"


class NonprofitSort(str, Enum):
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    STAFF_COUNT_ASC = "staffCount_asc"
    STAFF_COUNT_DESC = "staffCount_desc"
    YEAR_FOUNDED_ASC = "yearFounded_asc"
    YEAR_FOUNDED_DESC = "yearFounded_desc"


class OrganizationSort(str, Enum):
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    TYPE_ASC = "type_asc"
    TYPE_DESC = "type_desc"
    LOCATION_ASC = "location_asc"
    LOCATION_DESC = "location_desc"
    CREATED_ASC = "created_asc"
    CREATED_DESC = "created_desc"
    FUNDING_ASC = "funding_asc"
    FUNDING_DESC = "funding_desc"


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def text_key(value: Optional[str]) -> Tuple[str, str]:
    """Total order for display text: case-folded first, raw text breaks ties."""
    value = value or ""
    return (value.casefold(), value)


def _timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _criteria(value: Union[str, Enum, None], enum_cls: Type[Enum]) -> Optional[Enum]:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value.value if isinstance(value, Enum) else value)
    except ValueError:
        return None


def compare_grants(a: Grant, b: Grant, criteria: Union[GrantSort, str, None], today: Optional[date] = None) -> int:
    """Order two grants; inactive grants always follow active ones."""
    a_active, b_active = a.is_active(today), b.is_active(today)
    if a_active != b_active:
        return -1 if a_active else 1

    sort = _criteria(criteria, GrantSort)
    if sort in (GrantSort.DUE_DATE_ASC, GrantSort.DUE_DATE_DESC):
        result = _cmp(a.due_date or FAR_FUTURE, b.due_date or FAR_FUTURE)
        return result if sort == GrantSort.DUE_DATE_ASC else -result
    if sort in (GrantSort.FUNDING_ASC, GrantSort.AMOUNT_ASC):
        return _cmp(a.funding.max, b.funding.max)
    if sort in (GrantSort.FUNDING_DESC, GrantSort.AMOUNT_DESC):
        return _cmp(b.funding.max, a.funding.max)
    if sort == GrantSort.TITLE_ASC:
        return _cmp(text_key(a.title), text_key(b.title))
    if sort == GrantSort.TITLE_DESC:
        return _cmp(text_key(b.title), text_key(a.title))
    return 0


_ORGANIZATION_KEYS = {
    "name": lambda o: text_key(o.name),
    "type": lambda o: text_key(o.type),
    "location": lambda o: text_key(o.location),
    "created": lambda o: _timestamp(o.created_at),
    "funding": lambda o: o.funding.min,
    "grantsOffered": lambda o: o.grants_offered or 0,
    "staffCount": lambda o: o.staff_count or 0,
    "yearFounded": lambda o: o.year_founded or 0,
}


def compare_organizations(a: Organization, b: Organization, criteria: Union[Enum, str, None]) -> int:
    """Order two organization records; unknown criteria sort by name ascending."""
    value = criteria.value if isinstance(criteria, Enum) else (criteria or "")
    field, _, direction = value.rpartition("_")
    key = _ORGANIZATION_KEYS.get(field)
    if key is None or direction not in ("asc", "desc"):
        key, direction = _ORGANIZATION_KEYS["name"], "asc"

    result = _cmp(key(a), key(b))
    return result if direction == "asc" else -result


def _coerce_all(records: Any, cls) -> Optional[List[Any]]:
    if not isinstance(records, (list, tuple)):
        logger.warning("Sort received a non-list", received=type(records).__name__)
        return None
    coerced = []
    for record in records:
        model = coerce_record(record, cls)
        if model is not None:
            coerced.append(model)
    return coerced


def sort_grants(grants: Any, criteria: Union[GrantSort, str, None], today: Optional[date] = None) -> List[Grant]:
    records = _coerce_all(grants, Grant)
    if records is None:
        return []
    today = today or date.today()
    return sorted(records, key=cmp_to_key(lambda a, b: compare_grants(a, b, criteria, today)))


def _sort_organizations(records: Any, criteria, enum_cls: Type[Enum], record_cls) -> List[Any]:
    coerced = _coerce_all(records, record_cls)
    if coerced is None:
        return []
    sort = _criteria(criteria, enum_cls)
    return sorted(coerced, key=cmp_to_key(lambda a, b: compare_organizations(a, b, sort)))


def sort_funders(funders: Any, criteria: Union[FunderSort, str, None]) -> List[Funder]:
    return _sort_organizations(funders, criteria, FunderSort, Funder)


def sort_nonprofits(nonprofits: Any, criteria: Union[NonprofitSort, str, None]) -> List[Nonprofit]:
    return _sort_organizations(nonprofits, criteria, NonprofitSort, Nonprofit)


def sort_organizations(organizations: Any, criteria: Union[OrganizationSort, str, None]) -> List[Organization]:
    return _sort_organizations(organizations, criteria, OrganizationSort, Organization)
