"""Filter predicates for grants, funders, nonprofits and organizations.

Each predicate takes one record and a filter configuration and answers
whether the record stays in the listing. Dimensions combine with AND; the
values inside a list dimension combine with OR. Malformed records never
raise: a dimension that cannot be evaluated simply does not match.
"""

from datetime import date
from typing import Any, List, Optional, Union

import structlog

from ..models.records import Funder, Grant, Nonprofit, Organization, coerce_record
from ..schemas.filters import FunderFilter, GrantFilter, NonprofitFilter, OrganizationFilter
from .funding import parse_amount
from .taxonomy import codes_overlap, matches_any

logger = structlog.get_logger(__name__)

GRANT_STATUSES = ("Open", "Rolling", "Closed")

FilterConfig = Union[GrantFilter, FunderFilter, NonprofitFilter, OrganizationFilter]

# A record or filter naming the whole region matches every county
REGION_WIDE = "all bay area counties"


def _contains(term: str, *fields: Any) -> bool:
    """Case-insensitive substring search over text fields and lists of text."""
    if not term:
        return True
    needle = term.lower()
    for value in fields:
        if isinstance(value, str):
            if needle in value.lower():
                return True
        elif isinstance(value, list):
            if any(isinstance(item, str) and needle in item.lower() for item in value):
                return True
    return False


def _intersects(wanted: List[str], have: List[str], casefold: bool = False) -> bool:
    if not wanted:
        return True
    if casefold:
        have_set = {h.lower() for h in have}
        return any(w.lower() in have_set for w in wanted)
    return any(w in have for w in wanted)


def _region_wide(wanted: List[str]) -> bool:
    return any(w.strip().lower() == REGION_WIDE for w in wanted)


def _locations_intersect(wanted: List[str], have: List[str]) -> bool:
    if not wanted or _region_wide(wanted) or _region_wide(have):
        return True
    return _intersects(wanted, have, casefold=True)


def _location_matches(wanted: List[str], location: str) -> bool:
    """Substring match of any wanted location against a free-text location."""
    if not wanted or _region_wide(wanted):
        return True
    if not location:
        return False
    haystack = location.lower()
    if REGION_WIDE in haystack:
        return True
    return any(w.lower() in haystack for w in wanted)


def _within(low: Optional[float], high: Optional[float], record_min: float, record_max: float) -> bool:
    """Range overlap with an unbounded side wherever a bound is absent."""
    if low is not None and record_max < low:
        return False
    if high is not None and record_min > high:
        return False
    return True


def _config(config: Any, cls):
    if config is None:
        return cls()
    if isinstance(config, cls):
        return config
    if isinstance(config, dict):
        return cls.model_validate(config)
    return cls.model_validate(config.model_dump()) if hasattr(config, "model_dump") else cls()


def is_grant_active(grant: Any, today: Optional[date] = None) -> bool:
    """Active iff there is no due date or it falls today or later."""
    record = coerce_record(grant, Grant)
    return record.is_active(today) if record is not None else False


def grant_status_matches(grant: Any, status: Optional[str], today: Optional[date] = None) -> bool:
    """Status filter; "Open" deliberately includes rolling grants.

    Unknown status values leave the listing unfiltered.
    """
    if not status or status not in GRANT_STATUSES:
        return True
    record = coerce_record(grant, Grant)
    if record is None:
        return False
    due = record.due_date
    today = today or date.today()
    if status == "Open":
        return due is None or due >= today
    if status == "Rolling":
        return due is None
    return due is not None and due < today


def annual_giving_matches(total_funding_annually: str, bucket: str) -> bool:
    """Match a funder's annual giving against a ``"min-max"`` bucket.

    Funders whose giving is "Varies" stay in every bucket; any other
    unparseable figure is excluded.
    """
    if not bucket:
        return True
    parts = bucket.split("-")
    try:
        low = float(parts[0]) if parts[0] else 0
        high = float(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        return True

    amount = parse_amount(total_funding_annually)
    if amount == 0:
        return (total_funding_annually or "").strip().lower() == "varies"
    if low and high:
        return low <= amount <= high
    if low:
        return amount >= low
    return True


def filter_grant(grant: Any, config: Any = None, today: Optional[date] = None) -> bool:
    f = _config(config, GrantFilter)
    if f.is_empty():
        return True
    record = coerce_record(grant, Grant)
    if record is None:
        return False

    if not _contains(f.search, record.title, record.description, record.foundation_name, record.keywords):
        return False
    if not _locations_intersect(f.locations, record.locations):
        return False
    if not _intersects(f.categories, record.categories, casefold=True):
        return False
    if not matches_any(record.eligible_organization_types, f.taxonomies):
        return False
    if f.eligible_organization_types and record.eligible_organization_types:
        if not any(
            codes_overlap(eligible, wanted)
            for eligible in record.eligible_organization_types
            for wanted in f.eligible_organization_types
        ):
            return False
    if not _within(f.min_funding, f.max_funding, record.funding.min, record.funding.max):
        return False
    if f.grant_type and record.grant_type != f.grant_type:
        return False
    return grant_status_matches(record, f.status, today)


def filter_funder(funder: Any, config: Any = None) -> bool:
    f = _config(config, FunderFilter)
    if f.is_empty():
        return True
    record = coerce_record(funder, Funder)
    if record is None:
        return False

    if not _contains(f.search, record.name, record.description, record.focus_areas, record.grant_types):
        return False
    if not _location_matches(f.locations, record.location):
        return False
    if not _intersects(f.focus_areas, record.focus_areas):
        return False
    if f.grant_type and f.grant_type not in record.grant_types:
        return False
    if f.funder_type and record.funder_type != f.funder_type:
        return False
    if not _intersects(f.geographic_scope, record.funding_locations):
        return False
    if not annual_giving_matches(record.total_funding_annually, f.annual_giving):
        return False
    return _within(f.min_funding, f.max_funding, record.funding.min, record.funding.max)


def filter_nonprofit(nonprofit: Any, config: Any = None) -> bool:
    f = _config(config, NonprofitFilter)
    if f.is_empty():
        return True
    record = coerce_record(nonprofit, Nonprofit)
    if record is None:
        return False

    if not _contains(f.search, record.name, record.description, record.tagline, record.focus_areas):
        return False
    if not _location_matches(f.locations, record.location):
        return False
    if not _intersects(f.focus_areas, record.focus_areas):
        return False
    if not matches_any([record.taxonomy_code], f.taxonomies):
        return False
    if not _within(f.min_budget, f.max_budget, record.budget_range.min, record.budget_range.max):
        return False
    staff = record.staff_count or 0
    return _within(f.min_staff, f.max_staff, staff, staff)


def filter_organization(organization: Any, config: Any = None) -> bool:
    f = _config(config, OrganizationFilter)
    if f.is_empty():
        return True
    record = coerce_record(organization, Organization)
    if record is None:
        return False

    if not _contains(f.search, record.name, record.description, record.focus_areas):
        return False
    if not _location_matches(f.locations, record.location):
        return False
    if not _intersects(f.focus_areas, record.focus_areas):
        return False
    if f.types and record.type not in f.types:
        return False
    if not matches_any([record.taxonomy_code], f.taxonomies):
        return False
    # Budget and giving bounds only constrain organizations that report a figure
    if not record.budget_range.is_unknown:
        if not _within(f.min_budget, f.max_budget, record.budget_range.min, record.budget_range.max):
            return False
    if f.annual_giving and record.type == "foundation" and record.total_funding_annually:
        return annual_giving_matches(record.total_funding_annually, f.annual_giving)
    return True


def matches(record: Any, config: Optional[FilterConfig]) -> bool:
    """Dispatch to the predicate for the configuration's record kind."""
    if isinstance(config, GrantFilter):
        return filter_grant(record, config)
    if isinstance(config, FunderFilter):
        return filter_funder(record, config)
    if isinstance(config, NonprofitFilter):
        return filter_nonprofit(record, config)
    if isinstance(config, OrganizationFilter):
        return filter_organization(record, config)
    if isinstance(record, Grant):
        return filter_grant(record, config)
    return filter_organization(record, config)


def filter_records(records: Any, config: Optional[FilterConfig]) -> List[Any]:
    """Records that match config, in input order; non-list input gives []."""
    if not isinstance(records, (list, tuple)):
        logger.warning("filter_records received a non-list", received=type(records).__name__)
        return []
    return [record for record in records if matches(record, config)]
