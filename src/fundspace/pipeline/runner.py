"""Filter, sort and paginate composed into one listing pass."""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .pagination import Page, paginate


@dataclass
class PipelineResult:
    page: Page
    filtered: List[Any] = field(default_factory=list)


def run_pipeline(
    records: Any,
    filter_config: Any,
    predicate: Callable[[Any, Any], bool],
    sort_criteria: Any,
    sorter: Callable[[Any, Any], List[Any]],
    page: int = 1,
    page_size: int = 12,
) -> PipelineResult:
    """Run filter -> sort -> paginate over records.

    Nothing is cached between calls; every request recomputes the listing
    from the full record set.
    """
    if not isinstance(records, (list, tuple)):
        records = []
    filtered = [record for record in records if predicate(record, filter_config)]
    ordered = sorter(filtered, sort_criteria)
    return PipelineResult(page=paginate(ordered, page_size, page), filtered=ordered)


def grant_pipeline(records: Any, filter_config: Any = None, sort_criteria: Optional[str] = None,
                   page: int = 1, page_size: int = 12) -> PipelineResult:
    from .filters import filter_grant
    from .sorting import sort_grants

    return run_pipeline(records, filter_config, filter_grant, sort_criteria, sort_grants, page, page_size)


def funder_pipeline(records: Any, filter_config: Any = None, sort_criteria: Optional[str] = None,
                    page: int = 1, page_size: int = 12) -> PipelineResult:
    from .filters import filter_funder
    from .sorting import sort_funders

    return run_pipeline(records, filter_config, filter_funder, sort_criteria, sort_funders, page, page_size)


def nonprofit_pipeline(records: Any, filter_config: Any = None, sort_criteria: Optional[str] = None,
                       page: int = 1, page_size: int = 12) -> PipelineResult:
    from .filters import filter_nonprofit
    from .sorting import sort_nonprofits

    return run_pipeline(records, filter_config, filter_nonprofit, sort_criteria, sort_nonprofits, page, page_size)


def organization_pipeline(records: Any, filter_config: Any = None, sort_criteria: Optional[str] = None,
                          page: int = 1, page_size: int = 12) -> PipelineResult:
    from .filters import filter_organization
    from .sorting import sort_organizations

    return run_pipeline(
        records, filter_config, filter_organization, sort_criteria, sort_organizations, page, page_size
    )
