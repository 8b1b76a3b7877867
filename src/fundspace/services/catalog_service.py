"""Listings for the grants, funders, nonprofits and organizations pages."""

from datetime import date
from typing import Any, Dict, List, Optional
import structlog

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..pipeline.funding import format_funding, total_available_funding
from ..pipeline.runner import funder_pipeline, grant_pipeline, nonprofit_pipeline, organization_pipeline
from ..pipeline.taxonomy import build_taxonomy_tree
from ..repositories.grant_repository import GrantRepository
from ..repositories.organization_repository import OrganizationRepository
from ..schemas.filters import FunderFilter, GrantFilter, NonprofitFilter, OrganizationFilter

logger = structlog.get_logger(__name__)


def serialize_record(record) -> Dict[str, Any]:
    return record.model_dump(mode="json")


def serialize_grant(grant, today: Optional[date] = None) -> Dict[str, Any]:
    data = grant.model_dump(mode="json")
    data["status"] = grant.status_on(today)
    return data


class CatalogService:
    """Loads records and runs them through filter, sort and paginate per request."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.grants = GrantRepository(session)
        self.organizations = OrganizationRepository(session)

    def _page_size(self, page_size: Optional[int]) -> int:
        return self.settings.page_size if page_size is None else page_size

    async def grant_listing(self, filters: GrantFilter, sort: Optional[str] = None, page: int = 1,
                            page_size: Optional[int] = None, today: Optional[date] = None) -> Dict[str, Any]:
        records = await self.grants.list_records()
        result = grant_pipeline(records, filters, sort, page, self._page_size(page_size))
        total = total_available_funding(result.filtered, today)
        payload = result.page.to_dict(lambda grant: serialize_grant(grant, today))
        payload["total_available_funding"] = total
        payload["total_available_funding_display"] = format_funding(total)
        logger.debug("Grant listing built", total_items=payload["total_items"], page=payload["page"])
        return payload

    async def funder_listing(self, filters: FunderFilter, sort: Optional[str] = None, page: int = 1,
                             page_size: Optional[int] = None) -> Dict[str, Any]:
        records = await self.organizations.list_records("foundation")
        result = funder_pipeline(records, filters, sort, page, self._page_size(page_size))
        return result.page.to_dict(serialize_record)

    async def nonprofit_listing(self, filters: NonprofitFilter, sort: Optional[str] = None, page: int = 1,
                                page_size: Optional[int] = None) -> Dict[str, Any]:
        records = await self.organizations.list_records("nonprofit")
        result = nonprofit_pipeline(records, filters, sort, page, self._page_size(page_size))
        return result.page.to_dict(serialize_record)

    async def organization_listing(self, filters: OrganizationFilter, sort: Optional[str] = None, page: int = 1,
                                   page_size: Optional[int] = None) -> Dict[str, Any]:
        records = await self.organizations.list_records()
        result = organization_pipeline(records, filters, sort, page, self._page_size(page_size))
        return result.page.to_dict(serialize_record)

    async def taxonomy_tree(self, organization_type: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = await self.organizations.taxonomies(organization_type)
        return build_taxonomy_tree([row.to_dict() for row in rows])
