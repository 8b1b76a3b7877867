"""Load the sample records into a database."""

from datetime import date, datetime
from typing import Dict, Optional

import structlog

from ..core.database_manager import DatabaseManager
from ..models.database import OrganizationTaxonomy
from ..repositories.grant_repository import GrantRepository
from ..repositories.news_repository import NewsRepository
from ..repositories.organization_repository import OrganizationRepository
from .sample import sample_articles, sample_grants, sample_organizations, sample_taxonomies

logger = structlog.get_logger(__name__)


async def seed_database(db: DatabaseManager, today: Optional[date] = None,
                        now: Optional[datetime] = None) -> Dict[str, int]:
    """Insert the sample data once; a database that already has grants is left alone."""
    async with db.transaction() as session:
        grants = GrantRepository(session)
        if await grants.count() > 0:
            logger.info("Database already seeded, skipping")
            return {"taxonomies": 0, "organizations": 0, "grants": 0, "articles": 0}

        taxonomies = sample_taxonomies()
        session.add_all([OrganizationTaxonomy(**row) for row in taxonomies])

        organizations = OrganizationRepository(session)
        for row in sample_organizations():
            await organizations.create(row)

        grant_rows = sample_grants(today)
        for row in grant_rows:
            await grants.create(row)

        articles = await NewsRepository(session).add_many(sample_articles(now))

    counts = {
        "taxonomies": len(taxonomies),
        "organizations": len(sample_organizations()),
        "grants": len(grant_rows),
        "articles": articles,
    }
    logger.info("Sample data loaded", **counts)
    return counts
