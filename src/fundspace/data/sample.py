"""Sample records for local development, the CLI and tests."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..pipeline.taxonomy import TAXONOMY_DISPLAY_NAMES


def sample_taxonomies() -> List[Dict[str, Any]]:
    rows = []
    for order, (code, name) in enumerate(TAXONOMY_DISPLAY_NAMES.items()):
        parts = code.split(".")
        rows.append({
            "code": code,
            "parent_code": ".".join(parts[:-1]) or None,
            "name": name,
            "display_name": name,
            "organization_type": parts[0],
            "level": len(parts),
            "sort_order": order,
        })
    return rows


def sample_organizations() -> List[Dict[str, Any]]:
    return [
        {
            "name": "Bay Area Community Fund",
            "slug": "bay-area-community-fund",
            "type": "foundation",
            "taxonomy_code": "foundation.community",
            "tagline": "Neighbors investing in neighbors",
            "description": "Community foundation funding housing, arts and youth programs across the Bay Area.",
            "location": "San Francisco, CA",
            "focus_areas": ["Housing", "Arts & Culture", "Youth Development"],
            "total_funding_annually": "$5M - $10M",
            "funding_locations": ["San Francisco", "Oakland", "San Jose"],
            "grant_types": ["Project Support", "General Operating"],
            "funder_type": "Community Foundation",
            "grants_offered": 60,
            "year_founded": 1984,
            "staff_count": 42,
        },
        {
            "name": "Golden State Health Trust",
            "slug": "golden-state-health-trust",
            "type": "foundation",
            "taxonomy_code": "foundation.family",
            "tagline": "Health access for every Californian",
            "description": "Family foundation supporting clinics and public health research.",
            "location": "Los Angeles, CA",
            "focus_areas": ["Health", "Research"],
            "total_funding_annually": "$20M - $50M",
            "funding_locations": ["Los Angeles", "Statewide"],
            "grant_types": ["Research", "Capacity Building"],
            "funder_type": "Private Foundation",
            "grants_offered": 24,
            "year_founded": 1999,
            "staff_count": 18,
        },
        {
            "name": "Tech For Good Corporate Giving",
            "slug": "tech-for-good",
            "type": "foundation",
            "taxonomy_code": "foundation.corporate",
            "tagline": "Digital inclusion grants",
            "description": "Corporate foundation backing digital literacy and STEM education.",
            "location": "San Jose, CA",
            "focus_areas": ["Education", "Technology"],
            "total_funding_annually": "Varies",
            "funding_locations": ["Bay Area"],
            "grant_types": ["Program Support"],
            "funder_type": "Corporate Foundation",
            "grants_offered": 12,
            "year_founded": 2012,
            "staff_count": 6,
        },
        {
            "name": "Mission Food Collective",
            "slug": "mission-food-collective",
            "type": "nonprofit",
            "taxonomy_code": "nonprofit.501c3",
            "tagline": "Fresh food, no questions asked",
            "description": "Food bank and community kitchen serving the Mission District.",
            "location": "San Francisco, CA",
            "focus_areas": ["Food Security", "Community"],
            "budget": "$1M - $5M",
            "year_founded": 2005,
            "staff_count": 25,
        },
        {
            "name": "Oakland Youth Arts",
            "slug": "oakland-youth-arts",
            "type": "nonprofit",
            "taxonomy_code": "nonprofit.501c3",
            "tagline": "Every kid an artist",
            "description": "After-school arts education for Oakland teens.",
            "location": "Oakland, CA",
            "focus_areas": ["Arts & Culture", "Youth Development"],
            "budget": "$250K - $500K",
            "year_founded": 2014,
            "staff_count": 8,
        },
        {
            "name": "Clean Streets Advocacy",
            "slug": "clean-streets-advocacy",
            "type": "nonprofit",
            "taxonomy_code": "nonprofit.501c4",
            "tagline": "Safer streets through policy",
            "description": "Advocacy organization for pedestrian safety and clean transit.",
            "location": "Sacramento, CA",
            "focus_areas": ["Environment", "Transportation"],
            "budget": "$500K - $1M",
            "year_founded": 2018,
            "staff_count": 5,
        },
        {
            "name": "City of Fremont Office of Grants",
            "slug": "city-of-fremont",
            "type": "government",
            "taxonomy_code": "government.local",
            "description": "Municipal grants office.",
            "location": "Fremont, CA",
            "focus_areas": ["Community"],
            "year_founded": 1956,
        },
    ]


def sample_grants(today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Grants with due dates relative to today so that open and closed both appear."""
    today = today or date.today()
    return [
        {
            "title": "Affordable Housing Innovation Fund",
            "description": "Support for pilot projects that create or preserve affordable housing.",
            "foundation_name": "Bay Area Community Fund",
            "funder_slug": "bay-area-community-fund",
            "funding_amount": "$50K - $250K",
            "due_date": today + timedelta(days=30),
            "grant_type": "Project Support",
            "categories": ["Housing", "Community"],
            "locations": ["San Francisco", "Oakland"],
            "eligible_organization_types": ["nonprofit"],
            "keywords": ["housing", "pilot"],
        },
        {
            "title": "Youth Arts Access Grant",
            "description": "General operating grants for youth arts organizations.",
            "foundation_name": "Bay Area Community Fund",
            "funder_slug": "bay-area-community-fund",
            "funding_amount": "Up to $30K",
            "due_date": today + timedelta(days=7),
            "grant_type": "General Operating",
            "categories": ["Arts & Culture", "Youth Development"],
            "locations": ["Oakland"],
            "eligible_organization_types": ["nonprofit.501c3"],
            "keywords": ["arts", "youth"],
        },
        {
            "title": "Community Health Research Awards",
            "description": "Multi-year research funding for community health interventions.",
            "foundation_name": "Golden State Health Trust",
            "funder_slug": "golden-state-health-trust",
            "funding_amount": "$500K - $1M",
            "due_date": today + timedelta(days=90),
            "grant_type": "Research",
            "categories": ["Health", "Research"],
            "locations": ["Statewide"],
            "eligible_organization_types": ["education", "healthcare"],
            "keywords": ["public health", "research"],
        },
        {
            "title": "Clinic Capacity Building",
            "description": "Rolling grants that help community clinics expand hours and staff.",
            "foundation_name": "Golden State Health Trust",
            "funder_slug": "golden-state-health-trust",
            "funding_amount": "$100,000",
            "due_date": None,
            "grant_type": "Capacity Building",
            "categories": ["Health"],
            "locations": ["Los Angeles"],
            "eligible_organization_types": ["healthcare.clinic", "nonprofit"],
            "keywords": ["clinic"],
        },
        {
            "title": "Digital Literacy Program Grants",
            "description": "Funding for digital skills training in underserved communities.",
            "foundation_name": "Tech For Good Corporate Giving",
            "funder_slug": "tech-for-good",
            "funding_amount": "$25K",
            "due_date": today - timedelta(days=10),
            "grant_type": "Program Support",
            "categories": ["Education", "Technology"],
            "locations": ["San Jose", "Bay Area"],
            "eligible_organization_types": [],
            "keywords": ["digital", "stem"],
        },
        {
            "title": "Neighborhood Food Security Fund",
            "description": "Support for food banks and community kitchens.",
            "foundation_name": "Bay Area Community Fund",
            "funder_slug": "bay-area-community-fund",
            "funding_amount": "Varies",
            "due_date": today + timedelta(days=45),
            "grant_type": "Project Support",
            "categories": ["Food Security"],
            "locations": ["San Francisco"],
            "eligible_organization_types": ["nonprofit"],
            "keywords": ["food"],
        },
        {
            "title": "Safe Streets Planning Grant",
            "description": "Municipal planning grants for pedestrian safety improvements.",
            "foundation_name": "City of Fremont Office of Grants",
            "funder_slug": "city-of-fremont",
            "funding_amount": "$1.5M",
            "due_date": today - timedelta(days=60),
            "grant_type": "Planning",
            "categories": ["Transportation", "Environment"],
            "locations": ["Fremont"],
            "eligible_organization_types": ["government.local", "nonprofit.501c4"],
            "keywords": ["safety", "planning"],
        },
    ]


def sample_articles(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or datetime.now(timezone.utc)
    return [
        {
            "title": "State budget expands nonprofit relief fund",
            "summary": "Lawmakers approved an additional round of relief grants.",
            "url": "https://news.example.org/state-budget-relief",
            "image_url": "https://news.example.org/img/budget.jpg",
            "category": "california",
            "source_name": "CalMatters",
            "published_at": now - timedelta(hours=3),
        },
        {
            "title": "Giving trends: donors shift to general operating support",
            "summary": "A new survey finds more unrestricted giving.",
            "url": "https://news.example.org/giving-trends",
            "image_url": None,
            "category": "general",
            "source_name": "Philanthropy Daily",
            "published_at": now - timedelta(days=2),
        },
        {
            "title": "Community foundations announce joint housing initiative",
            "summary": "Five Bay Area funders pool resources for housing.",
            "url": "https://news.example.org/housing-initiative",
            "image_url": None,
            "category": "funder",
            "source_name": "Inside Philanthropy",
            "published_at": now - timedelta(minutes=20),
        },
        {
            "title": "How small nonprofits are using AI for grant writing",
            "summary": "Tools and cautions from practitioners.",
            "url": "https://news.example.org/nonprofit-ai",
            "image_url": None,
            "category": "nonprofit",
            "source_name": "Nonprofit Quarterly",
            "published_at": now - timedelta(days=5),
        },
    ]
