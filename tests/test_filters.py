"""Tests for the discovery filter predicates and filter configurations."""

from datetime import date

import pytest

from fundspace.models.records import Funder, Grant, Nonprofit, Organization
from fundspace.pipeline.filters import (
    annual_giving_matches,
    filter_funder,
    filter_grant,
    filter_nonprofit,
    filter_organization,
    filter_records,
    grant_status_matches,
    is_grant_active,
)
from fundspace.schemas.filters import FunderFilter, GrantFilter, NonprofitFilter, OrganizationFilter

TODAY = date(2026, 6, 1)


@pytest.fixture
def grants():
    return [
        Grant(id=1, title="Housing Innovation", funding_amount="$50K - $250K", due_date=date(2026, 7, 1),
              categories=["Housing"], locations=["Oakland"], keywords=["pilot"],
              eligible_organization_types=["nonprofit"], grant_type="Project Support"),
        Grant(id=2, title="Clinic Capacity", funding_amount="$100,000", categories=["Health"],
              locations=["Los Angeles"], eligible_organization_types=["healthcare.clinic"]),
        Grant(id=3, title="Digital Literacy", funding_amount="$25K", due_date=date(2026, 5, 1),
              categories=["Education"], locations=["San Jose"]),
        Grant(id=4, title="Food Security", funding_amount="Varies", due_date=date(2026, 7, 15),
              foundation_name="Bay Area Community Fund", categories=["Food Security"]),
    ]


def _ids(grants, config):
    return [g.id for g in grants if filter_grant(g, config, TODAY)]


class TestGrantFilter:
    def test_empty_config_keeps_everything(self, grants):
        assert _ids(grants, None) == [1, 2, 3, 4]
        assert _ids(grants, GrantFilter()) == [1, 2, 3, 4]

    def test_search_covers_funder_and_keywords(self, grants):
        assert _ids(grants, GrantFilter(search="community fund")) == [4]
        assert _ids(grants, GrantFilter(search="PILOT")) == [1]

    def test_location_and_category_are_case_insensitive(self, grants):
        assert _ids(grants, GrantFilter(locations=["oakland"])) == [1]
        assert _ids(grants, GrantFilter(categories=["health", "education"])) == [2, 3]

    def test_region_wide_location_matches_every_county(self, grants):
        regional = Grant(id=5, title="Regional Fund", locations=["All Bay Area Counties"])
        assert filter_grant(regional, GrantFilter(locations=["Alameda"]), TODAY)
        assert _ids(grants, GrantFilter(locations=["All Bay Area Counties"])) == [1, 2, 3, 4]

    def test_taxonomy_filter_matches_descendants(self, grants):
        assert _ids(grants, GrantFilter(taxonomies=["healthcare"])) == [2]

    def test_funding_bounds_overlap_the_range(self, grants):
        assert _ids(grants, GrantFilter(min_funding=200_000)) == [1]
        # An unknown amount has no lower end, so an upper bound alone keeps it
        assert _ids(grants, GrantFilter(max_funding=60_000)) == [1, 3, 4]

    def test_zero_bound_means_no_bound(self, grants):
        assert GrantFilter(min_funding=0).min_funding is None
        assert _ids(grants, GrantFilter(min_funding="0")) == [1, 2, 3, 4]

    @pytest.mark.parametrize(
        "status,expected",
        [("Open", [1, 2, 4]), ("Rolling", [2]), ("Closed", [3]), ("Someday", [1, 2, 3, 4])],
    )
    def test_status(self, grants, status, expected):
        assert _ids(grants, GrantFilter(status=status)) == expected

    def test_dimensions_combine_with_and(self, grants):
        config = GrantFilter(categories=["Housing", "Education"], status="Open")
        assert _ids(grants, config) == [1]

    def test_front_end_aliases_and_lenient_values(self):
        config = GrantFilter.model_validate({
            "searchTerm": " housing ",
            "locationFilter": "Oakland",
            "minFunding": "$1,000",
            "maxFunding": "not a number",
            "grantStatusFilter": "Open",
        })
        assert config.search == "housing"
        assert config.locations == ["Oakland"]
        assert config.min_funding == 1000
        assert config.max_funding is None
        assert config.status == "Open"

    def test_malformed_record_is_excluded_not_raised(self):
        assert not filter_grant("not a grant", GrantFilter(search="x"))
        assert filter_grant({"title": "Dict grant", "categories": "not-a-list"}, GrantFilter(search="dict"))


def test_grant_status_and_activity():
    rolling = Grant(title="Rolling")
    closed = Grant(title="Closed", due_date=date(2026, 5, 31))
    due_today = Grant(title="Today", due_date=TODAY)
    assert is_grant_active(rolling, TODAY)
    assert is_grant_active(due_today, TODAY)
    assert not is_grant_active(closed, TODAY)
    assert grant_status_matches(rolling, "Open", TODAY)
    assert grant_status_matches(closed, "Closed", TODAY)
    assert closed.status_on(TODAY) == "Closed"
    assert rolling.status_on(TODAY) == "Rolling"


class TestAnnualGiving:
    def test_bucket_bounds(self):
        assert annual_giving_matches("$5M", "1000000-10000000")
        assert not annual_giving_matches("$50M", "1000000-10000000")
        assert annual_giving_matches("$50M", "10000000-")

    def test_varies_stays_in_every_bucket(self):
        assert annual_giving_matches("Varies", "1000000-10000000")

    def test_other_unknown_figures_are_excluded(self):
        assert not annual_giving_matches("Not disclosed", "1000000-10000000")

    def test_empty_bucket(self):
        assert annual_giving_matches("anything", "")


def test_funder_filter():
    funders = [
        Funder(id="a", name="Bay Area Community Fund", location="San Francisco, CA",
               focus_areas=["Housing"], grant_types=["Project Support"], funder_type="Community Foundation",
               total_funding_annually="$5M - $10M", funding_locations=["Oakland"]),
        Funder(id="b", name="Tech For Good", location="San Jose, CA", focus_areas=["Technology"],
               grant_types=["Program Support"], funder_type="Corporate Foundation",
               total_funding_annually="Varies"),
    ]

    def ids(config):
        return [f.id for f in funders if filter_funder(f, config)]

    assert ids(FunderFilter(locations=["san jose"])) == ["b"]
    assert ids(FunderFilter(focus_areas=["Housing"])) == ["a"]
    assert ids(FunderFilter(grant_type="Program Support")) == ["b"]
    assert ids(FunderFilter(funder_type="Community Foundation")) == ["a"]
    assert ids(FunderFilter(geographic_scope=["Oakland"])) == ["a"]
    assert ids(FunderFilter(annual_giving="1000000-20000000")) == ["a", "b"]


def test_nonprofit_filter():
    nonprofits = [
        Nonprofit(id="m", name="Mission Food Collective", taxonomy_code="nonprofit.501c3",
                  budget="$1M - $5M", staff_count=25, location="San Francisco, CA"),
        Nonprofit(id="c", name="Clean Streets Advocacy", taxonomy_code="nonprofit.501c4",
                  budget="$500K - $1M", staff_count=5, location="Sacramento, CA"),
        Nonprofit(id="u", name="Unknown Budget", taxonomy_code="nonprofit.501c3"),
    ]

    def ids(config):
        return [n.id for n in nonprofits if filter_nonprofit(n, config)]

    assert ids(NonprofitFilter(taxonomies=["nonprofit.501c4"])) == ["c"]
    assert ids(NonprofitFilter(taxonomies=["nonprofit"])) == ["m", "c", "u"]
    assert ids(NonprofitFilter(min_budget=2_000_000)) == ["m"]
    assert ids(NonprofitFilter(max_staff=10)) == ["c", "u"]


def test_organization_filter_budget_only_constrains_known_budgets():
    organizations = [
        Organization(id="n", name="Known", type="nonprofit", budget="$250K - $500K"),
        Organization(id="g", name="No Budget", type="government"),
        Organization(id="f", name="Funder", type="foundation", total_funding_annually="$20M"),
    ]

    def ids(config):
        return [o.id for o in organizations if filter_organization(o, config)]

    assert ids(OrganizationFilter(min_budget=1_000_000)) == ["g", "f"]
    assert ids(OrganizationFilter(types=["government", "foundation"])) == ["g", "f"]
    assert ids(OrganizationFilter(annual_giving="1000000-5000000")) == ["n", "g"]


def test_filter_records_dispatches_on_config_kind(grants):
    assert [g.id for g in filter_records(grants, GrantFilter(categories=["Health"]))] == [2]
    assert filter_records("not a list", GrantFilter()) == []


def test_funder_location_region_wide():
    regional = {"name": "North Bay Giving", "location": "All Bay Area Counties"}
    local = {"name": "Peninsula Fund", "location": "San Mateo, CA"}
    assert filter_funder(regional, {"locations": ["Alameda"]})
    assert not filter_funder(local, {"locations": ["Alameda"]})
    assert filter_funder(local, {"locations": ["all bay area counties"]})
