"""Hierarchical taxonomy code matching.

Taxonomy codes are dot-separated paths such as ``nonprofit.501c3``. A record
tagged with a code satisfies a filter for any of its ancestors, never the
other way round.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

TAXONOMY_DISPLAY_NAMES = {
    "nonprofit": "Nonprofits",
    "nonprofit.501c3": "501(c)(3) Nonprofits",
    "nonprofit.501c4": "501(c)(4) Organizations",
    "nonprofit.501c6": "Business Leagues",
    "education": "Education",
    "education.university": "Universities",
    "education.k12": "K-12 Schools",
    "education.research": "Research Institutions",
    "healthcare": "Healthcare",
    "healthcare.hospital": "Hospitals",
    "healthcare.clinic": "Clinics",
    "government": "Government",
    "government.federal": "Federal Agencies",
    "government.state": "State Agencies",
    "government.local": "Local Government",
    "foundation": "Foundations",
    "foundation.family": "Family Foundations",
    "foundation.community": "Community Foundations",
    "foundation.corporate": "Corporate Foundations",
    "forprofit": "For-Profit Companies",
    "forprofit.startup": "Startups",
    "forprofit.socialenterprise": "Social Enterprises",
    "forprofit.socialenterprise.bcorp": "B-Corporations",
    "religious": "Religious Organizations",
    "religious.church": "Religious Organizations",
}


def _codes(values: Any) -> List[str]:
    if isinstance(values, str):
        return [values] if values else []
    if not isinstance(values, (list, tuple, set, frozenset)):
        return []
    return [v for v in values if isinstance(v, str) and v]


def code_satisfies(record_code: str, filter_code: str) -> bool:
    """True when record_code equals filter_code or descends from it."""
    if not isinstance(record_code, str) or not isinstance(filter_code, str):
        return False
    if not record_code or not filter_code:
        return False
    return record_code == filter_code or record_code.startswith(filter_code + ".")


def matches_any(record_codes: Any, filter_codes: Any) -> bool:
    """OR across filter codes; an empty filter matches everything."""
    wanted = _codes(filter_codes)
    if not wanted:
        return True
    tagged = _codes(record_codes)
    return any(code_satisfies(code, f) for f in wanted for code in tagged)


def codes_overlap(a: str, b: str) -> bool:
    """Either code equals or descends from the other."""
    return code_satisfies(a, b) or code_satisfies(b, a)


def is_grant_eligible(grant: Any, organization_code: Optional[str]) -> bool:
    """A grant with no eligibility restrictions is open to every organization."""
    eligible = _codes(getattr(grant, "eligible_organization_types", None))
    if not eligible:
        return True
    if not organization_code:
        return False
    return any(codes_overlap(code, organization_code) for code in eligible)


def grants_for_organization_type(grants: Iterable[Any], organization_code: Optional[str]) -> List[Any]:
    return [grant for grant in grants if is_grant_eligible(grant, organization_code)]


def build_taxonomy_tree(taxonomies: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Nest flat taxonomy rows by ``parent_code``.

    Rows whose parent is missing from the input become roots. Input order is
    kept among siblings.
    """
    rows = [row for row in taxonomies if isinstance(row, Mapping) and row.get("code")]
    nodes: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        nodes[row["code"]] = {**row, "children": []}

    roots = []
    for row in rows:
        node = nodes[row["code"]]
        parent = row.get("parent_code")
        if parent and parent in nodes and parent != row["code"]:
            nodes[parent]["children"].append(node)
        else:
            roots.append(node)
    return roots


def taxonomy_label(code: Optional[str]) -> str:
    if not code:
        return ""
    if code in TAXONOMY_DISPLAY_NAMES:
        return TAXONOMY_DISPLAY_NAMES[code]
    return code.split(".")[-1].replace("_", " ").title()
