"""Per-site rules: which URLs are genuine job postings, and how to query for them."""
from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit


@dataclass(frozen=True)
class SiteRule:
    host: str
    include_any: tuple[str, ...]
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class Region:
    code: str
    hint: str
    loose_hint: str


UK = Region(
    code="gb",
    hint='(UK OR "United Kingdom" OR "Remote UK" OR "Remote (UK)")',
    loose_hint='(UK OR "United Kingdom" OR "Remote UK")',
)

UK_SITES: tuple[SiteRule, ...] = (
    SiteRule(
        host="uk.indeed.com",
        include_any=("viewjob", "clk", "rc/clk", "pagead/clk", "job", "cmp"),
        exclude=("career-advice", "salaries", "companies", "interview-questions", "insights"),
    ),
    SiteRule(
        host="www.linkedin.com",
        include_any=("jobs/view", "jobs/collections", "jobs/search"),
        exclude=("learning", "feed", "posts", "pulse"),
    ),
    SiteRule(
        host="www.reed.co.uk",
        include_any=("jobs", "job"),
        exclude=("career-advice", "salary", "recruiter", "courses", "blog"),
    ),
    SiteRule(
        host="www.glassdoor.co.uk",
        include_any=("job-listing", "Job"),
        exclude=("Reviews", "Salaries", "Interview", "Overview", "Benefits"),
    ),
    SiteRule(
        host="www.cv-library.co.uk",
        include_any=("job", "jobs"),
        exclude=("career-advice", "salary-guide", "blog"),
    ),
    SiteRule(
        host="uk.welcometothejungle.com",
        include_any=("jobs", "job"),
        exclude=("companies", "salaries", "magazine", "articles"),
    ),
)

# Topics that pull in advice pages rather than listings
EXTRA_EXCLUDES: tuple[str, ...] = (
    "-salary", "-salaries", "-wage", "-review", "-reviews", "-interview",
    "-interviews", "-blog", "-article", "-articles", "-guide", "-guides",
)

_SPACES_RE = re.compile(r"\s{2,}")


def normalize_query(query: str) -> str:
    text = re.sub(r"[,|]+", " ", (query or "").strip())
    return _SPACES_RE.sub(" ", text).strip()


def build_site_query(rule: SiteRule, role: str, region: Region) -> str:
    """Strict query: host scope, listing-path tokens, advice-page exclusions."""
    inurl = ""
    if rule.include_any:
        inurl = "(" + " OR ".join(f"inurl:{tok}" for tok in rule.include_any) + ")"
    exclude = " ".join(f"-inurl:{tok}" for tok in rule.exclude)
    role_part = f'"{role}"' if len(role) <= 80 else role
    # No city names here: they over-filter; location is display-only
    query = (
        f"site:{rule.host} {inurl} ({role_part}) {region.hint} job "
        f"{exclude} {' '.join(EXTRA_EXCLUDES)}"
    )
    return _SPACES_RE.sub(" ", query).strip()


def build_fallback_query(rule: SiteRule, role: str, region: Region) -> str:
    return f'site:{rule.host} "{role}" {region.loose_hint} job'


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def host_matches(host: str, rule_host: str) -> bool:
    """Accept the rule host, its www-less form, and subdomains either way."""
    host = host.lower()
    rule_host = rule_host.lower()
    bare, rule_bare = _strip_www(host), _strip_www(rule_host)
    return (
        host == rule_host
        or bare == rule_bare
        or bare.endswith("." + rule_bare)
        or rule_bare.endswith("." + bare)
    )


def looks_like_job_posting(url: str, rule: SiteRule) -> bool:
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
    except ValueError:
        return False
    if not host or not host_matches(host, rule.host):
        return False

    path = f"{parts.path} {parts.query}".lower()
    if any(bad.lower() in path for bad in rule.exclude):
        return False
    return any(tok.lower() in path for tok in rule.include_any)


def guess_company(title: str) -> str:
    """Search titles usually end in "- Company" or "at Company"."""
    text = (title or "").strip()
    for sep in (" - ", " at "):
        parts = text.split(sep)
        if len(parts) >= 2:
            return parts[-1].strip() or "Unknown"
    return "Unknown"
