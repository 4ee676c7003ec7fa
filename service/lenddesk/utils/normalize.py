"""
Normalization utilities.

Ensures consistent format for identifiers coming from the professional
network API, enrichment lookups and free-text profile fields.
"""

import re
from typing import Optional
from urllib.parse import urlparse

# Trailing legal suffix of an employer name ("Acme Lending, Inc." -> "Acme Lending,")
LEGAL_SUFFIX_RE = re.compile(r'\s+(inc|llc|ltd|corp|corporation|company|co)\.?$', re.IGNORECASE)


def normalize_linkedin_url(value: str) -> Optional[str]:
    """
    Normalize LinkedIn URL to consistent format.

    Input formats handled:
    - "https://www.linkedin.com/in/username"
    - "http://linkedin.com/in/username/"
    - "www.linkedin.com/in/username?trk=..."
    - "/in/username"
    - "username" (just the vanity name)

    Output format: "linkedin.com/in/username" (no protocol, no www)

    Returns None if the value doesn't look like a LinkedIn profile.
    """
    if not value or not isinstance(value, str):
        return None

    value = value.strip()

    # Search URLs are not profile URLs
    if "/search/" in value or "keywords=" in value:
        return None

    username = None

    if "linkedin.com" in value.lower() or value.startswith("http"):
        if not value.startswith("http"):
            value = "https://" + value

        parsed = urlparse(value)
        match = re.search(r'/in/([^/?#]+)', parsed.path)
        if match:
            username = match.group(1)
    elif value.startswith("/in/"):
        username = value[4:].split("/")[0].split("?")[0]
    elif "/" not in value and "@" not in value:
        username = value

    if not username:
        return None

    username = username.strip().lower()

    # LinkedIn vanity names are alphanumeric with hyphens
    if not re.match(r'^[a-z0-9-]+$', username):
        return None

    return f"linkedin.com/in/{username}"


def normalize_phone(value: str) -> str:
    """Strip everything but digits, keeping a leading '+'."""
    if not value:
        return ""
    value = value.strip()
    digits = re.sub(r'\D', '', value)
    if value.startswith('+') and digits:
        return f"+{digits}"
    return digits


def clean_company_name(company: str) -> str:
    """
    Reduce an employer name to a domain label.

    "Acme Lending LLC" -> "acmelending"
    "Blue Ridge Capital Corp." -> "blueridgecapital"
    """
    if not company:
        return ""
    name = LEGAL_SUFFIX_RE.sub('', company.strip().lower())
    return re.sub(r'[^a-z0-9]', '', name)
