"""
Contact guessing heuristics.

Best-effort email and phone extraction from a LinkedIn profile. Nothing here
talks to the network: a guessed email is never verified for deliverability,
and every score is a heuristic, not a probability.
"""

import re

from lenddesk.services.linkedin_client import Profile
from lenddesk.utils import clean_company_name, normalize_phone

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# North American numbers: optional +1, optional parens around area code
PHONE_RE = re.compile(r'(?:\+?1[-.\s]?)?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})')

COMPANY_TLDS = ["com", "io", "co", "net", "org"]
FREEMAIL_DOMAINS = ["gmail.com", "yahoo.com", "outlook.com"]

EMAIL_BASE_SCORE = 0.5
EMAIL_NAME_BONUS = 0.2
EMAIL_MAX_SCORE = 0.95
PHONE_CONFIDENCE = 0.8


def _name_part(value: str) -> str:
    return re.sub(r'\s+', '', (value or '').lower())


def local_part_patterns(first: str, last: str) -> list[str]:
    """Name-based local parts, most common corporate conventions first."""
    fi = first[:1]
    li = last[:1]
    return [
        f"{first}.{last}",
        f"{first}{last}",
        f"{fi}{last}",
        f"{first}",
        f"{last}",
        f"{first}_{last}",
        f"{last}.{first}",
        f"{first}{li}",
        f"{last}{fi}",
    ]


def company_domains(company_name: str) -> list[str]:
    """Candidate mail domains for an employer; free-mail providers without one."""
    label = clean_company_name(company_name)
    if not label:
        return list(FREEMAIL_DOMAINS)
    return [f"{label}.{tld}" for tld in COMPANY_TLDS]


def score_email(email: str, first: str, last: str) -> float:
    if not EMAIL_RE.match(email):
        return 0.0

    score = EMAIL_BASE_SCORE
    local = email.split('@', 1)[0]
    if first and last and first in local and last in local:
        score += EMAIL_NAME_BONUS

    return min(score, EMAIL_MAX_SCORE)


def guess_email(profile: Profile) -> tuple[str, float]:
    """
    Guess a work email for the profile.

    Cross product of name patterns and employer domains, scored by
    score_email. Highest score wins, first generated on ties.
    Local parts made only of separators are skipped. Returns ("", 0.0)
    when no candidate is syntactically valid.
    """
    first = _name_part(profile.first_name)
    last = _name_part(profile.last_name)

    best_email = ""
    best_score = 0.0
    for pattern in local_part_patterns(first, last):
        if not re.search(r"[^\W_]", pattern):
            continue
        for domain in company_domains(profile.company_name):
            email = f"{pattern}@{domain}"
            score = score_email(email, first, last)
            if score > best_score:
                best_email, best_score = email, score

    return best_email, best_score


def extract_phones(profile: Profile) -> tuple[list[str], float]:
    """Scan headline and summary for phone numbers, then add the declared ones."""
    text = " ".join([profile.summary or "", profile.headline or ""])

    phones: list[str] = []
    seen: set[str] = set()

    def add(phone: str):
        # "+15551234567" and "5551234567" are the same line
        key = phone.lstrip('+')[-10:]
        if key not in seen:
            seen.add(key)
            phones.append(phone)

    for match in PHONE_RE.finditer(text):
        phone = normalize_phone(match.group(0))
        if len(phone.lstrip('+')) >= 10:
            add(phone)

    for declared in profile.phone_numbers:
        phone = normalize_phone(declared)
        if phone:
            add(phone)

    return phones, PHONE_CONFIDENCE if phones else 0.0
