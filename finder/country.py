"""
Country resolution for an agency site.

Looks at the legal/contact page first (that is where the postal
address lives), then the seed page text, then the domain's TLD.
"""

import re
from typing import Optional
from urllib.parse import urlparse

from models import CandidatePage

CONTACT_PAGE = [
    re.compile(p, re.I) for p in (
        r"/impressum/?$", r"/imprint/?$", r"/legal/?$", r"/legal-notice/?$",
        r"/contact/?$", r"/about/?$", r"/kontakt/?$",
    )
]

COUNTRY_NAMES = [
    (re.compile(r"\b(deutschland|germany)\b", re.I), "Germany"),
    (re.compile(r"\b(österreich|oesterreich|austria)\b", re.I), "Austria"),
    (re.compile(r"\b(schweiz|switzerland|suisse|svizzera)\b", re.I), "Switzerland"),
    (re.compile(r"\b(united states|usa|u\.s\.a\.)\b", re.I), "United States"),
    (re.compile(r"\b(united kingdom|great britain|england|scotland|wales)\b", re.I), "United Kingdom"),
    (re.compile(r"\b(canada|kanada)\b", re.I), "Canada"),
    (re.compile(r"\b(australia|australien)\b", re.I), "Australia"),
    (re.compile(r"\b(new zealand|neuseeland)\b", re.I), "New Zealand"),
    (re.compile(r"\b(ireland|irland)\b", re.I), "Ireland"),
    (re.compile(r"\b(france|frankreich)\b", re.I), "France"),
    (re.compile(r"\b(spain|spanien|españa)\b", re.I), "Spain"),
    (re.compile(r"\b(italy|italien|italia)\b", re.I), "Italy"),
    (re.compile(r"\b(netherlands|niederlande|holland)\b", re.I), "Netherlands"),
    (re.compile(r"\b(belgium|belgien|belgique)\b", re.I), "Belgium"),
]

AUSTRIAN_CITIES = ("wien", "vienna", "salzburg", "innsbruck", "graz", "linz")
SWISS_CITIES = ("zürich", "zurich", "bern", "geneva", "genf", "basel", "lausanne")
US_STATE_CODES = (
    "AL AK AZ AR CA CO CT DE FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS MO "
    "MT NE NV NH NJ NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY DC"
).split()

_FOUR_DIGIT_CITY = re.compile(r"\b[1-9]\d{3}\s+([A-ZÄÖÜ][a-zäöüß]+)")
_GERMAN_ZIP = re.compile(r"\b[0-9]{5}\s+[A-ZÄÖÜ][a-zäöüß]+")
_US_ZIP = re.compile(r"\b(" + "|".join(US_STATE_CODES) + r")\s+\d{5}(-\d{4})?\b")
_UK_POSTCODE = re.compile(r"\b[A-Z]{1,2}\d{1,2}[A-Z]?\s?\d[A-Z]{2}\b")

TLD_COUNTRIES = {
    ".co.uk": "United Kingdom",
    ".uk": "United Kingdom",
    ".de": "Germany",
    ".at": "Austria",
    ".ch": "Switzerland",
    ".ca": "Canada",
    ".com.au": "Australia",
    ".au": "Australia",
    ".nz": "New Zealand",
    ".ie": "Ireland",
    ".fr": "France",
    ".es": "Spain",
    ".it": "Italy",
    ".nl": "Netherlands",
    ".be": "Belgium",
    ".us": "United States",
}


def find_contact_page(links: list[str]) -> Optional[str]:
    """First link that looks like an impressum/legal/contact page."""
    for pattern in CONTACT_PAGE:
        for link in links:
            if pattern.search(urlparse(link).path):
                return link
    return None


def country_from_text(text: str) -> Optional[str]:
    if not text:
        return None

    for pattern, country in COUNTRY_NAMES:
        if pattern.search(text):
            return country

    for match in _FOUR_DIGIT_CITY.finditer(text):
        city = match.group(1).lower()
        if any(c in city for c in AUSTRIAN_CITIES):
            return "Austria"
        if any(c in city for c in SWISS_CITIES):
            return "Switzerland"

    if _US_ZIP.search(text):
        return "United States"
    if _GERMAN_ZIP.search(text):
        return "Germany"
    if _UK_POSTCODE.search(text):
        return "United Kingdom"
    return None


def country_from_domain(url: str) -> Optional[str]:
    host = (urlparse(url).hostname or "").lower()
    # Longest suffix first so .co.uk wins over .uk
    for tld in sorted(TLD_COUNTRIES, key=len, reverse=True):
        if host.endswith(tld):
            return TLD_COUNTRIES[tld]
    return None


def resolve_country(seed: CandidatePage, fetcher) -> Optional[str]:
    """Best-effort country for the site behind `seed`. Never raises."""
    contact_url = find_contact_page(seed.links)
    if contact_url:
        try:
            page = fetcher.fetch(contact_url)
        except Exception as e:
            print(f"[CRAWL] Contact page fetch failed: {e}")
            page = None
        if page is not None and page.success:
            country = country_from_text(page.text)
            if country:
                print(f"[CRAWL] Country from {contact_url}: {country}")
                return country

    country = country_from_text(seed.text) or country_from_domain(seed.url)
    if country:
        print(f"[CRAWL] Country: {country}")
    return country
