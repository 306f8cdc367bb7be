"""Unit tests for country resolution."""

import pytest
from models import CandidatePage
from finder.country import (
    country_from_domain,
    country_from_text,
    find_contact_page,
    resolve_country,
)


class TestCountryFromText:

    @pytest.mark.parametrize("text,expected", [
        ("Literaturagentur GmbH, Berlin, Deutschland", "Germany"),
        ("Acme Literary, New York, USA", "United States"),
        ("Musterstraße 1, 1010 Wien", "Austria"),
        ("Bahnhofstrasse 5, 8001 Zürich", "Switzerland"),
        ("350 Fifth Avenue, New York, NY 10118", "United States"),
        ("Hauptstraße 12, 10115 Berlin", "Germany"),
        ("12 Charing Cross Road, London WC2H 0EP", "United Kingdom"),
    ])
    def test_detects(self, text, expected):
        assert country_from_text(text) == expected

    def test_nothing(self):
        assert country_from_text("We love books.") is None
        assert country_from_text("") is None


class TestCountryFromDomain:

    @pytest.mark.parametrize("url,expected", [
        ("https://agentur.de/team", "Germany"),
        ("https://www.acme.co.uk", "United Kingdom"),
        ("https://lit.com.au", "Australia"),
        ("https://acmelit.com", None),
    ])
    def test_tld(self, url, expected):
        assert country_from_domain(url) == expected


class TestResolveCountry:

    def test_contact_page(self):
        assert find_contact_page([
            "https://acmelit.com/team",
            "https://acmelit.com/impressum/",
        ]) == "https://acmelit.com/impressum/"

    def test_prefers_contact_page(self, make_fetcher):
        contact = CandidatePage(url="https://acmelit.de/kontakt", text="Postfach, 1010 Wien")
        fetcher = make_fetcher({contact.url: contact})
        seed = CandidatePage(url="https://acmelit.de", text="Welcome", links=[contact.url])
        assert resolve_country(seed, fetcher) == "Austria"

    def test_falls_back_to_domain(self, make_fetcher):
        seed = CandidatePage(url="https://acmelit.de", text="Welcome",
                             links=["https://acmelit.de/contact"])
        assert resolve_country(seed, make_fetcher()) == "Germany"

    def test_unknown(self, make_fetcher):
        seed = CandidatePage(url="https://acmelit.com", text="Welcome")
        assert resolve_country(seed, make_fetcher()) is None
