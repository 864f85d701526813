"""Tests for release classification from registry metadata."""

import json

import requests

from tests.fakes import FakeRegistryClient

from update_advisor import registry
from update_advisor.cache import InMemoryMetadataCache
from update_advisor.interfaces import CacheKind
from update_advisor.models import NEUTRAL_SIGNAL, ReleaseType, SecuritySignal, Source, UpdateCandidate
from update_advisor.registry import (
    RegistryClient,
    SecurityClassifier,
    classify_release,
    release_notes,
)


def payload(description="", version="2.0.0", classifiers=None, vulnerabilities=None, summary=""):
    return {
        "info": {
            "version": version,
            "summary": summary,
            "description": description,
            "classifiers": classifiers or [],
        },
        "releases": {version: [{"upload_time": "2024-01-01T00:00:00"}]},
        "vulnerabilities": vulnerabilities or [],
    }


def test_keyword_precedence():
    assert classify_release(payload("Fixes CVE-2024-1234 and adds a new feature"), "2.0.0") == \
        SecuritySignal(True, ReleaseType.SECURITY)
    assert classify_release(payload("Bug fix for parsing; new feature too"), "2.0.0") == \
        SecuritySignal(False, ReleaseType.BUGFIX)
    assert classify_release(payload("Adds a new feature"), "2.0.0") == \
        SecuritySignal(False, ReleaseType.FEATURE)
    assert classify_release(payload("Routine release"), "2.0.0") == NEUTRAL_SIGNAL


def test_vulnerability_field_forces_security():
    data = payload("Adds a new feature", vulnerabilities=[{"id": "PYSEC-2024-1"}])
    assert classify_release(data, "2.0.0") == SecuritySignal(True, ReleaseType.SECURITY)


def test_classifiers_are_scanned_case_insensitively():
    data = payload("Routine release", classifiers=["Topic :: SECURITY :: Cryptography"])
    assert classify_release(data, "2.0.0").security


def test_description_for_other_version_is_ignored():
    data = payload("Security release", version="3.0.0")
    assert classify_release(data, "2.0.0") == NEUTRAL_SIGNAL


def test_release_notes_section_is_isolated():
    description = "\n".join([
        "Changelog",
        "2.0.0 (2024-01-01)",
        "- Added a shiny thing",
        "1.9.0 (2023-06-01)",
        "- Security hardening",
    ])
    notes = release_notes(description, "2.0.0")
    assert "shiny" in notes
    assert "Security" not in notes
    assert classify_release(payload(description), "2.0.0") == NEUTRAL_SIGNAL


def test_non_dict_payload_is_neutral():
    assert classify_release([], "1.0") == NEUTRAL_SIGNAL


def test_conda_candidates_are_always_neutral():
    client = FakeRegistryClient()
    classifier = SecurityClassifier(client)
    candidate = UpdateCandidate("numpy", Source.CONDA, "1.0", "2.0")
    assert classifier.classify(candidate) == NEUTRAL_SIGNAL
    assert client.calls == []


def test_registry_timeout_degrades_to_neutral(caplog):
    client = FakeRegistryClient(error=requests.Timeout("read timed out"))
    classifier = SecurityClassifier(client)
    for name in ("a", "b"):
        candidate = UpdateCandidate(name, Source.PIP, "1.0.0", "1.1.0")
        assert classifier.classify(candidate) == NEUTRAL_SIGNAL
    assert caplog.text.count("Package registry unavailable") == 1


def test_payload_is_cached_after_fetch():
    client = FakeRegistryClient({"requests": payload("CVE-2024-0001 fixed")})
    cache = InMemoryMetadataCache()
    classifier = SecurityClassifier(client, cache=cache)
    candidate = UpdateCandidate("requests", Source.PIP, "1.9.0", "2.0.0")

    assert classifier.classify(candidate).security
    assert classifier.classify(candidate).security
    assert client.calls == ["requests"]
    assert json.loads(cache.get("requests", CacheKind.REGISTRY))["info"]["version"] == "2.0.0"


def test_registry_client_uses_timeouts():
    class Response:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def raise_for_status(self):
            pass

        def json(self):
            return {"info": {}}

    class Session:
        def __init__(self):
            self.calls = []

        def get(self, url, timeout=None):
            self.calls.append((url, timeout))
            return Response()

    session = Session()
    client = RegistryClient("https://example.test/pypi/", session=session)
    assert client.fetch("requests") == {"info": {}}
    assert session.calls == [("https://example.test/pypi/requests/json", (3.0, 2.0))]


def test_malformed_payload_shapes_are_tolerated():
    assert classify_release({"info": "oops", "releases": ["oops"]}, "2.0.0") == NEUTRAL_SIGNAL
    odd_releases = {"info": {"version": "2.0.0", "classifiers": "x"}, "releases": {"2.0.0": "x"}}
    assert classify_release(odd_releases, "2.0.0") == NEUTRAL_SIGNAL


def test_classifier_degrades_to_neutral_on_unexpected_payload(monkeypatch, caplog):
    def broken(payload, version):
        raise AttributeError("'list' object has no attribute 'get'")

    monkeypatch.setattr(registry, "classify_release", broken)
    classifier = SecurityClassifier(FakeRegistryClient())
    candidate = UpdateCandidate("requests", Source.PIP, "1.0.0", "2.0.0")

    assert classifier.classify(candidate) == NEUTRAL_SIGNAL
    assert "Could not classify requests" in caplog.text


def test_registry_timeouts_stay_within_five_seconds():
    client = RegistryClient(session=object())
    assert sum(client.timeout) <= 5.0
