"""Shared fixtures for the test suite."""

import pytest

from fakes import DEFAULT_LATEST, FakeRegistry

from depresolver.analysis.deprecation import load_default_knowledge
from depresolver.common.cache import PackageCache
from depresolver.research import PackageResearchService


@pytest.fixture
def knowledge():
    return load_default_knowledge()


@pytest.fixture
def registry():
    return FakeRegistry(DEFAULT_LATEST)


@pytest.fixture
def cache():
    return PackageCache(default_ttl=3600, max_entries=100)


@pytest.fixture
def research_service(registry, cache, knowledge):
    return PackageResearchService(registry, cache, knowledge)
