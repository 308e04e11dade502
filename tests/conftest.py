"""Pytest configuration and shared fixtures."""

import pytest
from rest_framework.test import APIClient

from events.services.bulk_import import BulkImportService
from events.services.check_in import CheckInService
from events.services.registration_ledger import RegistrationLedger
from events.stores.django_store import DjangoEntityStore
from events.stores.memory_store import InMemoryEntityStore
from tests.factories import FIXED_NOW


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def django_store(db) -> DjangoEntityStore:
    return DjangoEntityStore()


@pytest.fixture
def ledger(store: InMemoryEntityStore) -> RegistrationLedger:
    return RegistrationLedger(store)


@pytest.fixture
def importer(store: InMemoryEntityStore) -> BulkImportService:
    return BulkImportService(store)


@pytest.fixture
def check_in_service(store: InMemoryEntityStore) -> CheckInService:
    return CheckInService(store, clock=lambda: FIXED_NOW)
