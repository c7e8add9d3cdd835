"""Pytest configuration and shared fixtures for ElementQuote tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Ensure local imports work (models/, services/, config/, utils/)
# ============================================================================
#
# The codebase uses absolute imports like `from models...`, so `functions/`
# must be importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Firebase Mocks
# ============================================================================

@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client."""
    client = MagicMock()

    collection_mock = MagicMock()
    document_mock = MagicMock()

    # Set up chain: client.collection().document()
    client.collection.return_value = collection_mock
    collection_mock.document.return_value = document_mock
    document_mock.id = "q-123"

    document_mock.get = AsyncMock(return_value=MagicMock(
        exists=True,
        id="q-123",
        to_dict=lambda: {"status": "draft", "buildingType": "omakotitalo"}
    ))
    document_mock.set = AsyncMock()
    document_mock.update = AsyncMock()
    document_mock.delete = AsyncMock()

    # Subcollection chain: document().collection().document()
    subcollection_mock = MagicMock()
    document_mock.collection.return_value = subcollection_mock
    subcollection_mock.document.return_value = document_mock
    subcollection_mock.stream.return_value = []

    return client


@pytest.fixture
def mock_firestore_service(mock_firestore_client):
    """FirestoreService with mocked client."""
    from services.firestore_service import FirestoreService

    return FirestoreService(db=mock_firestore_client)


def make_doc(doc_id, data, exists=True):
    """Firestore document snapshot stand-in."""
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = data
    return doc


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content="Mock response content",
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """LLMService whose client is a mock."""
    from services.llm_service import LLMService

    with patch("services.llm_service.ChatOpenAI", return_value=mock_chat_openai):
        service = LLMService(api_key="test-api-key")
        service._client = mock_chat_openai
        return service


# ============================================================================
# Domain Fixtures
# ============================================================================

@pytest.fixture
def default_settings():
    """Default pricing settings (commission 4 %, standard VAT)."""
    from models.pricing import PricingSettings

    return PricingSettings(commission_percentage=4.0)


@pytest.fixture
def sample_quotation():
    """Draft quotation with elements, trusses, windows and documents."""
    from models.quotation import Quotation
    from tests.fixtures.mock_quotation_data import SAMPLE_QUOTATION

    return Quotation.model_validate(SAMPLE_QUOTATION)


@pytest.fixture
def sample_cost_entries():
    from models.cost_entry import CostEntry
    from tests.fixtures.mock_quotation_data import SAMPLE_COST_ENTRIES

    return [CostEntry.model_validate(entry) for entry in SAMPLE_COST_ENTRIES]
