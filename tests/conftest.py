"""Shared pytest fixtures for mockwire tests."""

import pytest

from mockwire._internal.signatures import SignatureExtractor
from mockwire.engine import Engine


@pytest.fixture()
def engine() -> Engine:
    """Default engine with best-guess resolution."""
    return Engine()


@pytest.fixture()
def strict_engine() -> Engine:
    """Engine that refuses to guess."""
    return Engine(strict=True)


@pytest.fixture()
def signature_extractor() -> SignatureExtractor:
    """SignatureExtractor instance."""
    return SignatureExtractor()
