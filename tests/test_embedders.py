"""Tests for embedder construction and vector normalization."""

import numpy as np
import pytest

from notegraph.config import Settings
from notegraph.embedders.base import normalize
from notegraph.embedders.factory import create_embedder
from notegraph.exceptions import EmbedderUnavailableError


@pytest.mark.parametrize("embedder", ["voyage", "openai"])
def test_missing_api_key_fails_fast(embedder):
    settings = Settings(embedder=embedder, voyage_ai_api_key=None, openai_api_key=None)

    with pytest.raises(EmbedderUnavailableError) as exc_info:
        create_embedder(settings)
    assert "API_KEY" in str(exc_info.value)


def test_normalize():
    np.testing.assert_allclose(normalize(np.array([3.0, 4.0])), [0.6, 0.8])
    np.testing.assert_array_equal(normalize(np.zeros(3)), np.zeros(3))
