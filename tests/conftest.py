import logging

import numpy as np
import pytest

from lensing_shapelets.core.config.settings import reset_config
from lensing_shapelets.shapelets.conversion import reset_conversion_cache

# Disable all logging for tests to keep output clean
logging.disable(logging.CRITICAL)


@pytest.fixture(autouse=True)
def clean_global_state():
    """Each test starts from the default configuration and an empty shared cache."""
    reset_config()
    reset_conversion_cache()
    yield
    reset_config()
    reset_conversion_cache()


@pytest.fixture
def rng():
    return np.random.default_rng(12345)
