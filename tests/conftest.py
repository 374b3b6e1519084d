from unittest.mock import MagicMock

import pytest
import structlog

from tests.helpers import LOADER_MODULE, SOURCE_MODULE, TRANSFORMER_MODULE


@pytest.fixture(autouse=True)
def quiet_structlog():
    """Send structlog output nowhere so stdout only holds what the code prints."""
    structlog.configure(processors=[], logger_factory=structlog.ReturnLoggerFactory())
    yield
    structlog.reset_defaults()


@pytest.fixture
def logger():
    """Structlog logger that discards its output."""
    return structlog.wrap_logger(structlog.ReturnLogger(), processors=[])


@pytest.fixture
def mock_logger():
    """Logger recording every call."""
    logger = MagicMock()
    logger.bind.return_value = logger
    return logger


@pytest.fixture
def good_step_info():
    return {"module": "string", "config": {}}


@pytest.fixture
def good_config(good_step_info):
    """Structurally valid pipeline configuration; the modules do not exist."""
    return {
        "source": good_step_info,
        "transformers": [good_step_info],
        "loader": good_step_info,
    }


@pytest.fixture
def module_config():
    """Pipeline configuration pointing at the test step modules."""
    return {
        "source": {"module": SOURCE_MODULE, "config": {}},
        "transformers": [{"module": TRANSFORMER_MODULE, "config": {}}],
        "loader": {"module": LOADER_MODULE, "config": {}},
    }
