import logging

import pytest

from contract_graph.logging_utils import PACKAGE_LOGGER


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo ``setup_logging`` so later tests can capture records with caplog."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
