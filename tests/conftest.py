import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_makewebbook_logger():
    logger = logging.getLogger("makewebbook")
    yield
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
