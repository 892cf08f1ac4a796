import logging

import pytest

from payments_engine.config import reload_config
from payments_engine.logging_config import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_payments_logging():
    """Undo setup_logging so every test starts from propagating loggers"""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def fresh_config(monkeypatch):
    """Reload the global config after the test's environment changes are undone"""
    yield monkeypatch
    monkeypatch.undo()
    reload_config()
