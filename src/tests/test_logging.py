import logging
from unittest.mock import MagicMock

import pytest

from backoffice.core.logging_config import NamespaceFilter, app_logger, console_handler


def _record(name: str, level: int = logging.INFO, msg: str = "message") -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


@pytest.fixture
def capture_handler():
    """
    A mock handler attached to a throwaway logger tree.

    Records that pass the handler's filters are collected in
    `handler.accepted_records`; the tree is detached again after the test.
    """
    handler = MagicMock()
    handler.level = logging.NOTSET
    handler.filters = []
    handler.accepted_records = []

    def handle(record):
        if all(f.filter(record) for f in handler.filters):
            handler.accepted_records.append(record)
            return True
        return False

    handler.addFilter = MagicMock(side_effect=handler.filters.append)
    handler.handle = MagicMock(side_effect=handle)

    root = logging.getLogger("logtest")
    root.handlers = [handler]
    root.propagate = False
    root.setLevel(logging.INFO)

    yield handler

    for name in ("logtest", "logtest.features.orders", "logtest.features.inventory"):
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.filters = []
        logger.setLevel(logging.NOTSET)


def _messages(handler) -> list[str]:
    return [f"{r.name}:{r.levelname}:{r.getMessage()}" for r in handler.accepted_records]


def test_application_logger_is_configured():
    assert app_logger.name == "backoffice"
    assert app_logger.level == logging.INFO
    assert console_handler in app_logger.handlers
    assert "%(name)s:%(lineno)d" in console_handler.formatter._fmt


def test_order_workflow_logs_at_debug():
    assert logging.getLogger("backoffice.features.orders.service").getEffectiveLevel() == logging.DEBUG
    assert logging.getLogger("backoffice.features.customers.service").getEffectiveLevel() == logging.INFO
    assert logging.getLogger("backoffice.features.changes.feed").getEffectiveLevel() == logging.INFO


def test_children_inherit_parent_level(capture_handler):
    orders_logger = logging.getLogger("logtest.features.orders")
    orders_logger.debug("Stock adjusted")
    orders_logger.info("Order placed")
    logging.getLogger("logtest.features.inventory").warning("Product deleted")

    messages = _messages(capture_handler)
    assert "logtest.features.orders:DEBUG:Stock adjusted" not in messages
    assert "logtest.features.orders:INFO:Order placed" in messages
    assert "logtest.features.inventory:WARNING:Product deleted" in messages


def test_namespace_level_overrides_parent(capture_handler):
    logging.getLogger("logtest.features.orders").setLevel(logging.DEBUG)

    logging.getLogger("logtest.features.orders").debug("Ledger entry created")
    logging.getLogger("logtest.features.inventory").debug("Stock listed")

    messages = _messages(capture_handler)
    assert "logtest.features.orders:DEBUG:Ledger entry created" in messages
    assert "logtest.features.inventory:DEBUG:Stock listed" not in messages


def test_namespace_filter_allows_listed_namespaces():
    ns_filter = NamespaceFilter(allowed_namespaces=["backoffice.features.orders", "backoffice.main"])
    assert ns_filter.filter(_record("backoffice.features.orders.service"))
    assert ns_filter.filter(_record("backoffice.main"))
    assert not ns_filter.filter(_record("backoffice.features.finance.service"))


def test_namespace_filter_allows_everything_when_empty():
    for allowed in (None, []):
        ns_filter = NamespaceFilter(allowed_namespaces=allowed)
        assert ns_filter.filter(_record("backoffice.features.inventory"))
        assert ns_filter.filter(_record("uvicorn.error"))


def test_namespace_filter_on_handler(capture_handler):
    capture_handler.addFilter(NamespaceFilter(["logtest.features.orders"]))

    logging.getLogger("logtest.features.orders").info("Order message")
    logging.getLogger("logtest.features.inventory").info("Inventory message")

    assert _messages(capture_handler) == ["logtest.features.orders:INFO:Order message"]
