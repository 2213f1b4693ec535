import logging

from storefront_client.logging_config import get_logger, setup_logging


def test_http_stack_is_quieted(tmp_path):
    setup_logging(log_file=str(tmp_path / "storefront_client.log"))
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
    assert get_logger("storefront_client.cart_store") is logging.getLogger("storefront_client.cart_store")
