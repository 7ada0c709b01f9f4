import logging

import pytest

from notebooklm_rpc.config import DEBUG_HANDLER_NAME, ClientConfig, enable_debug_logging


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig.from_env({})
        assert config.build_version == ""
        assert config.session_id == ""
        assert not config.debug
        assert config.timeout == 30.0
        assert config.query_timeout == 120.0
        assert not config.has_session_override

    def test_from_env(self):
        config = ClientConfig.from_env({
            "NOTEBOOKLM_BL": "boq_labs-tailwind-frontend_x",
            "NOTEBOOKLM_SESSION_ID": "-1",
            "NOTEBOOKLM_DEBUG": "True",
            "NOTEBOOKLM_TIMEOUT": "5",
            "NOTEBOOKLM_QUERY_TIMEOUT": "180",
        })
        assert config.has_session_override
        assert config.debug
        assert config.timeout == 5.0
        assert config.query_timeout == 180.0

    def test_override_needs_both_values(self):
        assert not ClientConfig(build_version="bl").has_session_override
        assert not ClientConfig(session_id="sid").has_session_override


@pytest.fixture
def package_logger():
    logger = logging.getLogger("notebooklm_rpc")
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for name in ("notebooklm_rpc", "notebooklm_rpc.session", "notebooklm_rpc.transport", "notebooklm_rpc.dispatcher"):
        logging.getLogger(name).setLevel(logging.WARNING)


class TestEnableDebugLogging:
    def test_opens_child_loggers(self, package_logger):
        enable_debug_logging()
        assert logging.getLogger("notebooklm_rpc.transport").isEnabledFor(logging.DEBUG)
        assert logging.getLogger("notebooklm_rpc.session").isEnabledFor(logging.DEBUG)

    def test_repeated_calls_install_one_handler(self, package_logger):
        enable_debug_logging()
        enable_debug_logging()
        names = [h.get_name() for h in package_logger.handlers]
        assert names.count(DEBUG_HANDLER_NAME) == 1
