import logging

import config


def test_setup_logging_installs_one_handler():
    config.setup_logging()
    before = len(logging.getLogger().handlers)
    config.setup_logging()
    config.setup_logging()
    assert len(logging.getLogger().handlers) == before
