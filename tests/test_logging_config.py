import logging

from budget_tracker.logging_config import configure_logging, reset_logging


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(self.format(record))


def test_configure_logging_installs_one_handler():
    handler = ListHandler()
    try:
        root = configure_logging('debug', handler=handler)
        configure_logging('info', handler=ListHandler())

        assert root.handlers == [handler]
        assert root.level == logging.INFO

        logging.getLogger('budget_tracker.partitions').info("saved %s", '2025-07')
        assert handler.messages[0].endswith('INFO [budget_tracker.partitions] saved 2025-07')
    finally:
        reset_logging()

    assert logging.getLogger('budget_tracker').handlers == []
