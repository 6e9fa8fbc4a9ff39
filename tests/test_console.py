#
#
#

import sys
import os
import logging
import unittest

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from rich.logging import RichHandler

from librc.console import getLogger, enableConsoleLogging

class TestConsole(unittest.TestCase):

    def test_logger_names(self):
        self.assertEqual(getLogger().name, "librc")
        self.assertEqual(getLogger("reservoir").name, "librc.reservoir")

    def test_enable_console_logging(self):
        logger = getLogger()
        handler = enableConsoleLogging(logging.DEBUG)
        try:
            self.assertIsInstance(handler, RichHandler)
            self.assertIs(enableConsoleLogging(logging.WARNING), handler)
            self.assertEqual(handler.level, logging.WARNING)
            self.assertEqual(sum(isinstance(h, RichHandler) for h in logger.handlers), 1)
        finally:
            logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)

if __name__ == '__main__':
    unittest.main()
