from django.test import SimpleTestCase

from restops.utils.logger import RestOpsLogger


class LoggerTestCase(SimpleTestCase):

    def test_bind_prefixes_context(self):
        logger = RestOpsLogger('restops.tests.logger')
        with self.assertLogs('restops.tests.logger', level='INFO') as captured:
            logger.bind(restaurant=1, branch=None).bind(order='ORD-1').info("Order placed")
        self.assertEqual(captured.records[0].getMessage(), "[restaurant=1 order=ORD-1] Order placed")

    def test_plain_message_has_no_prefix(self):
        logger = RestOpsLogger('restops.tests.logger.plain')
        with self.assertLogs('restops.tests.logger.plain', level='WARNING') as captured:
            logger.warning("Stock low")
        self.assertEqual(captured.records[0].getMessage(), "Stock low")
