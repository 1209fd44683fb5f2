"""
Tests for structured logging and PII masking.
"""
import json
import logging
import sys
from uuid import uuid4

from django.test import SimpleTestCase

from marketplace.infra.pii_masker import mask_phone, mask_pii_in_dict, mask_uuid
from marketplace.utils.logging import JsonFormatter


class JsonFormatterTest(SimpleTestCase):
    """Tests for JsonFormatter."""

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="marketplace.services.orders",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="checkout_committed",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_as_json_with_extra(self):
        order_id = uuid4()
        output = JsonFormatter().format(self.make_record(order_id=order_id, items_count=2))

        data = json.loads(output)
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["logger"], "marketplace.services.orders")
        self.assertEqual(data["message"], "checkout_committed")
        self.assertEqual(data["order_id"], str(order_id))
        self.assertEqual(data["items_count"], 2)
        self.assertNotIn("args", data)

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = self.make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))
        self.assertIn("ValueError: boom", data["exception"])


class PIIMaskerTest(SimpleTestCase):
    """Tests for PII masking."""

    def test_mask_phone(self):
        self.assertEqual(mask_phone("5595550134"), "55******34")
        self.assertEqual(mask_phone("123"), "***")

    def test_mask_uuid(self):
        value = "3f2b8c1e-0000-4000-8000-000000000001"
        self.assertEqual(mask_uuid(value), "3f2b8c1e-****-****-****-************")

    def test_mask_nested_dict(self):
        user_id = str(uuid4())
        masked = mask_pii_in_dict({
            "userId": user_id,
            "input": {
                "shippingAddress": "12 Orchard Lane",
                "shippingPhone": "5595550134",
                "shippingCity": "Fresno",
            },
            "items": [{"quantity": 2}],
        })

        self.assertEqual(masked["userId"], user_id[:8] + "-****-****-****-************")
        self.assertEqual(masked["input"]["shippingAddress"], "1* O****** L***")
        self.assertEqual(masked["input"]["shippingPhone"], "55******34")
        self.assertEqual(masked["input"]["shippingCity"], "Fresno")
        self.assertEqual(masked["items"], [{"quantity": 2}])
