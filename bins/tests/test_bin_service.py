from django.test import TestCase

from bins.models import Bin
from bins.services.bin_service import get_bin, record_fill_level, set_bin_status
from dispatch_core.exceptions import NotFoundError, ValidationFailure


class BinServiceTest(TestCase):

    def setUp(self):
        self.bin = Bin.objects.create(
            bin_code="BIN100",
            location="Lumley Beach Road",
            latitude=8.470000,
            longitude=-13.270000
        )

    def test_get_bin_unknown_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            get_bin(999999)

    def test_record_fill_level_updates_level_and_status(self):
        updated = record_fill_level("BIN100", 55)

        self.assertEqual(updated.status, Bin.STATUS_MEDIUM)
        self.bin.refresh_from_db()
        self.assertEqual(self.bin.fill_level, 55.0)
        self.assertEqual(self.bin.status, Bin.STATUS_MEDIUM)

    def test_record_fill_level_unknown_code(self):
        with self.assertRaises(NotFoundError):
            record_fill_level("NOPE", 10)

    def test_record_fill_level_out_of_range_leaves_bin_untouched(self):
        with self.assertRaises(ValidationFailure):
            record_fill_level("BIN100", 150)

        self.bin.refresh_from_db()
        self.assertEqual(self.bin.fill_level, 0.0)

    def test_set_bin_status_manual_and_back(self):
        record_fill_level("BIN100", 90)
        self.bin.refresh_from_db()

        set_bin_status(self.bin, Bin.STATUS_OUT_OF_SERVICE)
        self.assertEqual(self.bin.status, Bin.STATUS_OUT_OF_SERVICE)

        # Leaving a manual status re-derives it from the level
        set_bin_status(self.bin, Bin.STATUS_EMPTY)
        self.assertEqual(self.bin.status, Bin.STATUS_FULL)

    def test_set_bin_status_rejects_unknown(self):
        with self.assertRaises(ValidationFailure):
            set_bin_status(self.bin, 'OVERFLOWING')
