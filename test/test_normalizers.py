import unittest
from decimal import Decimal

from oneinch_mcp.normalizers import encode_query_params, encode_query_value, normalize_amount


class NormalizeAmountTests(unittest.TestCase):
    def test_small_amounts_are_scaled_to_base_units(self):
        self.assertEqual(normalize_amount("1"), "1000000")
        self.assertEqual(normalize_amount("2.5"), "2500000")
        self.assertEqual(normalize_amount("0.1"), "100000")
        self.assertEqual(normalize_amount("999999"), "999999000000")

    def test_amounts_at_or_above_threshold_pass_through(self):
        self.assertEqual(normalize_amount("1000000"), "1000000")
        self.assertEqual(normalize_amount("25000000"), "25000000")

    def test_non_numeric_amounts_pass_through(self):
        for raw in ("abc", "0xzz", "-0x10", "1_000", "NaN", "Infinity"):
            self.assertEqual(normalize_amount(raw), raw)

    def test_zero_and_exponent_forms(self):
        self.assertEqual(normalize_amount("0"), "0")
        self.assertEqual(normalize_amount("1e3"), "1000000000")

    def test_blank_and_prefixed_integers_count_as_numbers(self):
        # Blank reads as zero; 0x/0o/0b are integer literals, so they scale too.
        self.assertEqual(normalize_amount(""), "0")
        self.assertEqual(normalize_amount("  "), "0")
        self.assertEqual(normalize_amount("0x10"), "16000000")
        self.assertEqual(normalize_amount("0b11"), "3000000")
        self.assertEqual(normalize_amount(" 12 "), "12000000")


class EncodeQueryTests(unittest.TestCase):
    def test_booleans_are_lowercase(self):
        self.assertEqual(encode_query_value(True), "true")
        self.assertEqual(encode_query_value(False), "false")

    def test_integral_floats_drop_fraction(self):
        self.assertEqual(encode_query_value(1.0), "1")
        self.assertEqual(encode_query_value(1.5), "1.5")
        self.assertEqual(encode_query_value(Decimal("2.50")), "2.5")

    def test_params_keep_order_and_skip_unset(self):
        pairs = list(encode_query_params({"addresses": None, "timerange": "1day", "closed": True, "use_cache": False}))

        self.assertEqual(pairs, [("timerange", "1day"), ("closed", "true"), ("use_cache", "false")])


if __name__ == "__main__":
    unittest.main()
