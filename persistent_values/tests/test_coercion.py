"""Tests for datatype coercion."""

from __future__ import annotations

import unittest

from persistent_values.coercion import CoercionError, DataType, coerce, matches_datatype, values_equal


class CoercionTests(unittest.TestCase):
    def test_bool(self) -> None:
        self.assertIs(coerce(True, DataType.BOOL), True)
        self.assertIs(coerce(" TRUE ", DataType.BOOL), True)
        self.assertIs(coerce("False", DataType.BOOL), False)
        for raw in (1, 0, "yes", None, 2305):
            with self.subTest(raw=raw), self.assertRaises(CoercionError):
                coerce(raw, DataType.BOOL)

    def test_num(self) -> None:
        self.assertEqual(coerce(23, DataType.NUM), 23)
        self.assertEqual(coerce(2.5, DataType.NUM), 2.5)
        result = coerce("42", DataType.NUM)
        self.assertEqual(result, 42)
        self.assertIsInstance(result, int)
        self.assertEqual(coerce("-1.5", DataType.NUM), -1.5)
        self.assertEqual(coerce("1e3", DataType.NUM), 1000.0)

    def test_num_rejects_non_ascii_and_non_finite(self) -> None:
        for raw in ("1_000", "\u0661\u0662", "\uff11", "1e999", "-inf", float("nan"), float("inf")):
            with self.subTest(raw=raw), self.assertRaises(CoercionError):
                coerce(raw, DataType.NUM)
        self.assertEqual(coerce("+.5", DataType.NUM), 0.5)
        self.assertEqual(coerce("3.", DataType.NUM), 3.0)

    def test_num_rejects_other_values(self) -> None:
        for raw in (True, "abc", "nan", "inf", None, [1]):
            with self.subTest(raw=raw), self.assertRaises(CoercionError):
                coerce(raw, DataType.NUM)

    def test_str(self) -> None:
        self.assertEqual(coerce("text", DataType.STR), "text")
        self.assertEqual(coerce(2305, DataType.STR), "2305")
        self.assertEqual(coerce(False, DataType.STR), "false")
        self.assertEqual(coerce(None, DataType.STR), "null")
        self.assertEqual(coerce({"a": 1}, DataType.STR), '{"a": 1}')

    def test_accepts_raw_datatype_names(self) -> None:
        self.assertEqual(coerce("7", "num"), 7)

    def test_matches_datatype(self) -> None:
        self.assertTrue(matches_datatype(False, DataType.BOOL))
        self.assertFalse(matches_datatype(0, DataType.BOOL))
        self.assertTrue(matches_datatype(1.5, DataType.NUM))
        self.assertFalse(matches_datatype(True, DataType.NUM))
        self.assertFalse(matches_datatype("1", DataType.NUM))
        self.assertFalse(matches_datatype(float("nan"), DataType.NUM))
        self.assertTrue(matches_datatype("", DataType.STR))

    def test_values_equal(self) -> None:
        self.assertTrue(values_equal(23, 23.0))
        self.assertTrue(values_equal(True, True))
        self.assertFalse(values_equal(True, 1))
        self.assertFalse(values_equal(0, False))
        self.assertFalse(values_equal("1", 1))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
