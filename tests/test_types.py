"""
Typed SQL templates for asyncpg and other drivers.
"""

import unittest

from asyncpg_template import MultiType, SQLType, UnknownTypeError, element_type, is_multi, null_default, resolve_param_type, resolve_result_type
from asyncpg_template.types import as_param_type, as_result_type, is_primitive


class TestCatalog(unittest.TestCase):
    def test_param_type(self) -> None:
        self.assertIs(resolve_param_type("int"), SQLType.INTEGER)
        self.assertIs(resolve_param_type("integer"), SQLType.INTEGER)
        self.assertIs(resolve_param_type("bool"), SQLType.BOOLEAN)
        self.assertIs(resolve_param_type("byte-array"), SQLType.BYTE_ARRAY)
        self.assertIs(resolve_param_type("nil"), SQLType.DYNAMIC)
        self.assertIs(resolve_param_type("ints"), MultiType.INTEGERS)
        self.assertIs(resolve_param_type("strings"), MultiType.STRINGS)

    def test_result_type(self) -> None:
        self.assertIs(resolve_result_type("timestamp"), SQLType.TIMESTAMP)
        self.assertIs(resolve_result_type("uuid"), SQLType.UUID)
        with self.assertRaises(UnknownTypeError):
            resolve_result_type("ints")

    def test_unknown_type(self) -> None:
        with self.assertRaises(UnknownTypeError) as cm:
            resolve_param_type("varchar", "SELECT ^varchar name FROM emp")
        self.assertEqual(cm.exception.token, "varchar")
        self.assertEqual(cm.exception.template, "SELECT ^varchar name FROM emp")
        self.assertIsInstance(cm.exception, ValueError)
        self.assertIn("varchar", str(cm.exception))

    def test_multi(self) -> None:
        for tag in MultiType:
            self.assertTrue(is_multi(tag))
            self.assertIsInstance(element_type(tag), SQLType)
            self.assertIsNot(element_type(tag), SQLType.DYNAMIC)
        for tag in SQLType:
            self.assertFalse(is_multi(tag))
        self.assertIs(element_type(MultiType.INTEGERS), SQLType.INTEGER)
        self.assertIs(element_type(MultiType.BYTES), SQLType.BYTE)

    def test_null_default(self) -> None:
        self.assertIs(null_default(SQLType.BOOLEAN), False)
        self.assertEqual(null_default(SQLType.BYTE), 0)
        self.assertEqual(null_default(SQLType.INTEGER), 0)
        self.assertEqual(null_default(SQLType.LONG), 0)
        self.assertEqual(null_default(SQLType.DOUBLE), 0.0)
        self.assertEqual(null_default(SQLType.FLOAT), 0.0)
        for tag in (SQLType.DYNAMIC, SQLType.STRING, SQLType.DATE, SQLType.TIME, SQLType.TIMESTAMP, SQLType.BYTE_ARRAY, SQLType.OBJECT):
            self.assertIsNone(null_default(tag))
            self.assertFalse(is_primitive(tag))
        self.assertTrue(is_primitive(SQLType.INTEGER))

    def test_coerce(self) -> None:
        self.assertIs(as_param_type("longs"), MultiType.LONGS)
        self.assertIs(as_param_type(SQLType.DATE), SQLType.DATE)
        self.assertIs(as_result_type("double"), SQLType.DOUBLE)
        with self.assertRaises(TypeError):
            as_result_type(42)  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
