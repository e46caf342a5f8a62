"""
Typed SQL templates for asyncpg and other drivers.
"""

import unittest

from asyncpg_template import Literal, MalformedTemplateError, Param, ResultType, tokenize


class TestPassthrough(unittest.TestCase):
    def test_plain(self) -> None:
        self.assertEqual(tokenize("SELECT 1"), (Literal("SELECT 1"),))
        self.assertEqual(tokenize(""), ())

    def test_single_quote(self) -> None:
        self.assertEqual(tokenize("SELECT '$x' FROM t"), (Literal("SELECT '$x' FROM t"),))
        self.assertEqual(tokenize("SELECT '^int' FROM t"), (Literal("SELECT '^int' FROM t"),))
        self.assertEqual(tokenize("SELECT 'it''s $x'"), (Literal("SELECT 'it''s $x'"),))

    def test_double_quote(self) -> None:
        self.assertEqual(tokenize('SELECT "$col" FROM t'), (Literal('SELECT "$col" FROM t'),))

    def test_line_comment(self) -> None:
        self.assertEqual(tokenize("SELECT 1 -- $x ^int\nFROM t"), (Literal("SELECT 1 -- $x ^int\nFROM t"),))
        self.assertEqual(tokenize("SELECT 1 -- 'unterminated"), (Literal("SELECT 1 -- 'unterminated"),))
        self.assertEqual(
            tokenize("SELECT $a -- $b\n, $c"),
            (Literal("SELECT "), Param("a"), Literal(" -- $b\n, "), Param("c")),
        )

    def test_single_hyphen(self) -> None:
        self.assertEqual(tokenize("SELECT 2 - $a"), (Literal("SELECT 2 - "), Param("a")))

    def test_escape(self) -> None:
        self.assertEqual(tokenize(r"SELECT \$a"), (Literal("SELECT $a"),))
        self.assertEqual(tokenize(r"SELECT 2 \^ 3"), (Literal("SELECT 2 ^ 3"),))
        self.assertEqual(tokenize(r"SELECT 'C:\' || $dir"), (Literal(r"SELECT 'C:\' || "), Param("dir")))
        self.assertEqual(tokenize(r"SELECT -\-1"), (Literal("SELECT --1"),))

    def test_escaped_hyphen(self) -> None:
        # an escaped hyphen followed by a hyphen still starts a line comment
        self.assertEqual(tokenize(r"SELECT 1 -\-- $x"), (Literal("SELECT 1 --- $x"),))
        self.assertEqual(tokenize(r"SELECT 1 \-- $x"), (Literal("SELECT 1 -- $x"),))


class TestParams(unittest.TestCase):
    def test_untyped(self) -> None:
        self.assertEqual(
            tokenize("UPDATE emp SET salary = $new-salary WHERE dept = $dept"),
            (Literal("UPDATE emp SET salary = "), Param("new-salary"), Literal(" WHERE dept = "), Param("dept")),
        )

    def test_prefix_type(self) -> None:
        self.assertEqual(
            tokenize("WHERE dept_id=^int $dept-id"),
            (Literal("WHERE dept_id="), Param("dept-id", "int")),
        )
        self.assertEqual(
            tokenize("WHERE level IN (^ints $levels)"),
            (Literal("WHERE level IN ("), Param("levels", "ints"), Literal(")")),
        )

    def test_suffix_type(self) -> None:
        self.assertEqual(
            tokenize("VALUES ($name^string, $salary^int)"),
            (Literal("VALUES ("), Param("name", "string"), Literal(", "), Param("salary", "int"), Literal(")")),
        )
        self.assertEqual(tokenize("WHERE id = $id^long"), (Literal("WHERE id = "), Param("id", "long")))

    def test_default_type(self) -> None:
        self.assertEqual(tokenize("WHERE a = ^^ $a"), (Literal("WHERE a = "), Param("a", "nil")))
        self.assertEqual(tokenize("VALUES ($a^^)"), (Literal("VALUES ("), Param("a", "nil"), Literal(")")))

    def test_custom_delimiters(self) -> None:
        self.assertEqual(
            tokenize("WHERE id = @int :id AND x = '!'", escape_char="!", param_char=":", type_char="@"),
            (Literal("WHERE id = "), Param("id", "int"), Literal(" AND x = '!'")),
        )

    def test_invalid_delimiters(self) -> None:
        with self.assertRaises(ValueError):
            tokenize("SELECT 1", param_char="a")
        with self.assertRaises(ValueError):
            tokenize("SELECT 1", param_char="^")
        with self.assertRaises(ValueError):
            tokenize("SELECT 1", type_char="'")
        with self.assertRaises(ValueError):
            tokenize("SELECT 1", escape_char="")


class TestResultTypes(unittest.TestCase):
    def test_prefix_type(self) -> None:
        self.assertEqual(
            tokenize("SELECT ^string name, ^int age FROM emp"),
            (Literal("SELECT "), ResultType("string"), Literal("name, "), ResultType("int"), Literal("age FROM emp")),
        )

    def test_suffix_type(self) -> None:
        tokens = tokenize("SELECT name^string, salary^int FROM emp")
        self.assertEqual([t for t in tokens if isinstance(t, ResultType)], [ResultType("string"), ResultType("int")])
        self.assertEqual("".join(t.text for t in tokens if isinstance(t, Literal)), "SELECT name, salary FROM emp")

    def test_mixed(self) -> None:
        tokens = tokenize("SELECT ^string name, ^int age, ^date joined FROM emp WHERE dept_id=^int $dept-id")
        self.assertEqual(
            [t for t in tokens if not isinstance(t, Literal)],
            [ResultType("string"), ResultType("int"), ResultType("date"), Param("dept-id", "int")],
        )
        self.assertEqual("".join(t.text for t in tokens if isinstance(t, Literal)), "SELECT name, age, joined FROM emp WHERE dept_id=")

    def test_deterministic(self) -> None:
        text = "SELECT ^string name FROM emp WHERE dept = $dept^string AND level IN (^ints $levels)"
        self.assertEqual(tokenize(text), tokenize(text))


class TestMalformed(unittest.TestCase):
    def assertMalformed(self, text: str) -> MalformedTemplateError:
        with self.assertRaises(MalformedTemplateError) as cm:
            tokenize(text)
        return cm.exception

    def test_unterminated(self) -> None:
        e = self.assertMalformed("SELECT 'abc")
        self.assertEqual(e.position, 10)
        self.assertTrue(e.fragment.endswith("'abc"))
        self.assertEqual(e.template, "SELECT 'abc")
        self.assertIsInstance(e, ValueError)

        self.assertMalformed('SELECT "abc')
        self.assertMalformed("SELECT 1 \\")

    def test_dangling_type(self) -> None:
        self.assertMalformed("SELECT ^int")
        self.assertMalformed("SELECT a^int")
        self.assertMalformed("SELECT ^int a ^")
        self.assertMalformed("SELECT ^ a")
        self.assertMalformed("SELECT ^1 a")
        self.assertMalformed("SELECT ^^int a")

    def test_stacked_type(self) -> None:
        self.assertMalformed("SELECT name^string^int FROM emp")
        self.assertMalformed("SELECT ^string ^int name FROM emp")
        self.assertMalformed("SELECT ^^^int name FROM emp")
        self.assertMalformed("WHERE a = $a^int^long")
        self.assertMalformed("WHERE a = $a^^^long")
        self.assertMalformed("WHERE a = ^int ^long $a")

    def test_bad_param(self) -> None:
        self.assertMalformed("WHERE a = $ ")
        self.assertMalformed("WHERE a = $1")
        self.assertMalformed("WHERE a = $")
        self.assertMalformed("WHERE a = $a'x'")
        self.assertMalformed("WHERE a = $a$b")
        self.assertMalformed("WHERE a = $a^")
        self.assertMalformed("WHERE a = ^int $a^long")


if __name__ == "__main__":
    unittest.main()
