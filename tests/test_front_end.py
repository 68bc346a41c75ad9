import tempfile
import unittest
from pathlib import Path

from scriptgraph.errors import ScriptSyntaxError
from scriptgraph.front_end import parse_text, parse_file, parse_function
from scriptgraph.ir import TENSOR, INT, FLOAT, BOOL
from scriptgraph.location import Origin, SourceRange, NOWHERE

TWO_DEFS = '''
"""A docstring between definitions is fine."""

def first(x, n: int, scale: "float", flag: bool):
    return x

pass

def second(self, y: Tensor):
    return y
'''

class ParseTests(unittest.TestCase):
	def test_definitions_in_order(self):
		defs = parse_text(TWO_DEFS)
		self.assertEqual(["first", "second"], [d.name for d in defs])
		self.assertEqual(
			[("x", TENSOR), ("n", INT), ("scale", FLOAT), ("flag", BOOL)],
			[(p.name, p.type) for p in defs[0].params],
		)
		self.assertEqual(["self", "y"], [p.name for p in defs[1].params])

	def test_parameter_locations(self):
		[dfn] = parse_text("def f(x, n: int):\n    return x\n")
		self.assertEqual("n: int", dfn.params[1].loc.text())
		self.assertEqual("<script>:1:10", str(dfn.params[1].loc))

	def test_definition_location_covers_the_whole_thing(self):
		text = "def f(x):\n    return x\n"
		dfn = parse_function(text)
		self.assertEqual(text.strip(), dfn.loc.text())

	def test_syntax_errors_say_where(self):
		with self.assertRaises(ScriptSyntaxError) as cm:
			parse_text("def f(x):\n    return x +\n")
		self.assertIsNotNone(cm.exception.loc.origin)
		self.assertTrue(str(cm.exception).startswith("<script>:2:"))

	def test_rejections(self):
		for text in [
			"x = 1\n",
			"import os\n",
			"class C:\n    pass\n",
			"def f(*args):\n    pass\n",
			"def f(**kwargs):\n    pass\n",
			"def f(x, *, y):\n    pass\n",
			"def f(x=1):\n    pass\n",
			"def f(x: list):\n    pass\n",
			"def f(x: Optional[int]):\n    pass\n",
		]:
			with self.subTest(text=text):
				with self.assertRaises(ScriptSyntaxError):
					parse_text(text)

	def test_decorators_are_refused(self):
		with self.assertRaises(ScriptSyntaxError) as cm:
			parse_text("def f(x):\n    return x\n\n@script\ndef g(x):\n    return x\n")
		self.assertEqual("script", cm.exception.loc.text())
		self.assertEqual("<script>:4:2", str(cm.exception.loc))

	def test_exactly_one_function(self):
		with self.assertRaises(ScriptSyntaxError):
			parse_function(TWO_DEFS)
		with self.assertRaises(ScriptSyntaxError):
			parse_function("")

	def test_parse_file_remembers_the_path(self):
		with tempfile.TemporaryDirectory() as folder:
			path = Path(folder) / "model.script"
			path.write_text("def f(x):\n    return x\n", encoding="utf-8")
			[dfn] = parse_file(path)
		self.assertEqual(path, dfn.origin.path)
		self.assertEqual("%s:1:1" % path, str(dfn.loc))


class LocationTests(unittest.TestCase):
	def test_rows_and_columns(self):
		origin = Origin("ab\ncd\n\nef")
		self.assertEqual((1, 1), origin.row_col(0))
		self.assertEqual((2, 2), origin.row_col(4))
		self.assertEqual((4, 1), origin.row_col(7))

	def test_byte_columns_become_character_offsets(self):
		origin = Origin("x\n\u00e9\u00e9 = y\n")
		# Two two-byte characters, then a space.
		self.assertEqual(2 + 2, origin.offset(2, 4))
		self.assertEqual("y", SourceRange(origin, origin.offset(2, 7), origin.offset(2, 8)).text())

	def test_nowhere(self):
		self.assertEqual("<built-in>", str(NOWHERE))
		self.assertEqual("", NOWHERE.text())
		self.assertEqual("caption", NOWHERE.illustrate("caption"))


if __name__ == '__main__':
	unittest.main()
