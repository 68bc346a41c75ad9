from pathlib import Path
import unittest

from scriptgraph import errors
from scriptgraph.compiler import compile_functions
from scriptgraph.diagnostics import Report
from scriptgraph.front_end import parse_file
from scriptgraph.resolution import BuiltinResolver

base_folder = Path(__file__).parent.parent
zoo_ok = base_folder/"zoo/ok"
zoo_fail = base_folder/"zoo/fail"

PROBLEMS = {
	errors.UnresolvedNameError: "resolve",
	errors.CapabilityError: "capability",
	errors.ArityMismatchError: "arity",
	errors.SignatureError: "signature",
	errors.MissingAttributeError: "attribute",
	errors.ScriptSyntaxError: "lower",
	errors.TypeMismatchError: "types",
	errors.DuplicateDefinitionError: "define",
}

def _identify_problem(specimen_path:Path):
	assert specimen_path.exists(), specimen_path
	try:
		definitions = parse_file(specimen_path)
	except errors.ScriptSyntaxError:
		return "parse"
	try:
		compile_functions(definitions, BuiltinResolver())
	except errors.CompilationError as ex:
		# Whatever went wrong must be explainable on the console.
		report = Report(max_issues=30)
		report.compile_error(ex)
		assert ex.loc.origin is not None, ex
		assert report.issues[0].as_text()
		return PROBLEMS[type(ex)]
	else:
		return "failed to fail"

class ZooOfFail(unittest.TestCase):
	""" Tests that assert about failure modes. """

	def expect(self, folder, cases):
		for basename in cases:
			with self.subTest(basename):
				self.assertEqual(folder, _identify_problem(zoo_fail / folder / (basename + ".script")))

	def test_00_parse(self):
		self.expect("parse", [
			"decorated",
			"default_parameter",
			"top_level_statement",
			"unclosed_paren",
			"unknown_parameter_type",
			"variadic_parameter",
		])

	def test_01_lower(self):
		self.expect("lower", [
			"early_return",
			"list_display",
			"string_constant",
		])

	def test_02_resolve(self):
		self.expect("resolve", [
			"branch_local",
			"call_before_definition",
			"undefined_symbol",
		])

	def test_03_capability(self):
		self.expect("capability", [
			"call_a_value",
			"iterate_a_value",
			"module_as_value",
			"unpack_a_value",
		])

	def test_04_arity(self):
		self.expect("arity", [
			"function_results",
			"starred_too_few",
			"too_many_targets",
		])

	def test_05_signature(self):
		self.expect("signature", [
			"chunks_missing",
			"too_many_arguments",
			"unbind_spread",
			"unknown_keyword",
		])

	def test_06_attribute(self):
		self.expect("attribute", [
			"scalar_arithmetic_method",
			"scalar_method",
			"unknown_operator",
		])

	def test_07_types(self):
		self.expect("types", [
			"branch_types_differ",
			"conditional_types_differ",
			"loop_changes_type",
		])

	def test_08_define(self):
		self.expect("define", [
			"defined_twice",
		])


class ZooOfOk(unittest.TestCase):
	""" Run the good specimens; test for no smoke. """

	def test_specimens_compile(self):
		for path in sorted(zoo_ok.glob("*.script")):
			with self.subTest(path.stem):
				table = compile_functions(parse_file(path), BuiltinResolver())
				for name in table.names():
					self.assertIn("return", str(table[name]))

	def test_mlp_inlines_its_layers(self):
		table = compile_functions(parse_file(zoo_ok/"mlp.script"), BuiltinResolver())
		mlp = table["mlp"]
		self.assertEqual(5, len(mlp.inputs))
		self.assertEqual(
			["aten::t", "aten::addmm", "aten::relu", "aten::t", "aten::addmm", "aten::softmax"],
			mlp.operator_sequence(),
		)


if __name__ == '__main__':
	unittest.main()
