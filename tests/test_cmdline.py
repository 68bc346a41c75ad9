import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from scriptgraph import cmdline
from scriptgraph.diagnostics import Report, TooManyIssues
from scriptgraph.errors import UnresolvedNameError, ArityMismatchError, TypeMismatchError
from scriptgraph.front_end import parse_function
from scriptgraph.compiler import compile_function
from scriptgraph.resolution import NullResolver

base_folder = Path(__file__).parent.parent
zoo_ok = base_folder/"zoo/ok"
zoo_fail = base_folder/"zoo/fail"

def _run(*argv):
	with mock.patch("sys.stdout", new_callable=io.StringIO) as out, mock.patch("sys.stderr", new_callable=io.StringIO) as err:
		status = cmdline.run(cmdline.parser.parse_args([str(a) for a in argv]))
	return status, out.getvalue(), err.getvalue()

class CommandLineTests(unittest.TestCase):
	def test_prints_every_graph(self):
		status, out, err = _run(zoo_ok/"mlp.script")
		self.assertIsNone(status)
		self.assertIn("# layer\ngraph(", out)
		self.assertIn("# mlp\ngraph(", out)
		self.assertEqual("", err)

	def test_one_function(self):
		status, out, err = _run("-f", "mlp", zoo_ok/"mlp.script")
		self.assertIsNone(status)
		self.assertNotIn("# layer", out)
		self.assertIn("aten::softmax", out)

	def test_unknown_function(self):
		status, out, err = _run("-f", "nonesuch", zoo_ok/"mlp.script")
		self.assertEqual(1, status)
		self.assertIn("nonesuch", err)

	def test_check_only(self):
		status, out, err = _run("--check", zoo_ok/"control.script")
		self.assertIsNone(status)
		self.assertEqual("", out)
		self.assertIn("plausible", err)

	def test_verbose_mentions_functions(self):
		status, out, err = _run("-c", "-v", zoo_ok/"mlp.script")
		self.assertIn("Compiling function mlp", err)

	def test_compile_error(self):
		status, out, err = _run(zoo_fail/"resolve/undefined_symbol.script")
		self.assertEqual(1, status)
		self.assertEqual("", out)
		self.assertIn("undefined value frobnicate", err)
		self.assertIn("undefined_symbol.script:2:12", err)

	def test_missing_file(self):
		with tempfile.TemporaryDirectory() as folder:
			status, out, err = _run(Path(folder)/"absent.script")
		self.assertEqual(1, status)
		self.assertIn("Could not read", err)


class ReportTests(unittest.TestCase):
	@staticmethod
	def _error(text, cls):
		try:
			compile_function(parse_function(text), NullResolver())
		except cls as ex:
			return ex
		raise AssertionError("failed to fail")

	def test_compile_error_explains_itself(self):
		report = Report()
		report.compile_error(self._error("def f(x): return g(x)\n", UnresolvedNameError))
		self.assertTrue(report.sick())
		[pic] = report.issues
		self.assertEqual("Compiling stopped here: undefined value g", pic.description)
		text = pic.as_text()
		self.assertIn("<script>:1:18", text)
		self.assertIn("g(x)", text)
		self.assertIn("nothing is called 'g'", text)

	def test_arity_advice(self):
		report = Report()
		report.compile_error(self._error("def f(x, y):\n    a, b, c = x, y\n    return a\n", ArityMismatchError))
		self.assertIn("must match", report.issues[0].as_text())

	def test_type_mismatch_shows_the_join(self):
		report = Report()
		report.compile_error(self._error("def f(x, n: int, c: bool):\n    return n if c else x\n", TypeMismatchError))
		[pic] = report.issues
		self.assertEqual("Compiling stopped here: the conditional expression is int on one path but Tensor on the other", pic.description)
		self.assertIn("the paths meet here", pic.as_text())

	def test_too_many_issues(self):
		report = Report(max_issues=2)
		ex = self._error("def f(x): return g(x)\n", UnresolvedNameError)
		report.compile_error(ex)
		with self.assertRaises(TooManyIssues):
			report.compile_error(ex)
		report.reset()
		self.assertTrue(report.ok())

	def test_info_is_quiet_unless_verbose(self):
		with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
			Report().info("hush")
			Report(verbose=1).info("hello", "there")
		self.assertEqual("hello there\n", err.getvalue())

	def test_assert_no_issues(self):
		report = Report()
		report.assert_no_issues("all is well")
		report.compile_error(self._error("def f(x): return g(x)\n", UnresolvedNameError))
		with mock.patch("sys.stderr", new_callable=io.StringIO):
			with self.assertRaises(AssertionError):
				report.assert_no_issues("this should fail")


if __name__ == '__main__':
	unittest.main()
