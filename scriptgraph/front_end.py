"""
Turn script text into definitions.

Python's own parser does the heavy lifting. This module only checks that the
result stays within the script language at the level of definitions and
their parameters; what goes on inside a body is the compiler's business.
"""
import ast
from pathlib import Path
from typing import Optional, Union

from .errors import ScriptSyntaxError
from .ir import ALL_TYPES
from .location import Origin, SourceRange
from .syntax import Def, Param, annotation_name, node_range

def parse_text(text:str, path:Optional[Path]=None) -> list[Def]:
	""" Every function definition in the text, in order of appearance. """
	origin = Origin(text, path)
	try:
		module = ast.parse(text, filename=str(origin))
	except SyntaxError as ex:
		raise ScriptSyntaxError(ex.msg, _syntax_error_range(origin, ex)) from None
	definitions = []
	for stmt in module.body:
		if isinstance(stmt, ast.FunctionDef):
			definitions.append(_definition(stmt, origin))
		elif not _is_inert(stmt):
			loc = node_range(origin, stmt)
			raise ScriptSyntaxError("only function definitions may appear at the top level", loc)
	return definitions

def parse_file(path:Union[str, Path]) -> list[Def]:
	path = Path(path)
	with open(path, "r", encoding="utf-8") as fh:
		return parse_text(fh.read(), path)

def parse_function(text:str, path:Optional[Path]=None) -> Def:
	""" Exactly one definition, as when compiling a single function from its text. """
	definitions = parse_text(text, path)
	if len(definitions) != 1:
		loc = SourceRange(Origin(text, path), 0, len(text))
		raise ScriptSyntaxError("expected exactly one definition but found %d" % len(definitions), loc)
	return definitions[0]

def _is_inert(stmt:ast.stmt) -> bool:
	# Docstrings and `pass` are tolerated between definitions.
	if isinstance(stmt, ast.Pass): return True
	return isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and isinstance(stmt.value.value, str)

def _definition(tree:ast.FunctionDef, origin:Origin) -> Def:
	dfn = Def(tree, origin, [])
	if tree.decorator_list:
		raise ScriptSyntaxError("decorators are not supported", dfn.range_of(tree.decorator_list[0]))
	args = tree.args
	for bogon in (args.vararg, args.kwarg):
		if bogon is not None:
			raise ScriptSyntaxError("variable-length parameters are not supported", dfn.range_of(bogon))
	if args.kwonlyargs:
		raise ScriptSyntaxError("keyword-only parameters are not supported", dfn.range_of(args.kwonlyargs[0]))
	if args.defaults:
		raise ScriptSyntaxError("parameters cannot have default values", dfn.range_of(args.defaults[0]))
	for arg in args.posonlyargs + args.args:
		type_ = annotation_name(arg.annotation)
		if type_ not in ALL_TYPES:
			loc = dfn.range_of(arg.annotation)
			raise ScriptSyntaxError("parameter types must be one of %s" % ", ".join(sorted(ALL_TYPES)), loc)
		dfn.params.append(Param(arg.arg, type_, dfn.range_of(arg)))
	return dfn

def _syntax_error_range(origin:Origin, ex:SyntaxError) -> SourceRange:
	if not ex.lineno:
		return SourceRange(origin, 0, 0)
	# SyntaxError columns count characters from one.
	line_start = origin.offset(ex.lineno, 0)
	start = line_start + max((ex.offset or 1) - 1, 0)
	return SourceRange(origin, start, start + 1)
