"""
Definitions as the compiler sees them.

The script language is a subset of Python, so the statements and expressions
inside a definition are plain `ast` nodes. A Def wraps one function definition
together with the text it came from, so that any node can be given a SourceRange.
"""
import ast
from typing import NamedTuple, Optional

from .ir import TENSOR
from .location import Origin, SourceRange

class Param(NamedTuple):
	name: str
	type: str
	loc: SourceRange

class Def:
	tree: ast.FunctionDef
	origin: Origin
	params: list[Param]

	def __init__(self, tree:ast.FunctionDef, origin:Origin, params:list[Param]):
		self.tree, self.origin, self.params = tree, origin, params

	def __repr__(self): return "<Def %s>" % self.name

	@property
	def name(self) -> str: return self.tree.name

	@property
	def body(self) -> list[ast.stmt]: return self.tree.body

	@property
	def loc(self) -> SourceRange: return self.range_of(self.tree)

	def range_of(self, node:ast.AST) -> SourceRange:
		return node_range(self.origin, node) or node_range(self.origin, self.tree)

def node_range(origin:Origin, node:ast.AST) -> Optional[SourceRange]:
	lineno = getattr(node, "lineno", None)
	if lineno is None:
		return None
	start = origin.offset(lineno, node.col_offset)
	end_lineno = getattr(node, "end_lineno", None) or lineno
	end_col = getattr(node, "end_col_offset", None)
	stop = start if end_col is None else origin.offset(end_lineno, end_col)
	return SourceRange(origin, start, stop)

def annotation_name(node:Optional[ast.expr]) -> Optional[str]:
	""" The type a parameter annotation names. Unannotated means Tensor; anything fancier gives None. """
	if node is None: return TENSOR
	if isinstance(node, ast.Name): return node.id
	if isinstance(node, ast.Attribute): return node.attr
	if isinstance(node, ast.Constant) and isinstance(node.value, str): return node.value
