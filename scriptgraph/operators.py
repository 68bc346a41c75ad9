"""
The built-in operator table, and the attribute table that hangs methods on typed values.

Both are collaborators as far as the compiler is concerned: it only asks
"what is this name?" and "what may I call on a value of this type?".
Supply a different OperatorTable to a Module (or to compile_function)
to change what the scripts may say.
"""
from typing import Callable, Iterable, NamedTuple, Optional, Sequence, Union

from .ir import TENSOR, INT, FLOAT, BOOL

NAMESPACE = "aten::"

def promote(input_types:Sequence[str]) -> str:
	""" Arithmetic on scalars stays scalar, widening int to float. Any tensor makes a tensor. """
	if TENSOR in input_types or not input_types: return TENSOR
	if FLOAT in input_types: return FLOAT
	return INT

def promote_to_float(input_types:Sequence[str]) -> str:
	""" As promote, except scalar results are always float: true division, exp, and so on. """
	return TENSOR if TENSOR in input_types or not input_types else FLOAT

class OperatorSchema(NamedTuple):
	name: str
	min_inputs: int
	max_inputs: Optional[int]  # None means no upper limit.
	# A fixed count, or the name of the integer attribute giving the count,
	# or None for "as many as the call site asks for".
	outputs: Union[int, str, None] = 1
	attributes: frozenset = frozenset()
	method: bool = True
	# A type name, or a function from the input types to one.
	result_type: Union[str, Callable[[Sequence[str]], str]] = TENSOR

	@property
	def node_kind(self) -> str: return NAMESPACE + self.name

	def output_type(self, input_types:Sequence[str]) -> str:
		if callable(self.result_type):
			return self.result_type(input_types)
		return self.result_type

	def accepts_input_count(self, count:int) -> bool:
		if count < self.min_inputs: return False
		return self.max_inputs is None or count <= self.max_inputs

	def describe_inputs(self) -> str:
		if self.max_inputs is None: return "at least %d" % self.min_inputs
		if self.max_inputs == self.min_inputs: return str(self.min_inputs)
		return "%d to %d" % (self.min_inputs, self.max_inputs)


class OperatorTable:
	def __init__(self, schemas:Iterable[OperatorSchema]=()):
		self._schemas = {}
		for s in schemas: self.define(s)

	def define(self, schema:OperatorSchema) -> OperatorSchema:
		self._schemas[schema.name] = schema
		return schema

	def lookup(self, name:str) -> Optional[OperatorSchema]:
		return self._schemas.get(name)

	def __contains__(self, name:str) -> bool:
		return name in self._schemas

	def names(self) -> list[str]:
		return sorted(self._schemas)


class AttributeTable:
	"""
	Which attributes a graph value has, keyed by its declared type.
	Tensors get every method-style operator; scalars get nothing.
	"""
	def __init__(self, operators:OperatorTable):
		self._operators = operators

	def lookup(self, type_:str, field:str) -> Optional[str]:
		""" The operator name a bound method call would reach, if any. """
		if type_ != TENSOR: return None
		schema = self._operators.lookup(field)
		if schema is not None and schema.method and schema.min_inputs >= 1:
			return schema.name


def _unary(name, **kw): return OperatorSchema(name, 1, 1, **kw)
def _binary(name, **kw): return OperatorSchema(name, 2, 2, **kw)

_DIM = frozenset(["dim"])

DEFAULT_OPERATORS = OperatorTable([
	*(_unary(name, result_type=promote) for name in ["neg", "abs"]),
	*(_unary(name, result_type=promote_to_float) for name in ["exp", "log", "sqrt", "sigmoid", "tanh"]),
	*map(_unary, ["relu", "t", "clone", "contiguous"]),
	*(_binary(name, result_type=promote) for name in ["add", "sub", "mul", "pow", "remainder", "min", "max"]),
	_binary("div", result_type=promote_to_float),
	*map(_binary, ["mm", "matmul", "type_as"]),
	*(_binary(name, result_type=BOOL) for name in ["eq", "ne", "lt", "le", "gt", "ge", "__and__", "__or__"]),
	_unary("__not__", result_type=BOOL, method=False),
	OperatorSchema("addmm", 3, 3),
	OperatorSchema("linear", 2, 3, method=False),
	OperatorSchema("where", 3, 3, method=False),
	_unary("sum", attributes=frozenset(["dim", "keepdim"])),
	_unary("mean", attributes=frozenset(["dim", "keepdim"])),
	_unary("softmax", attributes=_DIM),
	_unary("log_softmax", attributes=_DIM),
	_unary("transpose", attributes=frozenset(["dim0", "dim1"])),
	_unary("view", attributes=frozenset(["size"])),
	_unary("unsqueeze", attributes=_DIM),
	_unary("squeeze", attributes=_DIM),
	OperatorSchema("cat", 1, None, attributes=_DIM, method=False),
	OperatorSchema("stack", 1, None, attributes=_DIM, method=False),
	_unary("chunk", outputs="chunks", attributes=frozenset(["chunks", "dim"])),
	_unary("unbind", outputs=None, attributes=_DIM),
	_unary("sort", outputs=2, attributes=frozenset(["dim", "descending"])),
	_unary("topk", outputs=2, attributes=frozenset(["k", "dim", "largest", "sorted"])),
])

# Python operator syntax, mapped onto operator names.
BINARY_OPERATORS = {
	"Add": "add",
	"Sub": "sub",
	"Mult": "mul",
	"Div": "div",
	"Pow": "pow",
	"Mod": "remainder",
	"MatMult": "matmul",
}
UNARY_OPERATORS = {
	"USub": "neg",
	"Not": "__not__",
}
COMPARISONS = {
	"Eq": "eq",
	"NotEq": "ne",
	"Lt": "lt",
	"LtE": "le",
	"Gt": "gt",
	"GtE": "ge",
}
BOOLEAN_OPERATORS = {
	"And": "__and__",
	"Or": "__or__",
}
