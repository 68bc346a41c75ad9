"""
The syntax tree can mention things like `self`, `self.layers` or `ops.relu`
which are not first-class values in the graph, but get desugared according
to how the tree uses them.

SugaredValue represents such things for the duration of one definition's
lowering, so that the lowering pass can treat them all alike. There are five
things one might do with a value:

	as_value      use it in the graph, e.g. `this + 4`
	attr          select an attribute, e.g. `this.field`
	as_tuple      spread it into a fixed number of values, e.g. `a, b = this`
	call          call it, e.g. `outputs = this(inputs)`
	unrolled_for  iterate it, e.g. `for item in this:`, by unrolling the body

Every variant supports some subset. Asking for anything else raises
CapabilityError before the graph is touched. The set of capabilities is
closed; the set of variants is not.
"""
from abc import ABC, abstractmethod
from typing import NamedTuple, Sequence, Union

from .errors import (
	Capability, CapabilityError, MissingAttributeError,
	ArityMismatchError, SignatureError,
)
from .ir import Graph, Value
from .location import SourceRange
from .module import Method, Module, Parameter

class _VarargOutputs:
	def __repr__(self): return "VARARG_OUTPUTS"

# Used to indicate that a call site can accept however many outputs the callee produces,
# for example when packing them into a starred target, or spreading them into another call.
VARARG_OUTPUTS = _VarargOutputs()

class CallsiteDescriptor(NamedTuple):
	n_outputs: Union[int, _VarargOutputs]
	allow_varargs: bool

	@staticmethod
	def single() -> "CallsiteDescriptor": return CallsiteDescriptor(1, False)

	@staticmethod
	def exactly(n:int) -> "CallsiteDescriptor": return CallsiteDescriptor(n, False)

	@staticmethod
	def forward_all() -> "CallsiteDescriptor": return CallsiteDescriptor(VARARG_OUTPUTS, True)

	def wants_everything(self) -> bool:
		return self.n_outputs is VARARG_OUTPUTS

	def check(self, actual:int, loc:SourceRange):
		""" Static arity check: raise unless the callee's output count suits this call site. """
		if self.allow_varargs:
			return
		assert not self.wants_everything()
		if actual != self.n_outputs:
			raise ArityMismatchError(self.n_outputs, actual, loc)


class Attribute(NamedTuple):
	""" A keyword argument at a call site. The value is a constant, or a list of constants. """
	name: str
	value: Union[int, float, bool, list]
	loc: SourceRange


class SugaredValue(ABC):
	@abstractmethod
	def kind(self) -> str:
		""" What is this thing, for error messages? e.g. "module" or "builtin" """

	def as_value(self, loc:SourceRange, method:Method) -> Value:
		raise CapabilityError(self.kind(), Capability.AS_VALUE, loc)

	def attr(self, loc:SourceRange, method:Method, field:str) -> "SugaredValue":
		raise CapabilityError(self.kind(), Capability.ATTR, loc)

	def as_tuple(self, loc:SourceRange, method:Method) -> list["SugaredValue"]:
		raise CapabilityError(self.kind(), Capability.AS_TUPLE, loc)

	def call(self, loc:SourceRange, method:Method, inputs:Sequence[Value], attributes:Sequence[Attribute], cd:CallsiteDescriptor) -> list[Value]:
		raise CapabilityError(self.kind(), Capability.CALL, loc)

	def unrolled_for(self, loc:SourceRange, method:Method) -> list["SugaredValue"]:
		raise CapabilityError(self.kind(), Capability.UNROLLED_FOR, loc)

	def __repr__(self): return "<%s>" % self.kind()


class SimpleValue(SugaredValue):
	""" Most things in the environment are plain graph values. """
	def __init__(self, value:Value):
		assert isinstance(value, Value), value
		self.value = value

	def kind(self): return "value"

	def as_value(self, loc, method):
		return self.value

	def attr(self, loc, method, field):
		# Method-style calls on values, e.g. x.relu() or x.chunk(chunks=2)
		name = method.attribute_table.lookup(self.value.type, field)
		if name is None:
			raise MissingAttributeError(self.value.type, field, loc)
		return BuiltinFunction(name, self.value)


class BuiltinFunction(SugaredValue):
	def __init__(self, name:str, self_value:Value=None):
		self.name, self.self_value = name, self_value

	def kind(self): return "builtin"

	def call(self, loc, method, inputs, attributes, cd):
		if self.self_value is not None:
			inputs = [self.self_value, *inputs]
		return emit_builtin_call(loc, method, self.name, inputs, attributes, cd)


class BuiltinModule(SugaredValue):
	""" A name like `ops`, whose attributes are the built-in operators. """
	def __init__(self, name:str):
		self.name = name

	def kind(self): return "builtin module"

	def attr(self, loc, method, field):
		if field not in method.operators:
			raise MissingAttributeError("builtin module '%s'" % self.name, field, loc)
		return BuiltinFunction(field)


class TupleValue(SugaredValue):
	def __init__(self, elements:Sequence[SugaredValue]):
		self.elements = list(elements)

	def kind(self): return "tuple"

	def as_tuple(self, loc, method):
		return list(self.elements)

	def unrolled_for(self, loc, method):
		return list(self.elements)


class ModuleValue(SugaredValue):
	"""
	A module as seen from inside one of its own methods, typically bound as `self`.
	Its parameters become graph inputs of the method being compiled.
	"""
	def __init__(self, module:Module):
		self.module = module

	def kind(self): return "module"

	def attr(self, loc, method, field):
		member = self.module.find_member(field)
		if member is None:
			raise MissingAttributeError("module '%s'" % self.module.name, field, loc)
		if isinstance(member, Parameter):
			return SimpleValue(method.get_or_add_parameter(member))
		if isinstance(member, Module):
			return ModuleValue(member)
		if isinstance(member, Method):
			return MethodValue(member)
		return TupleValue([ModuleValue(m) for m in member])

	def call(self, loc, method, inputs, attributes, cd):
		forward = self.module.find_method("forward")
		if forward is None:
			raise CapabilityError(self.kind(), Capability.CALL, loc)
		return MethodValue(forward).call(loc, method, inputs, attributes, cd)


def _no_keywords(callee:str, attributes:Sequence[Attribute]):
	if attributes:
		raise SignatureError(callee, "keyword arguments are only for built-in operators", attributes[0].loc)


class MethodValue(SugaredValue):
	""" A method already compiled into some module. Calls inline its graph. """
	def __init__(self, callee:Method):
		self.callee = callee

	def kind(self): return "method"

	def call(self, loc, method, inputs, attributes, cd):
		_no_keywords(self.callee.name, attributes)
		cd.check(len(self.callee.graph.outputs), loc)
		return method.emit_call_to(loc, self.callee, inputs)


class FunctionValue(SugaredValue):
	""" A free-standing function compiled earlier. Calls inline its graph. """
	def __init__(self, name:str, graph:Graph):
		self.name, self.graph = name, graph

	def kind(self): return "function"

	def call(self, loc, method, inputs, attributes, cd):
		_no_keywords(self.name, attributes)
		if len(inputs) != len(self.graph.inputs):
			problem = "expected %d argument(s) but got %d" % (len(self.graph.inputs), len(inputs))
			raise SignatureError(self.name, problem, loc)
		cd.check(len(self.graph.outputs), loc)
		return method.graph.inline(self.graph, inputs)


def emit_builtin_call(loc:SourceRange, method:Method, name:str, inputs:Sequence[Value], attributes:Sequence[Attribute], cd:CallsiteDescriptor) -> list[Value]:
	"""
	Look the operator up, check the call against it, and only then append
	exactly one node. A failed check leaves the graph as it was.
	"""
	schema = method.operators.lookup(name)
	if schema is None:
		raise SignatureError(name, "not a built-in operator", loc)
	if not schema.accepts_input_count(len(inputs)):
		problem = "expected %s input(s) but got %d" % (schema.describe_inputs(), len(inputs))
		raise SignatureError(name, problem, loc)
	attrs = {}
	for a in attributes:
		if a.name not in schema.attributes:
			raise SignatureError(name, "unexpected keyword argument '%s'" % a.name, a.loc)
		if a.name in attrs:
			raise SignatureError(name, "keyword argument '%s' given twice" % a.name, a.loc)
		attrs[a.name] = a.value
	n_outputs = _output_count(loc, name, schema.outputs, attrs, cd)
	cd.check(n_outputs, loc)
	node = method.graph.append_node(schema.node_kind, inputs, [schema.output_type([v.type for v in inputs])] * n_outputs, attrs, loc)
	return node.outputs

def _output_count(loc, name, declared, attrs, cd:CallsiteDescriptor) -> int:
	if isinstance(declared, int):
		return declared
	if isinstance(declared, str):
		count = attrs.get(declared)
		if type(count) is not int or count < 1:
			raise SignatureError(name, "needs a positive integer keyword argument '%s'" % declared, loc)
		return count
	if cd.wants_everything():
		raise SignatureError(name, "cannot tell how many results to produce here", loc)
	return cd.n_outputs

