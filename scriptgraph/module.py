"""
The container that compiled methods go into.

A Module holds named parameters (slots such as weights), named sub-modules,
lists of sub-modules, and the methods compiled so far. A Method owns its graph.
Parameters reached through the receiver become extra graph inputs,
appended after the formal parameters the first time a method body uses them.
"""
from typing import Optional, Sequence, Union

from .errors import SignatureError
from .ir import Graph, Value, TENSOR
from .location import SourceRange
from .operators import OperatorTable, AttributeTable, DEFAULT_OPERATORS

class AlreadyDefined(KeyError): pass

class Parameter:
	def __init__(self, name:str, type_:str=TENSOR):
		self.name, self.type = name, type_
	def __repr__(self): return "<Parameter %s:%s>" % (self.name, self.type)


class Method:
	graph: Graph
	formals: list[str]
	member_inputs: list[Parameter]

	def __init__(self, owner:Optional["Module"], name:str, operators:OperatorTable=DEFAULT_OPERATORS):
		self.owner, self.name = owner, name
		self.operators = operators
		self.attribute_table = AttributeTable(operators)
		self.graph = Graph()
		self.formals = []
		self.member_inputs = []
		self._member_values = {}

	def __repr__(self): return "<Method %s>" % self.name

	def add_formal(self, name:str, type_:str) -> Value:
		assert not self.member_inputs, "Formal parameters come before member inputs."
		self.formals.append(name)
		return self.graph.add_input(type_, name)

	def get_or_add_parameter(self, parameter:Parameter) -> Value:
		if parameter not in self._member_values:
			self.member_inputs.append(parameter)
			self._member_values[parameter] = self.graph.add_input(parameter.type, parameter.name)
		return self._member_values[parameter]

	def emit_call_to(self, loc:SourceRange, callee:"Method", inputs:Sequence[Value]) -> list[Value]:
		""" Inline a call to an already-compiled method, threading through whatever parameters it uses. """
		if len(inputs) != len(callee.formals):
			problem = "expected %d argument(s) but got %d" % (len(callee.formals), len(inputs))
			raise SignatureError(callee.name, problem, loc)
		members = [self.get_or_add_parameter(p) for p in callee.member_inputs]
		return self.graph.inline(callee.graph, list(inputs) + members)


Member = Union[Parameter, "Module", list, Method]

class Module:
	def __init__(self, name:str="module", operators:OperatorTable=DEFAULT_OPERATORS):
		self.name = name
		self.operators = operators
		self._members: dict[str, Member] = {}
		self._methods: dict[str, Method] = {}

	def __repr__(self): return "<Module %s>" % self.name

	def _install(self, name:str, member):
		if name in self._members or name in self._methods:
			raise AlreadyDefined(name)
		self._members[name] = member
		return member

	def register_parameter(self, name:str, type_:str=TENSOR) -> Parameter:
		return self._install(name, Parameter(name, type_))

	def register_module(self, name:str, module:"Module") -> "Module":
		return self._install(name, module)

	def register_module_list(self, name:str, modules:Sequence["Module"]) -> list["Module"]:
		return self._install(name, list(modules))

	def register_method(self, method:Method) -> Method:
		"""
		The registration boundary. The method arrives fully built;
		a name may be registered only once.
		"""
		assert method.owner is self
		if method.name in self._methods or method.name in self._members:
			raise AlreadyDefined(method.name)
		self._methods[method.name] = method
		return method

	def find_method(self, name:str) -> Optional[Method]:
		return self._methods.get(name)

	def get_method(self, name:str) -> Method:
		return self._methods[name]

	def method_names(self) -> list[str]:
		return list(self._methods)

	def find_member(self, name:str) -> Optional[Member]:
		""" Whatever goes by this name, methods included. """
		if name in self._members: return self._members[name]
		return self._methods.get(name)
