"""
Lowering definitions into graphs, and the entry points that drive it.

One Lowering object handles one definition. It walks the statements in order,
keeping a stack of lexical frames (one per graph block) for the names bound so
far. Free names go to the resolver. Anything that is not plainly a graph value
travels as a SugaredValue until the context says what to do with it.

Control flow becomes structured nodes:

* `if` becomes prim::If with two blocks. A variable assigned in either branch
  becomes an output of the node if the other branch can also see it.
* `while` and `for i in range(n)` become prim::Loop. Its inputs are the trip
  count, the initial condition and the loop-carried variables, meaning names
  the body assigns which are already bound outside. The body block takes the
  iteration number and the carried values, and yields the next condition and
  the carried values.
* `for x in thing` over anything else asks `thing` to unroll itself, and the
  body is lowered once per element.

The first error abandons the definition. Nothing is registered for it.
"""
import ast
from contextlib import contextmanager
from typing import Optional, Sequence, Union

from boozetools.support.foundation import Visitor

from .errors import ScriptSyntaxError, UnresolvedNameError, ArityMismatchError, TypeMismatchError
from .front_end import parse_text
from .ir import Graph, Block, Value, INT, IF, LOOP
from .location import SourceRange
from .module import Method, Module
from .operators import (
	OperatorTable, DEFAULT_OPERATORS,
	BINARY_OPERATORS, UNARY_OPERATORS, COMPARISONS, BOOLEAN_OPERATORS,
)
from .resolution import Resolver, FunctionTable, ChainResolver, as_resolver
from .sugar import (
	CallsiteDescriptor, Attribute, SugaredValue, SimpleValue, TupleValue,
	emit_builtin_call,
)
from .syntax import Def

MAX_TRIP_COUNT = 2**63 - 1

Definitions = Union[str, Sequence[Def]]

class Frame:
	""" The names bound within one block, and a link to the enclosing block's frame. """
	def __init__(self, block:Block, parent:Optional["Frame"]):
		self.block, self.parent = block, parent
		self._bindings: dict[str, SugaredValue] = {}

	def find(self, name:str) -> Optional[SugaredValue]:
		frame = self
		while frame is not None:
			if name in frame._bindings:
				return frame._bindings[name]
			frame = frame.parent

	def bind(self, name:str, value:SugaredValue):
		self._bindings[name] = value

	def defined_here(self) -> list[str]:
		return list(self._bindings)


def _assigned_names(statements:Sequence[ast.stmt]) -> list[str]:
	names = {}
	for stmt in statements:
		for node in ast.walk(stmt):
			if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
				names[node.id] = None
	return list(names)

def _agree(what:str, first:Value, second:Value, loc:SourceRange):
	if first.type != second.type:
		raise TypeMismatchError(what, first.type, second.type, loc)

def _is_docstring(stmt:ast.stmt) -> bool:
	return isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and isinstance(stmt.value.value, str)


class Lowering(Visitor):
	"""
	Statement visitors return nothing; expression visitors return a SugaredValue.
	Node types without a visitor are outside the script language.
	"""
	frame: Frame

	def __init__(self, definition:Def, method:Method, resolver:Resolver, self_value:Optional[SugaredValue]=None):
		self.dfn = definition
		self.method = method
		self.graph = method.graph
		self.resolver = resolver
		self.self_value = self_value
		self.frame = Frame(self.graph.block, None)
		self._final_statement = None

	def lower(self) -> Method:
		params = self.dfn.params
		if self.self_value is not None:
			if not params:
				raise ScriptSyntaxError("methods must have a self argument", self.dfn.loc)
			self.frame.bind(params[0].name, self.self_value)
			params = params[1:]
		for p in params:
			self.frame.bind(p.name, SimpleValue(self.method.add_formal(p.name, p.type)))
		body = self.dfn.body
		if isinstance(body[-1], ast.Return):
			self._final_statement = body[-1]
		self._statements(body)
		return self.method

	# Plumbing

	def _loc(self, node:ast.AST) -> SourceRange:
		return self.dfn.range_of(node)

	def _statements(self, statements:Sequence[ast.stmt]):
		for stmt in statements:
			if not hasattr(self, "visit_" + type(stmt).__name__):
				raise ScriptSyntaxError("%s statements are not supported" % type(stmt).__name__, self._loc(stmt))
			self.visit(stmt)

	def _sugared(self, expr:ast.expr) -> SugaredValue:
		if not hasattr(self, "visit_" + type(expr).__name__):
			raise ScriptSyntaxError("%s expressions are not supported" % type(expr).__name__, self._loc(expr))
		return self.visit(expr)

	def _value(self, expr:ast.expr) -> Value:
		return self._sugared(expr).as_value(self._loc(expr), self.method)

	def _values(self, exprs:Sequence[ast.expr]) -> list[Value]:
		""" Values for an argument list, spreading any starred items. """
		values = []
		for e in exprs:
			if isinstance(e, ast.Starred):
				loc = self._loc(e)
				values.extend(sv.as_value(loc, self.method) for sv in self._unpack(e.value, CallsiteDescriptor.forward_all()))
			else:
				values.append(self._value(e))
		return values

	def _unpack(self, expr:ast.expr, cd:CallsiteDescriptor) -> list[SugaredValue]:
		""" Spread an expression into several. A call gets told how many results the site wants. """
		if isinstance(expr, ast.Call):
			return [SimpleValue(v) for v in self._call(expr, cd)]
		return self._sugared(expr).as_tuple(self._loc(expr), self.method)

	def _lookup(self, name:str, loc:SourceRange) -> SugaredValue:
		found = self.frame.find(name)
		if found is None:
			found = self.resolver.resolve(name)
		if found is None:
			raise UnresolvedNameError(name, loc)
		return found

	def _bind(self, name:str, value:SugaredValue):
		if isinstance(value, SimpleValue):
			self.graph.name_value(value.value, name)
		self.frame.bind(name, value)

	@contextmanager
	def _entering(self, block:Block):
		outer = self.frame
		self.frame = Frame(block, outer)
		try:
			with self.graph.insertion_point(block):
				yield self.frame
		finally:
			self.frame = outer

	def _builtin(self, loc:SourceRange, name:str, inputs:Sequence[Value]) -> SimpleValue:
		outputs = emit_builtin_call(loc, self.method, name, inputs, (), CallsiteDescriptor.single())
		return SimpleValue(outputs[0])

	# Statements

	def visit_Expr(self, stmt:ast.Expr):
		if _is_docstring(stmt):
			return
		if isinstance(stmt.value, ast.Call):
			# Whatever it produces goes nowhere, so take whatever it produces.
			self._call(stmt.value, CallsiteDescriptor.forward_all())
		else:
			self._sugared(stmt.value)

	def visit_Pass(self, stmt:ast.Pass):
		pass

	def visit_Assign(self, stmt:ast.Assign):
		if len(stmt.targets) != 1:
			raise ScriptSyntaxError("chained assignment is not supported", self._loc(stmt))
		self._assign(stmt.targets[0], stmt.value, self._loc(stmt))

	def visit_AnnAssign(self, stmt:ast.AnnAssign):
		if stmt.value is None:
			raise ScriptSyntaxError("a declaration needs a value", self._loc(stmt))
		self._assign(stmt.target, stmt.value, self._loc(stmt))

	def visit_AugAssign(self, stmt:ast.AugAssign):
		loc = self._loc(stmt)
		if not isinstance(stmt.target, ast.Name):
			raise ScriptSyntaxError("augmented assignment needs a plain name on the left", self._loc(stmt.target))
		name = BINARY_OPERATORS.get(type(stmt.op).__name__)
		if name is None:
			raise ScriptSyntaxError("the %s operator is not supported" % type(stmt.op).__name__, loc)
		lhs = self._lookup(stmt.target.id, self._loc(stmt.target)).as_value(loc, self.method)
		rhs = self._value(stmt.value)
		self._bind(stmt.target.id, self._builtin(loc, name, [lhs, rhs]))

	def _assign(self, target:ast.expr, rhs:ast.expr, loc:SourceRange):
		if isinstance(target, ast.Name):
			self._bind(target.id, self._sugared(rhs))
		elif isinstance(target, (ast.Tuple, ast.List)):
			self._assign_tuple(target.elts, rhs, loc)
		else:
			raise ScriptSyntaxError("can only assign to names and tuples of names", self._loc(target))

	def _assign_tuple(self, targets:Sequence[ast.expr], rhs:ast.expr, loc:SourceRange):
		names, star = [], None
		for i, t in enumerate(targets):
			if isinstance(t, ast.Name):
				names.append(t.id)
			elif isinstance(t, ast.Starred) and isinstance(t.value, ast.Name):
				if star is not None:
					raise ScriptSyntaxError("only one starred target is allowed", self._loc(t))
				star = i
				names.append(t.value.id)
			else:
				raise ScriptSyntaxError("can only assign to names and tuples of names", self._loc(t))
		if star is None:
			values = self._unpack(rhs, CallsiteDescriptor.exactly(len(names)))
			if len(values) != len(names):
				raise ArityMismatchError(len(names), len(values), loc)
		else:
			values = self._unpack(rhs, CallsiteDescriptor.forward_all())
			fixed = len(names) - 1
			if len(values) < fixed:
				raise ArityMismatchError(fixed, len(values), loc, at_least=True)
			split = len(values) - (fixed - star)
			values = values[:star] + [TupleValue(values[star:split])] + values[split:]
		for name, value in zip(names, values):
			self._bind(name, value)

	def visit_Return(self, stmt:ast.Return):
		if stmt is not self._final_statement:
			raise ScriptSyntaxError("return statements can appear only at the end of the function body", self._loc(stmt))
		if stmt.value is None:
			return
		if isinstance(stmt.value, ast.Tuple):
			values = self._values(stmt.value.elts)
		else:
			values = [self._value(stmt.value)]
		for v in values:
			self.graph.register_output(v)

	def visit_If(self, stmt:ast.If):
		loc = self._loc(stmt)
		cond = self._value(stmt.test)
		node = self.graph.append_node(IF, [cond], [], loc=loc)
		true_block, false_block = node.add_block(), node.add_block()
		with self._entering(true_block) as true_frame:
			self._statements(stmt.body)
		with self._entering(false_block) as false_frame:
			self._statements(stmt.orelse)
		mutated = [x for x in true_frame.defined_here() if false_frame.find(x) is not None]
		mutated.extend(x for x in false_frame.defined_here() if x not in mutated and true_frame.find(x) is not None)
		for name in mutated:
			on_true = true_frame.find(name).as_value(loc, self.method)
			on_false = false_frame.find(name).as_value(loc, self.method)
			_agree("'%s'" % name, on_true, on_false, loc)
			true_block.register_output(on_true)
			false_block.register_output(on_false)
			self._bind(name, SimpleValue(node.add_output(on_true.type)))

	def visit_While(self, stmt:ast.While):
		loc = self._loc(stmt)
		if stmt.orelse:
			raise ScriptSyntaxError("loops cannot have an else clause", loc)
		trip_count = self.graph.insert_constant(MAX_TRIP_COUNT, loc)
		cond = self._value(stmt.test)
		self._loop(loc, trip_count, cond, stmt.body, None, stmt.test)

	def visit_For(self, stmt:ast.For):
		loc = self._loc(stmt)
		if stmt.orelse:
			raise ScriptSyntaxError("loops cannot have an else clause", loc)
		if not isinstance(stmt.target, ast.Name):
			raise ScriptSyntaxError("the loop variable must be a single name", self._loc(stmt.target))
		target = stmt.target.id
		iterable = stmt.iter
		if isinstance(iterable, ast.Call) and isinstance(iterable.func, ast.Name) and iterable.func.id == "range":
			if len(iterable.args) != 1 or iterable.keywords:
				raise ScriptSyntaxError("range() takes exactly one argument here", self._loc(iterable))
			trip_count = self._value(iterable.args[0])
			cond = self.graph.insert_constant(True, loc)
			self._loop(loc, trip_count, cond, stmt.body, target, None)
		else:
			# Not a range loop, so the iterable had better unroll.
			for item in self._sugared(iterable).unrolled_for(self._loc(iterable), self.method):
				self._bind(target, item)
				self._statements(stmt.body)

	def _loop(self, loc:SourceRange, trip_count:Value, cond:Value, body, counter:Optional[str], next_cond:Optional[ast.expr]):
		carried = [name for name in _assigned_names(body) if self.frame.find(name) is not None]
		initial = [self.frame.find(name).as_value(loc, self.method) for name in carried]
		node = self.graph.append_node(LOOP, [trip_count, cond, *initial], [], loc=loc)
		block = node.add_block()
		iteration = block.add_input(INT)
		with self._entering(block) as frame:
			for name, v in zip(carried, initial):
				frame.bind(name, SimpleValue(block.add_input(v.type, name)))
			if counter is not None:
				self._bind(counter, SimpleValue(iteration))
			self._statements(body)
			if next_cond is None:
				block.register_output(self.graph.insert_constant(True, loc))
			else:
				block.register_output(self._value(next_cond))
			for name, v in zip(carried, initial):
				after = frame.find(name).as_value(loc, self.method)
				_agree("loop variable '%s'" % name, v, after, loc)
				block.register_output(after)
		for name, v in zip(carried, initial):
			self._bind(name, SimpleValue(node.add_output(v.type)))

	# Expressions

	def visit_Name(self, expr:ast.Name) -> SugaredValue:
		return self._lookup(expr.id, self._loc(expr))

	def visit_Constant(self, expr:ast.Constant) -> SugaredValue:
		if isinstance(expr.value, (bool, int, float)):
			return SimpleValue(self.graph.insert_constant(expr.value, self._loc(expr)))
		raise ScriptSyntaxError("%s constants are not supported" % type(expr.value).__name__, self._loc(expr))

	def visit_Attribute(self, expr:ast.Attribute) -> SugaredValue:
		base = self._sugared(expr.value)
		return base.attr(self._loc(expr), self.method, expr.attr)

	def visit_Call(self, expr:ast.Call) -> SugaredValue:
		return SimpleValue(self._call(expr, CallsiteDescriptor.single())[0])

	def _call(self, expr:ast.Call, cd:CallsiteDescriptor) -> list[Value]:
		callee = self._sugared(expr.func)
		inputs = self._values(expr.args)
		attributes = [self._attribute(k) for k in expr.keywords]
		return callee.call(self._loc(expr), self.method, inputs, attributes, cd)

	def _attribute(self, keyword:ast.keyword) -> Attribute:
		loc = self._loc(keyword)
		if keyword.arg is None:
			raise ScriptSyntaxError("keyword argument unpacking is not supported", loc)
		return Attribute(keyword.arg, self._constant(keyword.value), loc)

	def _constant(self, expr:ast.expr):
		""" Keyword arguments become node attributes, so they must be known now. """
		if isinstance(expr, ast.Constant) and isinstance(expr.value, (bool, int, float)):
			return expr.value
		if isinstance(expr, ast.UnaryOp) and isinstance(expr.op, ast.USub):
			operand = self._constant(expr.operand)
			if not isinstance(operand, bool) and isinstance(operand, (int, float)):
				return -operand
		if isinstance(expr, (ast.List, ast.Tuple)):
			return [self._constant(e) for e in expr.elts]
		raise ScriptSyntaxError("keyword arguments must be constants or lists of constants", self._loc(expr))

	def visit_BinOp(self, expr:ast.BinOp) -> SugaredValue:
		name = BINARY_OPERATORS.get(type(expr.op).__name__)
		if name is None:
			raise ScriptSyntaxError("the %s operator is not supported" % type(expr.op).__name__, self._loc(expr))
		return self._builtin(self._loc(expr), name, [self._value(expr.left), self._value(expr.right)])

	def visit_UnaryOp(self, expr:ast.UnaryOp) -> SugaredValue:
		if isinstance(expr.op, ast.UAdd):
			return SimpleValue(self._value(expr.operand))
		name = UNARY_OPERATORS.get(type(expr.op).__name__)
		if name is None:
			raise ScriptSyntaxError("the %s operator is not supported" % type(expr.op).__name__, self._loc(expr))
		return self._builtin(self._loc(expr), name, [self._value(expr.operand)])

	def visit_Compare(self, expr:ast.Compare) -> SugaredValue:
		loc = self._loc(expr)
		if len(expr.ops) != 1:
			raise ScriptSyntaxError("chained comparisons are not supported", loc)
		name = COMPARISONS.get(type(expr.ops[0]).__name__)
		if name is None:
			raise ScriptSyntaxError("the %s comparison is not supported" % type(expr.ops[0]).__name__, loc)
		return self._builtin(loc, name, [self._value(expr.left), self._value(expr.comparators[0])])

	def visit_BoolOp(self, expr:ast.BoolOp) -> SugaredValue:
		loc = self._loc(expr)
		name = BOOLEAN_OPERATORS[type(expr.op).__name__]
		result = self._value(expr.values[0])
		for operand in expr.values[1:]:
			result = self._builtin(loc, name, [result, self._value(operand)]).value
		return SimpleValue(result)

	def visit_Tuple(self, expr:ast.Tuple) -> SugaredValue:
		elements = []
		for e in expr.elts:
			if isinstance(e, ast.Starred):
				elements.extend(self._unpack(e.value, CallsiteDescriptor.forward_all()))
			else:
				elements.append(self._sugared(e))
		return TupleValue(elements)

	def visit_IfExp(self, expr:ast.IfExp) -> SugaredValue:
		cond = self._value(expr.test)
		node = self.graph.append_node(IF, [cond], [], loc=self._loc(expr))
		results = []
		for branch in (expr.body, expr.orelse):
			block = node.add_block()
			with self._entering(block):
				result = self._value(branch)
			block.register_output(result)
			results.append(result)
		_agree("the conditional expression", *results, self._loc(expr))
		return SimpleValue(node.add_output(results[0].type))


def compile_function(definition:Def, resolver, *, operators:OperatorTable=DEFAULT_OPERATORS, report=None) -> Graph:
	"""
	Lower one definition to a stand-alone graph. There is no receiver:
	every parameter becomes a graph input, and free names go to the resolver.
	"""
	if report is not None:
		report.info("Compiling function", definition.name)
	method = Method(None, definition.name, operators)
	Lowering(definition, method, as_resolver(resolver)).lower()
	return method.graph

def define_methods_in_module(module:Module, definitions:Definitions, resolver, self_value:Optional[SugaredValue]=None, *, report=None) -> list[Method]:
	"""
	Compile each definition, in order, into a method of the module.

	If self_value is given, the first parameter of each definition is bound to it
	and never reaches the graph's inputs nor the resolver. Each method is registered
	only once it has compiled completely. Definitions may also be given as script text.
	"""
	if isinstance(definitions, str):
		definitions = parse_text(definitions)
	resolver = as_resolver(resolver)
	methods = []
	for dfn in definitions:
		if report is not None:
			report.info("Compiling method", dfn.name, "into", module.name)
		method = Method(module, dfn.name, module.operators)
		Lowering(dfn, method, resolver, self_value).lower()
		methods.append(module.register_method(method))
	return methods

def compile_functions(definitions:Definitions, resolver=None, *, operators:OperatorTable=DEFAULT_OPERATORS, report=None) -> FunctionTable:
	""" Compile a batch of free-standing functions in order; each may call those before it. """
	if isinstance(definitions, str):
		definitions = parse_text(definitions)
	table = FunctionTable()
	scope = ChainResolver(table, as_resolver(resolver))
	for dfn in definitions:
		table.define(dfn.name, compile_function(dfn, scope, operators=operators, report=report), dfn.loc)
	return table
