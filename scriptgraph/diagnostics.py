import sys, random

from .errors import CompilationError, CapabilityError, UnresolvedNameError, ArityMismatchError, TypeMismatchError
from .location import SourceRange

class TooManyIssues(Exception):
	pass

def _outburst():
	particle = ["Oh, ", "Well, ", "Hmm. ", "", ""]

	minced_oaths = [
		'Bother', 'Blast', 'Botheration', 'Confound it', 'Dash it all',
		'Fiddlesticks', 'Good Grief', 'Great Scott', 'Heavens',
		'Nuts', 'Rats', 'Shucks', 'Thunderation', 'Zounds',
	]

	resignations = [
		'That graph will not be built today.',
		'I cannot lower this.',
		'Something here does not add up.',
		'I need a hand with this one.',
	]

	return "%s%s! %s"%tuple(map(random.choice, (particle, minced_oaths, resignations)))

class Report:
	"""
	Where the embedding environment gathers what went wrong.
	The compiler itself raises at the first problem; whoever calls it
	decides whether to file the problem here and carry on with other work.
	"""
	_issues : list["Pic"]

	def __init__(self, *, verbose:int=0, max_issues=3):
		self._verbose = verbose or 0   # Because None is incomparable.
		self._issues = []
		self._max_issues = max_issues

	def ok(self): return not self._issues
	def sick(self): return bool(self._issues)

	@property
	def issues(self) -> list["Pic"]: return list(self._issues)

	def issue(self, it:"Pic"):
		self._issues.append(it)
		if len(self._issues) == self._max_issues:
			raise TooManyIssues(self)

	def reset(self):
		self._issues.clear()

	def info(self, *args):
		if self._verbose:
			print(*args, file=sys.stderr)

	def complain_to_console(self):
		""" Emit all the issues to the console. """
		_bemoan(self._issues)

	def assert_no_issues(self, message):
		""" Does what it says on the tin """
		if self._issues:
			self.complain_to_console()
			raise AssertionError(_outburst()+" "+message)

	# Methods the compiler's callers are likely to use:

	def compile_error(self, ex:CompilationError):
		intro = "Compiling stopped here: " + ex.message
		self.issue(Pic(intro, [Annotation(ex.loc, _caption(ex))], _advice(ex)))

	def cannot_read(self, path, ex:OSError):
		self.issue(Pic("Could not read %s: %s" % (path, ex.strerror or ex), []))

def _caption(ex:CompilationError) -> str:
	if isinstance(ex, CapabilityError): return "this is a " + ex.kind
	if isinstance(ex, UnresolvedNameError): return "nothing is called '%s'" % ex.name
	if isinstance(ex, ArityMismatchError): return "%d result(s) here" % ex.actual
	if isinstance(ex, TypeMismatchError): return "the paths meet here"
	return ""

def _advice(ex:CompilationError) -> list[str]:
	if isinstance(ex, ArityMismatchError) and not ex.at_least:
		return ["The number of names on the left must match the number of results on the right."]
	return []


class Annotation:
	loc: SourceRange
	caption: str
	def __init__(self, loc:SourceRange, caption:str=""):
		self.loc = loc
		self.caption = caption
	def illustrate(self):
		return self.loc.illustrate(self.caption)

class Pic:
	def __init__(self, intro:str, anns:list[Annotation], footer=()):
		self._intro, self._anns, self._footer = intro, anns, footer
	@property
	def description(self): return self._intro
	def as_text(self):
		lines = [self._intro, ""]
		origin = None
		for ann in self._anns:
			if ann.loc.origin is not origin:
				origin = ann.loc.origin
				lines.append(str(ann.loc))
			lines.append(ann.illustrate())
		lines.extend(self._footer)
		return '\n'.join(lines)

def _bemoan(issues):
	""" Emit all the issues to the console. """
	if issues:
		print("*"*60, file=sys.stderr)
		print(_outburst(), file=sys.stderr)
	for i in issues:
		print("  -"*20, file=sys.stderr)
		print(i.as_text(), file=sys.stderr)
	sys.stderr.flush()
