"""
This compiles scripts into graphs.

{0}

For example:

    scriptgraph model.py

will compile every function in model.py and print the resulting graphs,
or else try to explain why not. Built-in operators are available by name
(`relu(x)`) or through `ops` (`ops.relu(x)`), and each function may call
the ones defined before it.

    scriptgraph -h

will explain all the arguments.
"""
import sys, argparse
from pathlib import Path

parser = argparse.ArgumentParser(
	prog="scriptgraph",
	description="Compile script functions into IR graphs.",
)
parser.add_argument("program", help="a file of script function definitions")
parser.add_argument('-c', "--check", action="store_true", help="Compile everything but print no graphs.")
parser.add_argument('-f', "--function", action="append", help="Print only this function's graph. May be repeated.")
parser.add_argument('-v', "--verbose", action="count", help="Mention each definition while compiling it.")

def run(args):
	from .compiler import compile_functions
	from .diagnostics import Report
	from .errors import CompilationError
	from .front_end import parse_file
	from .resolution import BuiltinResolver
	report = Report(verbose=args.verbose)
	try:
		definitions = parse_file(Path.cwd() / args.program)
		table = compile_functions(definitions, BuiltinResolver(), report=report)
	except OSError as ex:
		report.cannot_read(args.program, ex)
	except CompilationError as ex:
		report.compile_error(ex)
	if report.sick():
		report.complain_to_console()
		return 1
	wanted = args.function or table.names()
	for name in wanted:
		if name not in table:
			print("There is no function called %r." % name, file=sys.stderr)
			return 1
	if args.check:
		print("Looks plausible to me.", file=sys.stderr)
	else:
		for name in wanted:
			print("# " + name)
			print(table[name])

def main():
	if len(sys.argv) > 1:
		exit(run(parser.parse_args()))
	else:
		print(__doc__.strip().format(parser.format_usage()))
