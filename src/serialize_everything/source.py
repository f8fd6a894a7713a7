from __future__ import annotations

import ast
import inspect
import logging
import textwrap
from dataclasses import dataclass
from types import CodeType
from typing import Any

logger = logging.getLogger(__name__)

_DefinitionNode = ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef


@dataclass(frozen=True, slots=True)
class Definition:
	"""Source text that recreates an executable value.

	``name`` is the binding the text defines (``def``/``class`` statements).
	When it is ``None`` the text is a single expression (a lambda).
	"""

	text: str
	name: str | None


def is_class_bound(value: Any) -> bool:
	"""True for class methods, wrapped or already bound to their class."""
	if isinstance(value, classmethod):
		return True
	return inspect.ismethod(value) and inspect.isclass(value.__self__)


def unwrap_executable(value: Any) -> Any:
	if isinstance(value, (classmethod, staticmethod)):
		value = value.__func__
	if inspect.ismethod(value):
		value = value.__func__
	return value


def definition_of(value: Any) -> Definition | None:
	"""Definition text of a function or class; ``None`` when it cannot be recovered.

	Builtins, C extensions, partials and anything compiled without source are
	not introspectable and yield ``None``.
	"""
	fn = unwrap_executable(value)
	if not (inspect.isfunction(fn) or inspect.isclass(fn)):
		return None
	if inspect.isfunction(fn) and fn.__name__ == "<lambda>":
		return _lambda_definition(fn)

	try:
		src = inspect.getsource(fn)
	except (OSError, TypeError):
		logger.debug("No source available for %r", fn)
		return None

	src = textwrap.dedent(src)
	try:
		module = ast.parse(src)
	except SyntaxError:
		logger.debug("Source of %r does not parse on its own", fn)
		return None
	node = next((n for n in module.body if isinstance(n, _DefinitionNode)), None)
	if node is None:
		return None

	# Function decorators are dropped: the value we hold is already the result
	# of applying them. Class decorators are part of the class definition.
	start = node.lineno
	if isinstance(node, ast.ClassDef) and node.decorator_list:
		start = min(d.lineno for d in node.decorator_list)
	lines = src.splitlines(keepends=True)
	text = textwrap.dedent("".join(lines[start - 1 : node.end_lineno]))
	return Definition(text=text, name=node.name)


def _lambda_definition(fn: Any) -> Definition | None:
	try:
		lines, _ = inspect.findsource(fn)
	except (OSError, TypeError):
		logger.debug("No source available for %r", fn)
		return None
	src = "".join(lines)
	try:
		tree = ast.parse(src)
	except SyntaxError:
		return None

	code: CodeType = fn.__code__
	candidates = [
		node
		for node in ast.walk(tree)
		if isinstance(node, ast.Lambda) and node.lineno == code.co_firstlineno
	]
	if len(candidates) > 1:
		# Several lambdas on one line: prefer the one compiling to the same
		# bytecode, then the one with the same parameters.
		candidates = [n for n in candidates if _same_code(src, n, code)] or [
			n for n in candidates if _arg_names(n) == _code_arg_names(code)
		]
	if not candidates:
		return None
	segment = ast.get_source_segment(src, candidates[0])
	if segment is None:
		return None
	return Definition(text=f"({segment})", name=None)


def _arg_names(node: ast.Lambda) -> tuple[str, ...]:
	args = node.args
	names = [a.arg for a in (*args.posonlyargs, *args.args, *args.kwonlyargs)]
	if args.vararg is not None:
		names.append(args.vararg.arg)
	if args.kwarg is not None:
		names.append(args.kwarg.arg)
	return tuple(names)


def _code_arg_names(code: CodeType) -> tuple[str, ...]:
	count = code.co_argcount + code.co_kwonlyargcount
	count += bool(code.co_flags & inspect.CO_VARARGS)
	count += bool(code.co_flags & inspect.CO_VARKEYWORDS)
	return code.co_varnames[:count]


def _same_code(src: str, node: ast.Lambda, code: CodeType) -> bool:
	segment = ast.get_source_segment(src, node)
	if segment is None:
		return False
	try:
		compiled = compile(f"({segment})", "<lambda>", "eval")
	except SyntaxError:
		return False
	inner = next((c for c in compiled.co_consts if isinstance(c, CodeType)), None)
	return inner is not None and inner.co_code == code.co_code
