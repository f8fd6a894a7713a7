"""Reconstruction of live values from text produced by ``encode``.

Each document (the main one and every reference entry) is rendered into a
small Python module from ``PROGRAM_TEMPLATE``. The JSON source becomes a
Python expression in which token fragments are written out as code instead
of strings; executing the module and calling its program function with the
environment and an options object yields the value.
"""

from __future__ import annotations

import dataclasses
import json
import keyword
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from serialize_everything.errors import DecodeError
from serialize_everything.options import DecodeOptions
from serialize_everything.runtime import RECONSTRUCTED_MODULE, register_source
from serialize_everything.templates.program import PROGRAM_TEMPLATE
from serialize_everything.trace import trace, trace_program
from serialize_everything.types import Document, GetFunc

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProgramOptions:
	"""Options object handed to generated programs."""

	get: GetFunc


def decode(text: str, options: DecodeOptions | None = None, **overrides: Any) -> Any:
	"""Rebuild the value serialized in ``text``.

	Keyword overrides are applied on top of ``options``::

	    decode(text, closure={"math": math})

	Raises ``DecodeError`` when the text is malformed or the generated code
	fails to compile or run; the original exception is its ``__cause__``.
	"""
	options = options or DecodeOptions()
	if overrides:
		options = dataclasses.replace(options, **overrides)
	if not text:
		return None

	document = parse_document(text, "document")
	closure = dict(options.closure)
	nested = {ref.variable: parse_document(ref.code, ref.variable) for ref in document.refs}
	resolved: dict[str, Any] = {}

	def resolve(variable: str, waiting: tuple[str, ...]) -> None:
		if variable in resolved:
			return
		if variable in waiting:
			raise DecodeError(f"Reference {variable} depends on itself")
		for dependency in _dependencies(nested[variable], nested, options):
			resolve(dependency, (*waiting, variable))
		resolved[variable] = reconstruct(
			nested[variable],
			{**resolved, **closure},
			options,
			enable_patches=False,
			reference=True,
			label=variable,
		)

	# Entries mostly depend on the ones allocated after them, so start from the
	# end; a shared entry allocated earlier is resolved on demand.
	for ref in reversed(document.refs):
		resolve(ref.variable, ())
	return reconstruct(
		document,
		{**closure, **resolved},
		options,
		enable_patches=True,
		reference=False,
		label="document",
	)


def _dependencies(
	document: Document, variables: Mapping[str, Any], options: DecodeOptions
) -> list[str]:
	return [
		variable
		for variable in variables
		if f"{options.token_start}{variable}{options.token_end}" in document.source
	]


def parse_document(text: str, label: str) -> Document:
	try:
		return Document.from_json(text)
	except (ValueError, KeyError, TypeError) as exc:
		logger.exception("Malformed serialized %s", label)
		raise DecodeError(f"Malformed serialized {label}: {exc}") from exc


def reconstruct(
	document: Document,
	context: Mapping[str, Any],
	options: DecodeOptions,
	*,
	enable_patches: bool,
	reference: bool,
	label: str = "document",
) -> Any:
	"""Compile and run the program for one document against ``context``."""
	vp = options.variable_prefix
	try:
		program = render_program(
			document,
			context,
			options,
			enable_patches=enable_patches,
			reference=reference,
		)
		if options.debug:
			trace_program(
				f"decode({label})",
				program,
				pretty_print=options.pretty_print,
				context=dict(context),
			)
			filename = register_source(program, "program")
		else:
			filename = f"<serialize-everything:program:{label}>"
		namespace: dict[str, Any] = {"__name__": RECONSTRUCTED_MODULE}
		exec(compile(program, filename, "exec"), namespace)
		result = namespace[f"{vp}program"](context, ProgramOptions(get=options.get))
	except Exception as exc:
		logger.exception("Failed to reconstruct %s", label)
		raise DecodeError(f"Failed to reconstruct {label}: {exc}") from exc
	if options.debug:
		trace(f"decode({label}) result", result)
	return result


def render_program(
	document: Document,
	context: Mapping[str, Any],
	options: DecodeOptions,
	*,
	enable_patches: bool,
	reference: bool,
) -> str:
	names = [
		name
		for name in context
		if isinstance(name, str) and name.isidentifier() and not keyword.iskeyword(name)
	]
	source = emit_source(json.loads(document.source), options)
	patches: list[tuple[list[Any], str]] = []
	if enable_patches:
		for patch in document.patches:
			ref = unwrap_token(patch.ref, options)
			if ref is None:
				logger.debug("Ignoring patch at %r without a reference", patch.path)
				continue
			patches.append((patch.path, ref))
	return PROGRAM_TEMPLATE.render(
		vp=options.variable_prefix,
		names=names,
		source=source,
		patches=patches,
		arrays=reference,
	)


def unwrap_token(value: Any, options: DecodeOptions) -> str | None:
	"""Code inside a token-wrapped string, or ``None`` for ordinary strings."""
	if not isinstance(value, str):
		return None
	start, end = options.token_start, options.token_end
	if len(value) >= len(start) + len(end) and value.startswith(start) and value.endswith(end):
		return value[len(start) : len(value) - len(end)]
	return None


def emit_source(node: Any, options: DecodeOptions) -> str:
	"""Write parsed JSON back out as a Python expression.

	Token-wrapped strings lose their quoting and become code; everything else
	becomes the equivalent Python literal.
	"""
	out: list[str] = []
	_emit(node, out, options)
	return "".join(out)


def _emit(node: Any, out: list[str], options: DecodeOptions) -> None:
	if isinstance(node, str):
		code = unwrap_token(node, options)
		out.append(repr(node) if code is None else code)
	elif isinstance(node, list):
		out.append("[")
		for index, item in enumerate(node):
			if index:
				out.append(", ")
			_emit(item, out, options)
		out.append("]")
	elif isinstance(node, dict):
		out.append("{")
		for index, (key, value) in enumerate(node.items()):
			if index:
				out.append(", ")
			out.append(repr(key))
			out.append(": ")
			_emit(value, out, options)
		out.append("}")
	else:
		# None, bool, int, float
		out.append(repr(node))
