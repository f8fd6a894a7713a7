"""Encoding of value graphs into self-contained text.

The produced text is a JSON document with three members:

- ``source``: the flattened value as JSON. Values JSON cannot express are
  strings wrapped in the token markers, holding Python code that rebuilds them
  (``$PYS$_PYV_re.compile('x', 32)$PYE$``).
- ``patches``: ``{"path", "ref"}`` records attaching extra members to the
  sequence or function found at ``path`` once the source is rebuilt.
- ``refs``: ``{"variable", "code"}`` entries, each a nested document of the
  same shape (without patches or refs of its own) that rebuilds one value
  bound to ``variable``.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import json
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Any

from serialize_everything.errors import NonTerminationError
from serialize_everything.flatten import LeafKind, classify, expand_inherited
from serialize_everything.options import EncodeOptions
from serialize_everything.paths import find_path
from serialize_everything.source import definition_of, is_class_bound
from serialize_everything.trace import trace
from serialize_everything.types import (
	ABSENT,
	Document,
	Patch,
	PathKey,
	Symbol,
	ValueRef,
	symbol_key_text,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EncodeState:
	"""Accumulators shared by every nested document of a single ``encode`` call."""

	patches: list[Patch] = field(default_factory=list)
	refs: list[ValueRef] = field(default_factory=list)
	# id(owner of extra members) -> reference token
	context_refs: dict[int, str] = field(default_factory=dict)
	# id(value hoisted from a symbol key) -> reference token
	value_refs: dict[int, str] = field(default_factory=dict)
	# ids of the values whose document is being written right now
	in_progress: set[int] = field(default_factory=set)

	def allocate(self, options: EncodeOptions) -> tuple[ValueRef, str]:
		ref = ValueRef(variable=f"{options.variable_prefix}ref{len(self.refs) + 1}")
		self.refs.append(ref)
		return ref, f"{options.token_start}{ref.variable}{options.token_end}"


def encode(value: Any, options: EncodeOptions | None = None, **overrides: Any) -> str:
	"""Serialize ``value`` to text, functions and inherited members included.

	Keyword overrides are applied on top of ``options``::

	    encode(obj, preserve_class_constructor=True)
	"""
	options = options or EncodeOptions()
	if overrides:
		options = dataclasses.replace(options, **overrides)
	document = encode_document(value, options, EncodeState())
	text = document.to_json()
	if options.debug:
		trace("encode(final)", text)
	return text


def encode_document(
	value: Any,
	options: EncodeOptions,
	state: EncodeState,
	*,
	parent_path: list[PathKey] | None = None,
	source_only: bool = False,
) -> Document:
	parent_path = [] if parent_path is None else parent_path
	state.in_progress.add(id(value))
	try:
		full = expand_inherited(
			value,
			parent_path=parent_path,
			sink=state.patches,
			preserve_class_constructor=options.preserve_class_constructor,
		)
		if options.debug:
			trace("encode", parent_path, full)
		wire = _WireWriter(options, state, full, parent_path).convert(full)
	finally:
		state.in_progress.discard(id(value))
	source = json.dumps(None if wire is ABSENT else wire, ensure_ascii=False, allow_nan=False)
	if source_only:
		return Document(source=source)
	_resolve_patches(options, state)
	return Document(source=source, patches=list(state.patches), refs=list(state.refs))


def _resolve_patches(options: EncodeOptions, state: EncodeState) -> None:
	"""Move the context of every patch into the reference table.

	Encoding one context can add patches of its own, so this runs until no
	patch is left without a reference.
	"""
	passes = 0
	while pending := [patch for patch in state.patches if patch.ref is None]:
		passes += 1
		if passes > options.max_passes:
			raise NonTerminationError(
				f"{len(pending)} extra-context record(s) still unresolved after "
				+ f"{options.max_passes} passes"
			)
		for patch in pending:
			patch.ref = _context_ref(patch, options, state)
			patch.context = None


def _context_ref(patch: Patch, options: EncodeOptions, state: EncodeState) -> str:
	key = id(patch.owner) if patch.owner is not None else None
	if key is not None and (token := state.context_refs.get(key)) is not None:
		return token
	ref, token = state.allocate(options)
	if key is not None:
		state.context_refs[key] = token
	if options.debug:
		trace("encode(patch)", patch.path, patch.context)
	ref.code = encode_document(
		patch.context, options, state, parent_path=patch.path, source_only=True
	).to_json()
	return token


def _error_message(exc: BaseException) -> str:
	if len(exc.args) == 1 and isinstance(exc.args[0], str):
		return exc.args[0]
	return str(exc)


def _accepts_message(cls: type[BaseException], message: str) -> bool:
	try:
		cls(message)
	except Exception:
		return False
	return True


class _WireWriter:
	"""Converts a flattened value into JSON-native data with code tokens."""

	options: EncodeOptions
	state: EncodeState
	root: Any
	parent_path: list[PathKey]

	def __init__(
		self,
		options: EncodeOptions,
		state: EncodeState,
		root: Any,
		parent_path: list[PathKey],
	) -> None:
		self.options = options
		self.state = state
		self.root = root
		self.parent_path = parent_path

	def token(self, code: str) -> str:
		return f"{self.options.token_start}{code}{self.options.token_end}"

	def convert(self, value: Any) -> Any:
		if value is ABSENT:
			return ABSENT
		kind = classify(value)
		if kind is not LeafKind.CONTAINER:
			return self.leaf(value, kind)
		if isinstance(value, dict):
			return self._convert_record(value)
		items: list[Any] = []
		for item in value:
			converted = self.convert(item)
			# keep the index: an absent item becomes null
			items.append(None if converted is ABSENT else converted)
		return items

	def _convert_record(self, record: dict[Any, Any]) -> dict[str, Any]:
		result: dict[str, Any] = {}
		for key, value in record.items():
			if isinstance(key, Symbol):
				text = symbol_key_text(key)
				if text is None:
					continue
				converted = self._symbol_member(record, text, value)
				key = text
			else:
				converted = self.convert(value)
			if converted is not ABSENT:
				result[key] = converted
		return result

	def _symbol_member(self, record: dict[Any, Any], key_text: str, value: Any) -> Any:
		if value is None:
			return ABSENT
		kind = classify(value)
		if kind not in (LeafKind.CONTAINER, LeafKind.EXECUTABLE):
			return self.leaf(value, kind)
		if kind is LeafKind.EXECUTABLE and definition_of(value) is None:
			logger.debug("Omitting %r: no definition text available", value)
			return ABSENT
		return self._hoist(record, key_text, value)

	def _hoist(self, record: dict[Any, Any], key_text: str, value: Any) -> Any:
		ident = id(value)
		if ident in self.state.in_progress:
			# Same rule as the flattener's ancestor check: a value reaching
			# itself is left out at the point it closes the loop.
			return ABSENT
		if (token := self.state.value_refs.get(ident)) is not None:
			return token
		found = find_path(self.root, record)
		path = [*self.parent_path, *(found or []), key_text]
		ref, token = self.state.allocate(self.options)
		self.state.value_refs[ident] = token
		if self.options.debug:
			trace("encode(symbol)", path, key_text, value)
		ref.code = encode_document(
			value, self.options, self.state, parent_path=path, source_only=True
		).to_json()
		return token

	def leaf(self, value: Any, kind: LeafKind) -> Any:
		vp = self.options.variable_prefix
		if kind is LeafKind.NULL:
			return self.token("None")
		if kind is LeafKind.BOOLEAN:
			return bool(value)
		if kind is LeafKind.TEXT:
			if isinstance(value, str):
				return str(value)
			ctor = "bytearray" if isinstance(value, bytearray) else "bytes"
			return self.token(f"{vp}builtins.{ctor}.fromhex({value.hex()!r})")
		if kind is LeafKind.NUMERIC:
			return self._number(value)
		if kind is LeafKind.BIG_INTEGER:
			return self.token(f"{vp}builtins.int({str(int(value))!r})")
		if kind is LeafKind.INSTANT:
			return self._instant(value)
		if kind is LeafKind.PATTERN:
			return self.token(f"{vp}re.compile({value.pattern!r}, {int(value.flags)})")
		if kind is LeafKind.SYMBOL:
			return self._symbol(value)
		if kind is LeafKind.ERROR:
			return self._error(value)
		if kind is LeafKind.EXECUTABLE:
			definition = definition_of(value)
			if definition is None:
				logger.debug("Omitting %r: no definition text available", value)
				return ABSENT
			code = f"{vp}rt.define({vp}context, {definition.text!r}, {definition.name!r})"
			if is_class_bound(value):
				# rebound to whatever holds it once decoded
				code = f"{vp}builtins.classmethod({code})"
			return self.token(code)
		raise TypeError(f"Unexpected {kind} value: {type(value)!r}")

	def _number(self, value: Any) -> Any:
		vp = self.options.variable_prefix
		if isinstance(value, int):
			return int(value)
		if isinstance(value, float):
			if math.isfinite(value):
				return float(value)
			return self.token(f"{vp}builtins.float({repr(float(value))!r})")
		if isinstance(value, Decimal):
			return self.token(f"{vp}decimal.Decimal({str(value)!r})")
		if isinstance(value, Fraction):
			return self.token(f"{vp}fractions.Fraction({str(value)!r})")
		return self.token(f"{vp}builtins.complex({str(value)!r})")

	def _instant(self, value: dt.date | dt.time) -> str:
		vp = self.options.variable_prefix
		if isinstance(value, dt.datetime):
			ctor = "datetime"
		elif isinstance(value, dt.date):
			ctor = "date"
		else:
			ctor = "time"
		return self.token(f"{vp}datetime.{ctor}.fromisoformat({value.isoformat()!r})")

	def _symbol(self, symbol: Symbol) -> Any:
		vp = self.options.variable_prefix
		if symbol.well_known_name is not None:
			return self.token(f"{vp}rt.Symbol.well_known({symbol.well_known_name!r})")
		if symbol.key is not None:
			return self.token(f"{vp}rt.Symbol.for_key({symbol.key!r})")
		if symbol.description is not None:
			return self.token(f"{vp}rt.Symbol({symbol.description!r})")
		return ABSENT

	def _error(self, exc: BaseException) -> str:
		vp = self.options.variable_prefix
		cls = type(exc)
		message = _error_message(exc)
		name = "Exception"
		if cls.__module__ == "builtins" and _accepts_message(cls, message):
			name = cls.__name__
		return self.token(f"{vp}builtins.{name}({message!r})")
