"""Flattening of inherited structure.

``expand_inherited`` turns an arbitrary value into plain ``dict``/``list``
containers whose members include everything the value inherits from its
classes, so the encoded form does not depend on those classes existing where
it is decoded. Members that plain containers cannot carry (named members of a
sequence, custom attributes of a function) are pushed into a sink of
``Patch`` records instead.
"""

from __future__ import annotations

import datetime as dt
import functools
import inspect
import logging
import re
from collections.abc import Mapping, Sequence, Set
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from types import ModuleType
from typing import Any

from serialize_everything.types import (
	ABSENT,
	Patch,
	PathKey,
	Symbol,
	symbol_key_text,
)

logger = logging.getLogger(__name__)

# Largest integer a double represents exactly; anything beyond travels as text.
MAX_SAFE_INTEGER = 2**53 - 1

# Classes from these modules are the universal base shapes (object, dict,
# list, the collection ABCs...). Their members are never copied down.
_BASE_SHAPE_MODULES = frozenset(
	{
		"builtins",
		"abc",
		"_abc",
		"collections",
		"collections.abc",
		"_collections_abc",
		"typing",
	}
)


class LeafKind(Enum):
	NULL = "null"
	TEXT = "text"
	NUMERIC = "numeric"
	BOOLEAN = "boolean"
	INSTANT = "instant"
	PATTERN = "pattern"
	BIG_INTEGER = "big_integer"
	SYMBOL = "symbol"
	ERROR = "error"
	EXECUTABLE = "executable"
	CONTAINER = "container"


def classify(value: Any) -> LeafKind:
	# bool before int: bool is an int subclass
	if value is None:
		return LeafKind.NULL
	if isinstance(value, bool):
		return LeafKind.BOOLEAN
	if isinstance(value, int):
		if abs(value) > MAX_SAFE_INTEGER:
			return LeafKind.BIG_INTEGER
		return LeafKind.NUMERIC
	if isinstance(value, (float, complex, Decimal, Fraction)):
		return LeafKind.NUMERIC
	if isinstance(value, (str, bytes, bytearray)):
		return LeafKind.TEXT
	if isinstance(value, (dt.datetime, dt.date, dt.time)):
		return LeafKind.INSTANT
	if isinstance(value, re.Pattern):
		return LeafKind.PATTERN
	if isinstance(value, Symbol):
		return LeafKind.SYMBOL
	if isinstance(value, BaseException):
		return LeafKind.ERROR
	if (
		inspect.isroutine(value)
		or inspect.isclass(value)
		or isinstance(value, (ModuleType, functools.partial, classmethod, staticmethod))
	):
		return LeafKind.EXECUTABLE
	return LeafKind.CONTAINER


def _is_dunder(name: str) -> bool:
	return name.startswith("__") and name.endswith("__")


def _is_base_shape(cls: type) -> bool:
	return cls.__module__ in _BASE_SHAPE_MODULES


def _is_sequence_like(value: Any) -> bool:
	if isinstance(value, (str, bytes, bytearray)):
		return False
	return isinstance(value, (Sequence, Set))


def pick_inherited(
	source: Any, *, preserve_class_constructor: bool = False
) -> dict[str, Any]:
	"""Members ``source`` gets from its classes, nearest class first.

	Values are read through ``source`` rather than the class, so properties see
	the instance and methods come back bound.
	"""
	target: dict[str, Any] = {}
	for cls in type(source).__mro__:
		if _is_base_shape(cls):
			continue
		for name in vars(cls):
			if name in target:
				continue
			if _is_dunder(name):
				if not (preserve_class_constructor and name == "__init__"):
					continue
			elif name.startswith("_abc_"):
				continue
			try:
				target[name] = getattr(source, name)
			except Exception:
				logger.debug(
					"Skipping member %r of %s: reading it failed",
					name,
					type(source).__qualname__,
					exc_info=True,
				)
	return target


def _own_members(source: Any) -> dict[str, Any]:
	try:
		return dict(vars(source))
	except TypeError:
		return {}


def _path_key(key: str) -> PathKey:
	# "3" and 3 address the same member; paths use the integer form
	if key.isascii() and key.isdigit() and str(int(key)) == key:
		return int(key)
	return key


def _entry_key(key: Any) -> str | Symbol:
	if isinstance(key, (str, Symbol)):
		return key
	return str(key)


def expand_inherited(
	source: Any,
	*,
	parent_path: Sequence[PathKey] = (),
	sink: list[Patch] | None = None,
	preserve_class_constructor: bool = False,
) -> Any:
	"""Normalize ``source`` into plain containers with inherited members copied down.

	Returns ``ABSENT`` for a container already visited on the way from the root.
	Extra-context records are appended to ``sink``, with paths starting at
	``parent_path``.
	"""
	expander = _Expander(
		sink=[] if sink is None else sink,
		preserve_class_constructor=preserve_class_constructor,
	)
	return expander.expand(source, list(parent_path), [])


class _Expander:
	__slots__: tuple[str, ...] = ("sink", "preserve_class_constructor")

	sink: list[Patch]
	preserve_class_constructor: bool

	def __init__(self, sink: list[Patch], preserve_class_constructor: bool) -> None:
		self.sink = sink
		self.preserve_class_constructor = preserve_class_constructor

	def expand(self, source: Any, path: list[PathKey], parents: list[Any]) -> Any:
		kind = classify(source)
		if kind is LeafKind.EXECUTABLE:
			self._capture_executable(source, path)
			return source
		if kind is not LeafKind.CONTAINER:
			return source
		if any(source is parent for parent in parents):
			return ABSENT

		members = {
			**pick_inherited(
				source, preserve_class_constructor=self.preserve_class_constructor
			),
			**_own_members(source),
		}
		children = [*parents, source]

		if _is_sequence_like(source):
			items = [
				self.expand(item, [*path, index], children)
				for index, item in enumerate(source)
			]
			if members:
				self.sink.append(Patch(path=list(path), context=members, owner=source))
			return items

		result: dict[str | Symbol, Any] = {}
		if isinstance(source, Mapping):
			for key, value in source.items():
				self._put(result, _entry_key(key), value, path, children)
		for name, value in members.items():
			self._put(result, name, value, path, children)
		return result

	def _put(
		self,
		result: dict[str | Symbol, Any],
		key: str | Symbol,
		value: Any,
		path: list[PathKey],
		parents: list[Any],
	) -> None:
		if isinstance(key, Symbol):
			# Left live: the encoder hoists these into the reference table and
			# flattens them there, under their full path.
			if symbol_key_text(key) is not None:
				result[key] = value
			return
		result[key] = self.expand(value, [*path, _path_key(key)], parents)

	def _capture_executable(self, source: Any, path: list[PathKey]) -> None:
		func = getattr(source, "__func__", source)
		if inspect.isclass(func) or inspect.ismodule(func):
			return
		members = {
			name: value
			for name, value in getattr(func, "__dict__", {}).items()
			if not _is_dunder(name)
		}
		if members:
			self.sink.append(Patch(path=list(path), context=members, owner=func))
