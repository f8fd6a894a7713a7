from __future__ import annotations

import ast
import inspect
import json
import re
import types as pytypes
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, TypeAlias

PathKey: TypeAlias = str | int
Path: TypeAlias = list[PathKey]
GetFunc: TypeAlias = Callable[[Any, "list[PathKey]"], Any]


class Sentinel:
	def __init__(self, name: str) -> None:
		self.name = name

	def __repr__(self) -> str:
		return self.name

	def __bool__(self) -> bool:
		return False


# Marks a member that has no wire representation and must be left out.
ABSENT: Any = Sentinel("ABSENT")


# =============================================================================
# Symbols
# =============================================================================


class Symbol:
	"""A unique key or value that compares by identity.

	- ``Symbol("desc")`` creates a new local symbol, described but unregistered.
	- ``Symbol.for_key("k")`` returns the symbol registered under ``k``,
	  creating it on first use. The same key always yields the same symbol.
	- ``Symbol.well_known("iterator")`` (or ``Symbol.iterator``) returns one of
	  the predefined symbols.
	"""

	__slots__: tuple[str, ...] = ("description", "_key", "_well_known")

	_registry: ClassVar[dict[str, Symbol]] = {}
	_predefined: ClassVar[dict[str, Symbol]] = {}

	iterator: ClassVar[Symbol]
	async_iterator: ClassVar[Symbol]
	has_instance: ClassVar[Symbol]
	to_primitive: ClassVar[Symbol]
	to_string_tag: ClassVar[Symbol]

	description: str | None
	_key: str | None
	_well_known: str | None

	def __init__(self, description: str | None = None) -> None:
		self.description = description
		self._key = None
		self._well_known = None

	@classmethod
	def for_key(cls, key: str) -> Symbol:
		symbol = cls._registry.get(key)
		if symbol is None:
			symbol = cls(key)
			symbol._key = key
			cls._registry[key] = symbol
		return symbol

	@classmethod
	def well_known(cls, name: str) -> Symbol:
		try:
			return cls._predefined[name]
		except KeyError:
			raise KeyError(f"Unknown well-known symbol: {name!r}") from None

	@classmethod
	def _predefine(cls, name: str) -> Symbol:
		symbol = cls(f"Symbol.{name}")
		symbol._well_known = name
		cls._predefined[name] = symbol
		setattr(cls, name, symbol)
		return symbol

	@property
	def key(self) -> str | None:
		"""Registry key, for symbols created through ``for_key``."""
		return self._key

	@property
	def well_known_name(self) -> str | None:
		return self._well_known

	def __repr__(self) -> str:
		if self._well_known is not None:
			return f"Symbol.{self._well_known}"
		if self._key is not None:
			return f"Symbol.for_key({self._key!r})"
		return f"Symbol({self.description!r})"

	def __reduce__(self) -> Any:
		if self._well_known is not None:
			return (Symbol.well_known, (self._well_known,))
		if self._key is not None:
			return (Symbol.for_key, (self._key,))
		return (Symbol, (self.description,))


for _name in ("iterator", "async_iterator", "has_instance", "to_primitive", "to_string_tag"):
	Symbol._predefine(_name)  # pyright: ignore[reportPrivateUsage]
del _name


_WELL_KNOWN_KEY = re.compile(r"^\[Symbol\.(\w+)\]$")
_REGISTERED_KEY = re.compile(r"^\[Symbol\.for_key\((?P<literal>(['\"]).*\2)\)\]$", re.DOTALL)


def symbol_key_text(symbol: Symbol) -> str | None:
	"""Reserved bracket-syntax key standing in for a symbol key.

	Only well-known and registered symbols have one; anything else cannot be
	recreated on the other side.
	"""
	if symbol.well_known_name is not None:
		return f"[Symbol.{symbol.well_known_name}]"
	if symbol.key is not None:
		return f"[Symbol.for_key({symbol.key!r})]"
	return None


def symbol_from_key_text(text: str) -> Symbol | None:
	"""Inverse of ``symbol_key_text``; ``None`` for ordinary string keys."""
	if not text.startswith("[Symbol."):
		return None
	if (match := _WELL_KNOWN_KEY.match(text)) is not None:
		name = match.group(1)
		if name in Symbol._predefined:  # pyright: ignore[reportPrivateUsage]
			return Symbol.well_known(name)
		return None
	if (match := _REGISTERED_KEY.match(text)) is not None:
		key = ast.literal_eval(match.group("literal"))
		if isinstance(key, str):
			return Symbol.for_key(key)
	return None


# =============================================================================
# Decoded containers
# =============================================================================


def _is_method(value: Any) -> bool:
	if not inspect.isfunction(value):
		return False
	code = value.__code__
	return code.co_argcount > 0 and code.co_varnames[0] == "self"


def _bind(value: Any, holder: Any) -> Any:
	if isinstance(value, classmethod):
		return pytypes.MethodType(value.__func__, holder)
	if _is_method(value):
		return pytypes.MethodType(value, holder)
	return value


class Record(dict[Any, Any]):
	"""A decoded keyed record.

	Behaves as a plain ``dict`` and also exposes string keys as attributes.
	Functions whose first parameter is ``self``, and class methods, are bound
	to the record when read as attributes, so flattened instances keep their
	methods working.
	"""

	__slots__: tuple[str, ...] = ()

	def __getattr__(self, name: str) -> Any:
		try:
			value = self[name]
		except KeyError:
			raise AttributeError(
				f"{type(self).__name__!r} object has no attribute {name!r}"
			) from None
		return _bind(value, self)

	def __setattr__(self, name: str, value: Any) -> None:
		self[name] = value

	def __delattr__(self, name: str) -> None:
		try:
			del self[name]
		except KeyError:
			raise AttributeError(name) from None


class Array(list[Any]):
	"""A decoded ordered sequence that can also carry named members.

	Member functions whose first parameter is ``self``, and class methods,
	come back bound, as on ``Record``.
	"""

	def __getattribute__(self, name: str) -> Any:
		value = list.__getattribute__(self, name)
		return _bind(value, self)

	def __repr__(self) -> str:
		members = vars(self)
		if not members:
			return f"Array({list.__repr__(self)})"
		return f"Array({list.__repr__(self)}, {members!r})"


# =============================================================================
# Document model
# =============================================================================


@dataclass(slots=True)
class Patch:
	"""Extra members of a sequence or executable value, applied after decoding.

	``context`` holds the live members until the encoder moves them into the
	reference table; ``ref`` then names the reference entry holding them.
	``owner`` is the live object the members were read from and never leaves
	the process.
	"""

	path: Path
	context: dict[Any, Any] | None = None
	ref: str | None = None
	owner: Any = field(default=None, repr=False, compare=False)

	def to_json(self) -> dict[str, Any]:
		return {"path": list(self.path), "ref": self.ref}


@dataclass(slots=True)
class ValueRef:
	variable: str
	code: str = ""

	def to_json(self) -> dict[str, Any]:
		return {"variable": self.variable, "code": self.code}


@dataclass(slots=True)
class Document:
	source: str
	patches: list[Patch] = field(default_factory=list)
	refs: list[ValueRef] = field(default_factory=list)

	def to_json(self) -> str:
		return json.dumps(
			{
				"source": self.source,
				"patches": [patch.to_json() for patch in self.patches],
				"refs": [ref.to_json() for ref in self.refs],
			},
			ensure_ascii=False,
		)

	@staticmethod
	def from_json(text: str) -> Document:
		raw = json.loads(text)
		if not isinstance(raw, dict) or not isinstance(raw.get("source"), str):
			raise ValueError("Serialized document must be an object with a 'source' string")
		patches = [
			Patch(path=list(entry["path"]), ref=entry["ref"])
			for entry in raw.get("patches") or []
		]
		refs = [
			ValueRef(variable=entry["variable"], code=entry["code"])
			for entry in raw.get("refs") or []
		]
		return Document(source=raw["source"], patches=patches, refs=refs)
