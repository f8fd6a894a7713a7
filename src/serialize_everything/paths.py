"""Path helpers shared by the encoder and the reconstructed programs.

A path is a list of keys leading from a root value to one of its members:
mapping keys, sequence indices, or attribute names for anything else (an
``Array`` carrying named members, a function with custom attributes).
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any

from serialize_everything.types import ABSENT, PathKey, symbol_from_key_text


def _is_sequence(value: Any) -> bool:
	return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _index(key: PathKey) -> int | None:
	if isinstance(key, bool):
		return None
	if isinstance(key, int):
		return key
	if key.isascii() and key.isdigit():
		return int(key)
	return None


def resolve_key(container: Mapping[Any, Any], key: PathKey) -> Any:
	"""Find the actual mapping key a path key refers to, or ``ABSENT``."""
	if key in container:
		return key
	if isinstance(key, int) and str(key) in container:
		return str(key)
	if isinstance(key, str):
		symbol = symbol_from_key_text(key)
		if symbol is not None and symbol in container:
			return symbol
	return ABSENT


def _step(current: Any, key: PathKey) -> Any:
	if isinstance(current, Mapping):
		actual = resolve_key(current, key)
		return ABSENT if actual is ABSENT else current[actual]
	if _is_sequence(current):
		index = _index(key)
		if index is not None:
			return current[index] if -len(current) <= index < len(current) else ABSENT
	if isinstance(key, str):
		return getattr(current, key, ABSENT)
	return ABSENT


def get_by_path(obj: Any, path: Sequence[PathKey], default: Any = None) -> Any:
	"""Get the value at ``path`` inside ``obj``; ``default`` when it doesn't exist."""
	if obj is None:
		return default
	if not path:
		return obj
	current = obj
	for key in path:
		if current is None:
			return default
		current = _step(current, key)
		if current is ABSENT:
			return default
	return current


def find_path(
	parent: Any, target: Any, path: list[PathKey] | None = None
) -> list[PathKey] | None:
	"""Path of ``target`` (by identity) inside ``parent``, or ``None``."""
	path = [] if path is None else path
	if parent is target:
		return path
	if isinstance(parent, Mapping):
		items = list(parent.items())
	elif _is_sequence(parent):
		items = list(enumerate(parent))
	else:
		return None
	for key, value in items:
		found = find_path(value, target, [*path, key])
		if found is not None:
			return found
	return None


def assign_at(parent: Any, key: PathKey, value: Any) -> None:
	"""Write ``value`` one step below ``parent``, mirroring ``get_by_path``."""
	if isinstance(parent, MutableMapping):
		actual = resolve_key(parent, key)
		parent[key if actual is ABSENT else actual] = value
		return
	if _is_sequence(parent):
		index = _index(key)
		if index is not None:
			parent[index] = value  # pyright: ignore[reportIndexIssue]
			return
	setattr(parent, str(key), value)
