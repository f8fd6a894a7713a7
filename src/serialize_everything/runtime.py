"""Helpers called from generated reconstruction programs.

Generated programs import this module under a prefixed alias and reach
everything through it, so none of these names can collide with the names a
caller passes in ``closure``.
"""

from __future__ import annotations

import itertools
import linecache
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from serialize_everything.paths import assign_at
from serialize_everything.types import (
	Array,
	GetFunc,
	PathKey,
	Record,
	Symbol,
	symbol_from_key_text,
)

__all__ = [
	"Array",
	"Record",
	"Symbol",
	"apply_patches",
	"define",
	"register_source",
	"restore_containers",
]

logger = logging.getLogger(__name__)

# Module name reconstructed definitions report in ``__module__``.
RECONSTRUCTED_MODULE = "serialize_everything.reconstructed"

_source_ids = itertools.count(1)


def register_source(text: str, kind: str = "definition") -> str:
	"""Make ``text`` visible to ``linecache`` under a fresh pseudo filename.

	Tracebacks then show the reconstructed lines, and ``inspect.getsource``
	works on reconstructed functions, so they can be encoded again.
	"""
	filename = f"<serialize-everything:{kind}-{next(_source_ids)}>"
	linecache.cache[filename] = (
		len(text),
		None,
		text.splitlines(keepends=True),
		filename,
	)
	return filename


def define(context: Mapping[str, Any], text: str, name: str | None = None) -> Any:
	"""Compile a captured definition with ``context`` as its globals.

	``name`` is the binding a ``def``/``class`` statement creates; without it
	``text`` is evaluated as an expression.
	"""
	namespace = dict(context)
	namespace.setdefault("__name__", RECONSTRUCTED_MODULE)
	filename = register_source(text)
	if name is None:
		return eval(compile(text, filename, "eval"), namespace)
	exec(compile(text, filename, "exec"), namespace)
	return namespace[name]


def restore_containers(
	value: Any, *, arrays: bool = False, parents: tuple[Any, ...] = ()
) -> Any:
	"""Turn the plain containers of a freshly evaluated source into decoded shapes.

	Dicts become ``Record`` with reserved ``[Symbol...]`` keys turned back into
	symbol keys. Lists stay lists, or become ``Array`` when ``arrays`` is set.
	Values that are already decoded (references taken from the context) are
	returned untouched.
	"""
	if any(value is parent for parent in parents):
		return value
	if type(value) is dict:
		record = Record()
		for key, item in value.items():
			if isinstance(key, str) and (symbol := symbol_from_key_text(key)) is not None:
				key = symbol
			record[key] = restore_containers(item, arrays=arrays, parents=(*parents, value))
		return record
	if type(value) is list:
		items = [restore_containers(item, arrays=arrays, parents=(*parents, value)) for item in value]
		return Array(items) if arrays else items
	return value


def apply_patches(
	root: Any,
	patches: Iterable[tuple[list[PathKey], Any]],
	get: GetFunc,
) -> Any:
	"""Merge each context's members onto the value found at its path.

	A plain list cannot hold members, so a list target is replaced by an
	``Array`` first. Returns the root, which changes when the root itself is
	such a list.
	"""
	for path, context in patches:
		target = get(root, path) if path else root
		if target is None:
			logger.debug("Skipping extra context for path %r: nothing found there", path)
			continue
		if type(target) is list:
			promoted = Array(target)
			if not path:
				root = promoted
			else:
				parent = get(root, path[:-1]) if len(path) > 1 else root
				assign_at(parent, path[-1], promoted)
			target = promoted
		for key, member in context.items():
			if isinstance(key, str):
				setattr(target, key, member)
	return root
