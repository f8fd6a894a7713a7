from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from serialize_everything.env import debug_enabled
from serialize_everything.paths import get_by_path
from serialize_everything.types import GetFunc

TOKEN_START = "$PYS$"
TOKEN_END = "$PYE$"
VARIABLE_PREFIX = "_PYV_"


def _check_markers(token_start: str, token_end: str, variable_prefix: str) -> None:
	if not token_start or not token_end:
		raise ValueError("token_start and token_end must not be empty")
	if token_start == token_end:
		raise ValueError("token_start and token_end must differ")
	if not f"{variable_prefix}ref1".isidentifier():
		raise ValueError(
			f"variable_prefix {variable_prefix!r} does not start a valid Python identifier"
		)


@dataclass(slots=True)
class EncodeOptions:
	"""
	Options for ``encode``.

	Attributes:
	    token_start (str): Marks the start of a code fragment inside the text.
	    token_end (str): Marks the end of a code fragment inside the text.
	    variable_prefix (str): Prefix of generated reference names. Must be a
	        valid start of a Python identifier.
	    preserve_class_constructor (bool): Keep ``__init__`` when copying
	        class members down onto instances.
	    debug (bool): Print traces of each encoding step.
	    max_passes (int): Upper bound on passes over the extra-context records.
	"""

	token_start: str = TOKEN_START
	token_end: str = TOKEN_END
	variable_prefix: str = VARIABLE_PREFIX
	preserve_class_constructor: bool = False
	debug: bool = field(default_factory=debug_enabled)
	max_passes: int = 1000

	def __post_init__(self) -> None:
		_check_markers(self.token_start, self.token_end, self.variable_prefix)
		if self.max_passes < 1:
			raise ValueError("max_passes must be at least 1")


@dataclass(slots=True)
class DecodeOptions:
	"""
	Options for ``decode``.

	``token_start``, ``token_end`` and ``variable_prefix`` must match the ones
	the text was encoded with.

	Attributes:
	    get (GetFunc): Reads the value at a path; used to locate the targets of
	        extra-context records.
	    closure (Mapping[str, Any]): Names made available to reconstructed code.
	        Functions that use globals or modules need them passed here.
	    pretty_print (bool): Print generated programs with syntax highlighting
	        in debug traces instead of as a single escaped line.
	"""

	token_start: str = TOKEN_START
	token_end: str = TOKEN_END
	variable_prefix: str = VARIABLE_PREFIX
	debug: bool = field(default_factory=debug_enabled)
	get: GetFunc = get_by_path
	closure: Mapping[str, Any] = field(default_factory=dict)
	pretty_print: bool = True

	def __post_init__(self) -> None:
		_check_markers(self.token_start, self.token_end, self.variable_prefix)
