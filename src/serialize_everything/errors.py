from __future__ import annotations


class SerializeError(Exception):
	"""Base class for errors raised by serialize_everything."""


class StructuralError(SerializeError):
	"""The value graph has a shape the encoder cannot represent."""


class NonTerminationError(StructuralError):
	"""Resolving the reference table did not settle within the allowed passes."""


class DecodeError(SerializeError):
	"""Reconstructing a value from its serialized text failed.

	The underlying exception is available as ``__cause__``.
	"""
