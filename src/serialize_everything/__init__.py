"""Serialize arbitrary Python values, functions included, to self-contained text."""

# Entry points
from serialize_everything.decoder import decode as decode
from serialize_everything.encoder import encode as encode

# Errors
from serialize_everything.errors import DecodeError as DecodeError
from serialize_everything.errors import NonTerminationError as NonTerminationError
from serialize_everything.errors import SerializeError as SerializeError
from serialize_everything.errors import StructuralError as StructuralError

# Flattening
from serialize_everything.flatten import LeafKind as LeafKind
from serialize_everything.flatten import classify as classify
from serialize_everything.flatten import expand_inherited as expand_inherited
from serialize_everything.flatten import pick_inherited as pick_inherited

# Options
from serialize_everything.options import TOKEN_END as TOKEN_END
from serialize_everything.options import TOKEN_START as TOKEN_START
from serialize_everything.options import VARIABLE_PREFIX as VARIABLE_PREFIX
from serialize_everything.options import DecodeOptions as DecodeOptions
from serialize_everything.options import EncodeOptions as EncodeOptions

# Paths
from serialize_everything.paths import find_path as find_path
from serialize_everything.paths import get_by_path as get_by_path

# Types
from serialize_everything.types import ABSENT as ABSENT
from serialize_everything.types import Array as Array
from serialize_everything.types import Document as Document
from serialize_everything.types import Patch as Patch
from serialize_everything.types import Record as Record
from serialize_everything.types import Symbol as Symbol
from serialize_everything.types import ValueRef as ValueRef
