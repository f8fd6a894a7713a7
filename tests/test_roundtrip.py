import datetime as dt
import math
import re
from decimal import Decimal
from fractions import Fraction

import pytest
from serialize_everything import Array, DecodeError, Record, Symbol, decode, encode


class Base:
	kind = "base"

	def describe(self):
		return f"{self.name} is {self.kind}"


class Child(Base):
	def __init__(self, name):
		self.name = name


class Rectangle:
	def __init__(self, width, height):
		self.width = width
		self.height = height

	@property
	def area(self):
		return self.width * self.height


class Tagged(list):
	pass


class Grouped(list):
	def total(self):
		return sum(self)


class Factory:
	@classmethod
	def make(cls, x):
		return x * 3

	@staticmethod
	def twice(x):
		return x * 2


SCALE = 3

square = lambda x: x * x  # noqa: E731


def circle_area(radius):
	return math.pi * radius * radius


# =============================================================================
# Plain data and leaves
# =============================================================================


def test_plain_data(roundtrip):
	data = {"a": 1, "b": [2, 3, {"c": "x"}], "d": None, "e": True, "f": 3.5}
	assert roundtrip(data) == data


def test_leaves(roundtrip):
	when = dt.datetime(2024, 2, 2, 12, 30, tzinfo=dt.UTC)
	data = {
		"when": when,
		"day": dt.date(2024, 2, 2),
		"at": dt.time(8, 15),
		"pattern": re.compile(r"^a+$", re.MULTILINE),
		"big": 2**80,
		"negative_big": -(2**70),
		"decimal": Decimal("0.10"),
		"fraction": Fraction(2, 3),
		"complex": 1 + 2j,
		"raw": b"\x01\x02",
		"inf": float("-inf"),
	}
	result = roundtrip(data)
	assert result == data
	assert result["when"].tzinfo is not None
	assert math.isnan(roundtrip(float("nan")))


def test_collections_become_lists(roundtrip):
	assert roundtrip((1, 2)) == [1, 2]
	assert sorted(roundtrip({3, 1, 2})) == [1, 2, 3]


def test_errors(roundtrip):
	result = roundtrip({"err": KeyError("missing")})
	assert isinstance(result["err"], KeyError)
	assert result["err"].args == ("missing",)


def test_none_and_native_callables(roundtrip):
	assert roundtrip(None) is None
	assert roundtrip(len) is None
	assert roundtrip({"f": print, "a": 1}) == {"a": 1}


# =============================================================================
# Executables
# =============================================================================


class TestExecutables:
	def test_nested_function(self, roundtrip):
		def greet():
			return "hi"

		result = roundtrip({"a": 1, "child": {"b": 2, "greet": greet}})

		assert result["a"] == 1
		assert result["child"]["b"] == 2
		assert result["child"]["greet"]() == "hi"
		assert result.child.greet() == "hi"

	def test_lambda(self, roundtrip):
		assert roundtrip(square)(4) == 16

	def test_closure_names(self, roundtrip):
		area = roundtrip(circle_area, closure={"math": math})
		assert area(1) == math.pi

	def test_missing_closure_name_fails_on_call(self, roundtrip):
		area = roundtrip(circle_area)
		with pytest.raises(NameError):
			area(1)

	def test_missing_name_at_definition_time(self):
		def scaled(value, factor=SCALE):
			return value * factor

		with pytest.raises(DecodeError) as info:
			decode(encode(scaled))
		assert isinstance(info.value.__cause__, NameError)

	def test_class(self, roundtrip):
		rebuilt = roundtrip(Rectangle)
		assert rebuilt(2, 3).area == 6
		assert rebuilt.__name__ == "Rectangle"

	def test_decoded_functions_encode_again(self, roundtrip):
		def greet(name):
			return f"hello {name}"

		once = roundtrip(greet)
		twice = roundtrip(once)
		assert twice("ada") == "hello ada"


# =============================================================================
# Inherited members
# =============================================================================


class TestInheritedMembers:
	def test_instance_keeps_inherited_members(self, roundtrip):
		result = roundtrip(Child("ada"))

		assert isinstance(result, Record)
		assert result.name == "ada"
		assert result.kind == "base"
		assert result.describe() == "ada is base"
		assert "__init__" not in result

	def test_properties_are_captured_as_values(self, roundtrip):
		assert roundtrip(Rectangle(2, 3)).area == 6

	def test_preserve_class_constructor(self):
		result = decode(encode(Child("ada"), preserve_class_constructor=True))
		assert callable(result["__init__"])

	def test_class_and_static_methods(self, roundtrip):
		result = roundtrip(Factory())
		assert result.make(2) == 6
		assert result.twice(2) == 4

	def test_class_method_decodes_as_class_method(self, roundtrip):
		make = roundtrip(Factory.make)
		assert isinstance(make, classmethod)

		class Holder:
			pass

		Holder.make = make  # pyright: ignore[reportAttributeAccessIssue]
		assert Holder.make(2) == 6  # pyright: ignore[reportAttributeAccessIssue]
		assert isinstance(roundtrip(make), classmethod)


# =============================================================================
# Cycles
# =============================================================================


class TestCycles:
	def test_self_containing_list(self, roundtrip):
		items: list = [1]
		items.append(items)
		assert roundtrip(items) == [1, None]

	def test_self_containing_dict(self, roundtrip):
		record: dict = {"x": 1}
		record["self"] = record
		assert roundtrip(record) == {"x": 1}

	def test_indirect_cycle(self, roundtrip):
		outer: dict = {"inner": {}}
		outer["inner"]["outer"] = outer
		assert roundtrip(outer) == {"inner": {}}

	def test_shared_values_are_copied(self, roundtrip):
		shared = {"v": 1}
		result = roundtrip({"a": shared, "b": shared})
		assert result == {"a": {"v": 1}, "b": {"v": 1}}


# =============================================================================
# Extra context
# =============================================================================


class TestExtraContext:
	def test_sequence_members(self, roundtrip):
		tagged = Tagged([1, 2])
		tagged.label = "numbers"  # pyright: ignore[reportAttributeAccessIssue]

		result = roundtrip({"items": tagged})

		assert isinstance(result["items"], Array)
		assert result["items"] == [1, 2]
		assert result["items"].label == "numbers"

	def test_numeric_looking_keys(self, roundtrip):
		tagged = Tagged([1])
		tagged.label = "first"  # pyright: ignore[reportAttributeAccessIssue]

		result = roundtrip({"1": tagged, "01": [2]})

		assert result["1"].label == "first"
		assert result["01"] == [2]

	def test_root_sequence_members(self, roundtrip):
		tagged = Tagged(["a"])
		tagged.label = "root"  # pyright: ignore[reportAttributeAccessIssue]

		result = roundtrip(tagged)

		assert isinstance(result, Array)
		assert result.label == "root"

	def test_sequence_methods(self, roundtrip):
		result = roundtrip({"group": Grouped([1, 2, 3])})
		assert result["group"].total() == 6

	def test_function_attributes(self, roundtrip):
		def handler():
			return "handled"

		handler.meta = {"retries": 3}  # pyright: ignore[reportFunctionMemberAccess]

		result = roundtrip({"handler": handler})

		assert result["handler"]() == "handled"
		assert result["handler"].meta == {"retries": 3}

	def test_shared_owner_shares_its_members(self, roundtrip):
		def handler():
			return 1

		handler.meta = {"v": 1}  # pyright: ignore[reportFunctionMemberAccess]

		result = roundtrip({"left": handler, "right": handler})

		assert result["left"].meta is result["right"].meta

	def test_nested_extra_context(self, roundtrip):
		def handler():
			return 1

		tagged = Tagged([1, 2])
		tagged.label = "inner"  # pyright: ignore[reportAttributeAccessIssue]
		handler.meta = tagged  # pyright: ignore[reportFunctionMemberAccess]

		result = roundtrip(handler)

		assert result.meta == [1, 2]
		assert result.meta.label == "inner"


# =============================================================================
# Symbols
# =============================================================================


class TestSymbols:
	def test_symbol_values(self, roundtrip):
		result = roundtrip({"registered": Symbol.for_key("rt.value"), "known": Symbol.iterator})
		assert result["registered"] is Symbol.for_key("rt.value")
		assert result["known"] is Symbol.iterator

	def test_local_symbol_values_keep_their_description(self, roundtrip):
		local = Symbol("local")
		result = roundtrip(local)
		assert result is not local
		assert result.description == "local"

	def test_registered_symbol_keys(self, roundtrip):
		key = Symbol.for_key("rt.key")
		result = roundtrip({key: 42, "name": "x"})
		assert result[key] == 42
		assert result.name == "x"
		assert any(k is key for k in result)

	def test_symbol_keyed_containers(self, roundtrip):
		result = roundtrip({"config": {Symbol.for_key("rt.opts"): {"depth": 2}}})
		assert result["config"][Symbol.for_key("rt.opts")]["depth"] == 2

	def test_symbol_keyed_native_callables_are_dropped(self, roundtrip):
		result = roundtrip({Symbol.iterator: len, "a": 1})
		assert result == {"a": 1}
		assert Symbol.iterator not in result

	def test_symbol_keyed_functions(self, roundtrip):
		def iterate():
			return iter([1, 2])

		result = roundtrip({Symbol.iterator: iterate})
		assert list(result[Symbol.iterator]()) == [1, 2]

	def test_local_symbol_keys_are_dropped(self, roundtrip):
		assert roundtrip({Symbol("local"): 1, "a": 2}) == {"a": 2}

	def test_symbol_keys_inside_extra_context(self, roundtrip):
		def handler():
			return 1

		handler.config = {Symbol.for_key("rt.ctx"): {"depth": 2}}  # pyright: ignore[reportFunctionMemberAccess]

		result = roundtrip(handler)

		assert result.config[Symbol.for_key("rt.ctx")].depth == 2

	def test_value_shared_between_extra_contexts(self, roundtrip):
		payload = {"depth": 2}

		def first():
			return 1

		def second():
			return 2

		first.config = {Symbol.for_key("rt.shared"): payload}  # pyright: ignore[reportFunctionMemberAccess]
		second.config = {Symbol.for_key("rt.shared"): payload}  # pyright: ignore[reportFunctionMemberAccess]

		result = roundtrip({"a": first, "b": second})

		key = Symbol.for_key("rt.shared")
		assert result["a"].config[key] == {"depth": 2}
		assert result["a"].config[key] is result["b"].config[key]
