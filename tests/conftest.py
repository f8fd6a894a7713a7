from collections.abc import Callable
from typing import Any

import pytest
from serialize_everything import decode, encode
from serialize_everything.env import ENV_SERIALIZE_EVERYTHING_DEBUG


@pytest.fixture(autouse=True)
def _no_debug_env(monkeypatch: pytest.MonkeyPatch):  # pyright: ignore[reportUnusedFunction]
	monkeypatch.delenv(ENV_SERIALIZE_EVERYTHING_DEBUG, raising=False)


@pytest.fixture
def roundtrip() -> Callable[..., Any]:
	def run(value: Any, **decode_options: Any) -> Any:
		return decode(encode(value), **decode_options)

	return run
