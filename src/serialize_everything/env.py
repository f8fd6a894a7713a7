from __future__ import annotations

import os

ENV_SERIALIZE_EVERYTHING_DEBUG = "SERIALIZE_EVERYTHING_DEBUG"


def debug_enabled() -> bool:
	value = os.environ.get(ENV_SERIALIZE_EVERYTHING_DEBUG)
	if value is None:
		return False
	return value not in {"", "0", "false", "False"}
