import pytest
from serialize_everything import DecodeOptions, EncodeOptions
from serialize_everything.env import ENV_SERIALIZE_EVERYTHING_DEBUG, debug_enabled
from serialize_everything.paths import get_by_path


class TestOptions:
	def test_defaults(self):
		options = EncodeOptions()
		assert options.token_start == "$PYS$"
		assert options.token_end == "$PYE$"
		assert options.variable_prefix == "_PYV_"
		assert options.preserve_class_constructor is False
		assert options.debug is False
		assert options.max_passes == 1000

		decode_options = DecodeOptions()
		assert decode_options.get is get_by_path
		assert decode_options.closure == {}
		assert decode_options.pretty_print is True

	@pytest.mark.parametrize(
		("overrides", "message"),
		[
			({"token_start": ""}, "must not be empty"),
			({"token_end": ""}, "must not be empty"),
			({"token_start": "@@", "token_end": "@@"}, "must differ"),
			({"variable_prefix": "1v"}, "valid Python identifier"),
			({"variable_prefix": "v-"}, "valid Python identifier"),
		],
	)
	def test_invalid_markers(self, overrides, message):
		with pytest.raises(ValueError, match=message):
			EncodeOptions(**overrides)
		with pytest.raises(ValueError, match=message):
			DecodeOptions(**overrides)

	def test_max_passes(self):
		with pytest.raises(ValueError, match="at least 1"):
			EncodeOptions(max_passes=0)


class TestDebugEnv:
	def test_unset(self):
		assert debug_enabled() is False

	@pytest.mark.parametrize("value", ["1", "true", "yes"])
	def test_enabled(self, monkeypatch: pytest.MonkeyPatch, value):
		monkeypatch.setenv(ENV_SERIALIZE_EVERYTHING_DEBUG, value)
		assert debug_enabled() is True
		assert EncodeOptions().debug is True
		assert DecodeOptions().debug is True

	@pytest.mark.parametrize("value", ["", "0", "false", "False"])
	def test_disabled(self, monkeypatch: pytest.MonkeyPatch, value):
		monkeypatch.setenv(ENV_SERIALIZE_EVERYTHING_DEBUG, value)
		assert debug_enabled() is False
		assert EncodeOptions().debug is False
