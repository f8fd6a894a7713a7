"""Debug traces, printed when ``debug`` is enabled."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text

console = Console(stderr=True)


def _title(title: str) -> Text:
	return Text(f"-------------- {title} --------------", style="bold cyan")


def trace(title: str, *values: Any) -> None:
	# Traced values are user data: never read them as console markup.
	console.log(_title(title), *values, markup=False)


def trace_program(title: str, program: str, *, pretty_print: bool, **context: Any) -> None:
	"""Show a generated program, highlighted or as the single line that gets compiled."""
	console.log(_title(title))
	if pretty_print:
		console.print(Syntax(program, "python", line_numbers=True))
	else:
		console.print(repr(program), markup=False, highlight=False, soft_wrap=True)
	for name, value in context.items():
		console.log(f"{name} =", value, markup=False)
