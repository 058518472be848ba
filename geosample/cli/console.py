"""Console output for the CLI, wrapping rich."""

import json
from typing import Any

from rich.console import Console as RichConsole
from rich.table import Table


class Console:
    """CLI output manager wrapping rich.

    Data goes to stdout, diagnostics to stderr, so `geosample sample ... >
    out.json` captures only the sample.
    """

    def __init__(self, *, force_terminal: bool | None = None) -> None:
        self._console = RichConsole(force_terminal=force_terminal, stderr=False)
        self._err_console = RichConsole(force_terminal=force_terminal, stderr=True)

    def success(self, message: str) -> None:
        self._err_console.print(f"[green]✓[/green] {message}")

    def error(self, message: str, *, hint: str | None = None) -> None:
        """Print an error message to stderr."""
        self._err_console.print(f"[red]✗[/red] {message}")
        if hint:
            self._err_console.print(f"  [dim]{hint}[/dim]")

    def json(self, data: Any) -> None:
        """Print `data` as JSON; highlighted on a terminal, raw otherwise."""
        text = json.dumps(data, ensure_ascii=False)
        if self._console.is_terminal:
            self._console.print_json(text)
        else:
            self._console.out(text, highlight=False)

    def records(self, fields: list[str], records: list[dict[str, Any]], *, title: str) -> None:
        """Render sampled records as a table, one column per field."""
        table = Table(title=title, show_lines=False)
        for name in fields:
            table.add_column(name, overflow="fold")
        for record in records:
            table.add_row(*("" if record.get(name) is None else str(record.get(name)) for name in fields))
        self._console.print(table)


_console: Console | None = None


def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console()
    return _console
