"""Terminal rendering for quicktoshl.

Data (listings, search results, created entries) goes to stdout and
diagnostics go to stderr, so ``quicktoshl --json search ... | jq`` keeps
working while warnings about stale reference data stay visible.

The active :class:`OutputManager` is installed once per invocation by
:func:`~quicktoshl.app.main_callback`; the module-level functions forward
to it so commands never have to thread it through.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import BaseModel
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How stdout data is rendered; ``AUTO`` picks ``RICH`` on a colour TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# Row styles applied to entry listings in Rich mode, keyed by entry kind.
KIND_STYLES: dict[str, str] = {
    "expense": "red",
    "income": "green",
    "transfer": "cyan",
}

# level -> (markup style, label, silenced by --quiet)
_NOTICES: dict[str, tuple[str, str, bool]] = {
    "info": ("", "", True),
    "success": ("green", "", True),
    "warning": ("yellow", "Warning", False),
}


class OutputManager:
    """Holds the rendering preferences and the stdout/stderr consoles.

    Args:
        format: Data format; ``AUTO`` is resolved immediately.
        no_color: Strip colour and markup everywhere.
        quiet: Drop info and success notices.
        verbose: Show ``debug`` notices (HTTP requests, cache decisions).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            format = OutputFormat.PLAIN if self._no_color or not _is_tty() else OutputFormat.RICH
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # -- stdout ---------------------------------------------------------- #

    def write(self, text: str) -> None:
        """Write one raw line to stdout."""
        print(text, file=sys.stdout, flush=True)

    def emit(self, data: Any) -> None:
        """Render a result object: a dict, a list, a pydantic model or text.

        Strings holding JSON are decoded first so ``--json`` never
        double-encodes an API body.
        """
        data = _jsonable(data)
        if self._format is OutputFormat.JSON:
            self.write(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format is OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.write(line)
        elif isinstance(data, (dict, list)):
            body = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(body, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_rows(
        self,
        headers: Sequence[str],
        rows: Iterable[Sequence[str]],
        title: Optional[str] = None,
        row_styles: Optional[Sequence[Optional[str]]] = None,
    ) -> None:
        """Print a listing.

        JSON mode emits an array of objects keyed by *headers*, plain mode
        emits a header line followed by tab-separated rows. Rich mode draws
        a table, styling row ``i`` with ``row_styles[i]`` when given.
        """
        rows = [list(row) for row in rows]
        if self._format is OutputFormat.JSON:
            self.emit([dict(zip(headers, row)) for row in rows])
            return
        if self._format is OutputFormat.PLAIN:
            self.write("\t".join(headers))
            for row in rows:
                self.write("\t".join(row))
            return

        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header, justify="right" if header == "amount" else "left")
        styles = list(row_styles or [])
        for i, row in enumerate(rows):
            table.add_row(*row, style=styles[i] if i < len(styles) else None)
        self._stdout.print(table)

    # -- stderr ---------------------------------------------------------- #

    def notice(self, level: str, message: str) -> None:
        """Print an ``info``, ``success`` or ``warning`` line to stderr."""
        style, label, quietable = _NOTICES[level]
        if quietable and self._quiet:
            return
        self._stderr_line(message, style, label)

    def info(self, message: str) -> None:
        self.notice("info", message)

    def success(self, message: str) -> None:
        self.notice("success", message)

    def warning(self, message: str) -> None:
        self.notice("warning", message)

    def error(self, message: str, title: str = "Error") -> None:
        """Print an error to stderr; *title* names the failure class."""
        self._stderr_line(message, "bold red", title)

    def debug(self, message: str) -> None:
        if not self._verbose:
            return
        if self._no_color:
            print(f"[debug] {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[dim]\\[debug] {message}[/dim]")

    def _stderr_line(self, message: str, style: str, label: str) -> None:
        if self._no_color:
            print(f"{label}: {message}" if label else message, file=sys.stderr, flush=True)
        elif label:
            self._stderr.print(f"[{style}]{label}:[/{style}] {message}")
        elif style:
            self._stderr.print(f"[{style}]{message}[/{style}]")
        else:
            self._stderr.print(message)


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    if isinstance(data, list):
        return [_jsonable(item) for item in data]
    if isinstance(data, str):
        try:
            return json.loads(data)
        except ValueError:
            return data
    return data


def _plain_lines(data: Any, prefix: str = "") -> list[str]:
    """Flatten *data* into ``key<TAB>value`` lines.

    Nested mappings become dotted keys (``summary.net``); lists of records
    become one tab-separated line per record.
    """
    if isinstance(data, Mapping):
        lines: list[str] = []
        for key, value in data.items():
            name = f"{prefix}{key}"
            if isinstance(value, Mapping):
                lines.extend(_plain_lines(value, f"{name}."))
            elif isinstance(value, list):
                lines.append(f"{name}\t{json.dumps(value, ensure_ascii=False, default=str)}")
            else:
                lines.append(f"{name}\t{value}")
        return lines
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, Mapping) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value) or ``TERM=dumb`` turns colour off."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


_current: dict[str, Optional[OutputManager]] = {"manager": None}


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    if _current["manager"] is None:
        _current["manager"] = OutputManager()
    return _current["manager"]


def set_output(output: OutputManager) -> None:
    _current["manager"] = output


def reset_output() -> None:
    _current["manager"] = None


def emit(data: Any) -> None:
    get_output().emit(data)


def print_rows(
    headers: Sequence[str],
    rows: Iterable[Sequence[str]],
    title: Optional[str] = None,
    row_styles: Optional[Sequence[Optional[str]]] = None,
) -> None:
    get_output().print_rows(headers, rows, title, row_styles)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str, title: str = "Error") -> None:
    get_output().error(message, title)


def debug(message: str) -> None:
    get_output().debug(message)
