"""
Small, self-contained widgets for the snapshot screens.

Widgets hold their own state and react to normalized key names (a printable
character such as ``"q"`` or ``"?"``, otherwise a key name such as
``"enter"``, ``"escape"``, ``"up"``). Drawing goes through :class:`Frame`, a
cell buffer that any rich renderable can be rendered into; later draws cover
earlier ones, which is how popups are layered over a screen.
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from rich import box
from rich.align import Align
from rich.cells import cell_len
from rich.console import Console, ConsoleOptions, RenderableType, RenderResult
from rich.panel import Panel
from rich.segment import Segment
from rich.style import Style
from rich.table import Table
from rich.text import Text

POPUP_STYLE = Style(color="#e2e8f0", bgcolor="#1e293b")
FOOTER_STYLE = Style(color="#e2e8f0", bgcolor="#020617")
SELECTED_STYLE = Style(reverse=True, bold=True)


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def split_bottom(self, height: int) -> tuple["Rect", "Rect"]:
        """Split into an upper part and a lower part ``height`` rows high."""
        height = max(0, min(height, self.height))
        upper = Rect(self.x, self.y, self.width, self.height - height)
        lower = Rect(self.x, self.y + self.height - height, self.width, height)
        return upper, lower

    def centered(self, width: int, height: int) -> "Rect":
        width = max(0, min(width, self.width))
        height = max(0, min(height, self.height))
        return Rect(
            self.x + (self.width - width) // 2,
            self.y + (self.height - height) // 2,
            width,
            height,
        )

    def intersect(self, other: "Rect") -> "Rect":
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        right = min(self.x + self.width, other.x + other.width)
        bottom = min(self.y + self.height, other.y + other.height)
        return Rect(x, y, max(0, right - x), max(0, bottom - y))


class Frame:
    """A width x height grid of styled cells that renders as a rich renderable."""

    def __init__(self, width: int, height: int, console: Optional[Console] = None) -> None:
        self.area = Rect(0, 0, max(width, 0), max(height, 0))
        self.console = console or Console(
            file=io.StringIO(),
            width=max(width, 1),
            height=max(height, 1),
            force_terminal=True,
            color_system="truecolor",
            legacy_windows=False,
        )
        self._lines: List[List[Segment]] = [[Segment(" " * self.area.width)] for _ in range(self.area.height)]

    def render_widget(self, renderable: RenderableType, area: Rect) -> None:
        area = area.intersect(self.area)
        if area.is_empty:
            return
        options = self.console.options.update_dimensions(area.width, area.height)
        lines = self.console.render_lines(renderable, options, pad=True)
        for row, line in enumerate(lines[: area.height], start=area.y):
            parts = list(Segment.divide(self._lines[row], [area.x, area.x + area.width, self.area.width]))
            left = parts[0] if parts else []
            right = parts[2] if len(parts) > 2 else []
            self._lines[row] = [*left, *line, *right]

    def text_lines(self) -> List[str]:
        """Plain text of every row, mostly useful for tests and debugging."""
        return ["".join(segment.text for segment in line) for line in self._lines]

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        for line in self._lines:
            yield from line
            yield Segment.line()


class PromptResult(Enum):
    OK = "ok"
    CANCEL = "cancel"
    NONE = "none"


class TextInputResult(Enum):
    INPUT = "input"
    CANCEL = "cancel"
    NONE = "none"


class SelectTable:
    """Scrollable table with at most one selected row."""

    def __init__(self, header: Sequence[str], justify: Optional[Sequence[str]] = None, page_size: int = 20) -> None:
        self.header = list(header)
        self.justify = list(justify) if justify else ["left"] * len(self.header)
        self.rows: List[List[str]] = []
        self.title = ""
        self.footer = ""
        self.page_size = page_size
        self.offset = 0
        self._selected: Optional[int] = None

    def selected(self) -> Optional[int]:
        return self._selected

    def select(self, index: Optional[int]) -> None:
        if index is None or not self.rows:
            self._selected = None
        else:
            self._selected = max(0, min(index, len(self.rows) - 1))

    def set_content(self, rows: Sequence[Sequence[str]]) -> None:
        self.rows = [list(row) for row in rows]
        self.select(self._selected)

    def input(self, key: str) -> bool:
        """Move the selection; returns False for keys the table does not use."""
        if not self.rows:
            return False
        current = self._selected if self._selected is not None else 0
        last = len(self.rows) - 1
        if key in ("up", "k"):
            target = current - 1
        elif key in ("down", "j"):
            target = current + 1 if self._selected is not None else 0
        elif key == "pageup":
            target = current - self.page_size
        elif key == "pagedown":
            target = current + self.page_size
        elif key in ("home", "g"):
            target = 0
        elif key in ("end", "G"):
            target = last
        else:
            return False
        self.select(target)
        return True

    def _scroll_into_view(self, visible: int) -> None:
        if self._selected is None:
            self.offset = 0
            return
        if self._selected < self.offset:
            self.offset = self._selected
        elif self._selected >= self.offset + visible:
            self.offset = self._selected - visible + 1
        self.offset = max(0, min(self.offset, max(0, len(self.rows) - visible)))

    def render(self, height: int) -> RenderableType:
        # top border, header row and bottom border take three rows
        visible = max(height - 3, 1)
        self.page_size = visible
        self._scroll_into_view(visible)
        table = Table(box=None, expand=True, show_edge=False, pad_edge=False, header_style="bold")
        for column, justify in zip(self.header, self.justify):
            table.add_column(column, justify=justify, no_wrap=True, overflow="ellipsis")
        for index in range(self.offset, min(self.offset + visible, len(self.rows))):
            table.add_row(*self.rows[index], style=SELECTED_STYLE if index == self._selected else None)
        return Panel(
            table,
            title=self.title or None,
            subtitle=self.footer or None,
            box=box.HORIZONTALS,
            padding=0,
            height=height,
        )

    def draw(self, area: Rect, frame: Frame) -> None:
        frame.render_widget(self.render(area.height), area)


def footer_line(text: str) -> RenderableType:
    return Align.center(Text(text, no_wrap=True, overflow="ellipsis"), style=FOOTER_STYLE)


class PopUpText:
    """A centred, static text box."""

    def __init__(self, title: str, text: str, width: Optional[int] = None) -> None:
        self.title = title
        self.text = text
        self.width = width

    def rect(self, area: Rect) -> Rect:
        """Centred box sized to the text in terminal cells."""
        lines = self.text.splitlines() or [""]
        width = self.width or max(cell_len(self.title) + 6, max(cell_len(line) for line in lines) + 4)
        return area.centered(width, len(lines) + 2)

    def draw(self, area: Rect, frame: Frame) -> None:
        rect = self.rect(area)
        frame.render_widget(Panel(Text(self.text), title=self.title, style=POPUP_STYLE, box=box.ROUNDED), rect)


class PopUpPrompt(PopUpText):
    """A yes/no question."""

    def input(self, key: str) -> PromptResult:
        if key in ("y", "Y", "enter"):
            return PromptResult.OK
        if key in ("n", "N", "escape", "q"):
            return PromptResult.CANCEL
        return PromptResult.NONE


class PopUpScrollableText:
    """Read-only text viewer that scrolls line-wise."""

    def __init__(self, title: str, text: str, height: int) -> None:
        self.title = title
        self.lines = text.splitlines() or [""]
        self.height = max(height, 1)
        self.offset = 0

    def _scroll(self, delta: int) -> None:
        last = max(0, len(self.lines) - self.height)
        self.offset = max(0, min(self.offset + delta, last))

    def input(self, key: str) -> TextInputResult:
        if key in ("escape", "q"):
            return TextInputResult.CANCEL
        if key == "enter":
            return TextInputResult.INPUT
        if key in ("up", "k"):
            self._scroll(-1)
        elif key in ("down", "j"):
            self._scroll(1)
        elif key == "pageup":
            self._scroll(-self.height)
        elif key in ("pagedown", " "):
            self._scroll(self.height)
        elif key in ("home", "g"):
            self.offset = 0
        elif key in ("end", "G"):
            self._scroll(len(self.lines))
        return TextInputResult.NONE

    def draw(self, area: Rect, frame: Frame) -> None:
        rect = area.centered(area.width - 4, self.height + 2)
        shown = self.lines[self.offset:self.offset + max(rect.height - 2, 1)]
        position = f"{self.offset + 1}-{self.offset + len(shown)}/{len(self.lines)}"
        panel = Panel(
            Text("\n".join(shown), no_wrap=True, overflow="ellipsis"),
            title=self.title,
            subtitle=position,
            style=POPUP_STYLE,
            box=box.ROUNDED,
        )
        frame.render_widget(panel, rect)


class PopUpInput:
    """Single-line text editor."""

    def __init__(self, title: str, label: str, text: str = "", width: int = 70) -> None:
        self.title = title
        self.label = label
        self.text = text
        self.cursor = len(text)
        self.width = width

    def input(self, key: str) -> TextInputResult:
        if key == "escape":
            return TextInputResult.CANCEL
        if key == "enter":
            return TextInputResult.INPUT
        if key == "backspace":
            if self.cursor > 0:
                self.text = self.text[: self.cursor - 1] + self.text[self.cursor:]
                self.cursor -= 1
        elif key == "delete":
            self.text = self.text[: self.cursor] + self.text[self.cursor + 1:]
        elif key == "left":
            self.cursor = max(0, self.cursor - 1)
        elif key == "right":
            self.cursor = min(len(self.text), self.cursor + 1)
        elif key == "home":
            self.cursor = 0
        elif key == "end":
            self.cursor = len(self.text)
        elif len(key) == 1 and key.isprintable():
            self.text = self.text[: self.cursor] + key + self.text[self.cursor:]
            self.cursor += 1
        return TextInputResult.NONE

    def draw(self, area: Rect, frame: Frame) -> None:
        line = Text(self.text[: self.cursor])
        line.append(self.text[self.cursor:self.cursor + 1] or " ", style="reverse")
        line.append(self.text[self.cursor + 1:])
        body = Text(self.label + "\n", style="bold")
        body.append_text(line)
        rect = area.centered(self.width, 4)
        frame.render_widget(Panel(body, title=self.title, subtitle="(Enter) ok | (Esc) cancel", style=POPUP_STYLE, box=box.ROUNDED), rect)
