"""Interactive block explorer.

Navigation is a stack of :class:`View` values. :func:`transition` computes the
next stack from the current one and the user's choice without touching the
node or the terminal; :class:`Explorer` performs the I/O for whichever view
is on top.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple, Union

from ortty.display import open_web, record_summary, render, write_to_file
from ortty.envelope import EnvelopeScanConfig
from ortty.filter import FilterError, InscriptionFilter, apply_filters, parse_filter
from ortty.scan import scan_block_json

logger = logging.getLogger(__name__)

RECENT_BLOCKS = "Recent Blocks"
OPTIONS = "Options"
QUIT = "Quit"
BACK = "Back"
MAIN_MENU_CHOICES = (RECENT_BLOCKS, OPTIONS, QUIT)
RECENT_BLOCK_COUNT = 100

Choice = Union[str, int, None]


@dataclass(frozen=True)
class View:
    kind: str
    height: Optional[int] = None


MAIN_VIEW = View("main")
RECENT_BLOCKS_VIEW = View("recent_blocks")
OPTIONS_VIEW = View("options")


def block_view(height: int) -> View:
    return View("block", height)


ViewStack = Tuple[View, ...]


def transition(stack: ViewStack, choice: Choice) -> ViewStack:
    """Return the view stack that follows ``choice`` on the top view."""

    if not stack:
        return ()
    top, rest = stack[-1], stack[:-1]

    if top.kind == "main":
        if choice == RECENT_BLOCKS:
            return stack + (RECENT_BLOCKS_VIEW,)
        if choice == OPTIONS:
            return stack + (OPTIONS_VIEW,)
        if choice == QUIT:
            return ()
        return stack

    if top.kind == "recent_blocks":
        if choice == BACK:
            return rest
        if isinstance(choice, int) and not isinstance(choice, bool):
            return rest + (block_view(choice),)
        return stack

    # Block and options views are shown once, then dismissed.
    return rest


@dataclass(frozen=True)
class ExploreOptions:
    filters: FrozenSet[InscriptionFilter] = field(default_factory=frozenset)
    extract: bool = False
    extract_dir: Path = Path(".")
    web: bool = False


def prompt_choice(
    title: str,
    choices: Sequence[Choice],
    input_func: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> Choice:
    """Print a numbered menu and return the selected entry."""

    output(title)
    for number, choice in enumerate(choices, start=1):
        output(f"  [{number}] {choice}")
    while True:
        raw = input_func("> ").strip()
        try:
            selected = int(raw)
        except ValueError:
            output("Invalid selection, please enter a number.")
            continue
        if 1 <= selected <= len(choices):
            return choices[selected - 1]
        output("Selection out of range, please try again.")


class Explorer:
    """Menu-driven browser over recent blocks."""

    def __init__(
        self,
        rpc,
        *,
        options: ExploreOptions | None = None,
        scan_config: EnvelopeScanConfig | None = None,
        input_func: Callable[[str], str] | None = None,
        output: Callable[[str], None] = print,
        raw_json: bool = False,
    ) -> None:
        self.rpc = rpc
        self.options = options or ExploreOptions()
        self.scan_config = scan_config
        self.input_func = input_func or input
        self.output = output
        self.raw_json = raw_json

    def run(self) -> None:
        stack: ViewStack = (MAIN_VIEW,)
        while stack:
            stack = self.step(stack)

    def step(self, stack: ViewStack) -> ViewStack:
        view = stack[-1]
        choice: Choice = None
        if view.kind == "main":
            choice = self._prompt("Interactive Explorer", MAIN_MENU_CHOICES)
        elif view.kind == "recent_blocks":
            choices: List[Choice] = list(self.recent_heights())
            choices.append(BACK)
            choice = self._prompt("Select block to view", choices)
        elif view.kind == "block" and view.height is not None:
            self.show_block(view.height)
        elif view.kind == "options":
            self.edit_options()
        return transition(stack, choice)

    def recent_heights(self) -> List[int]:
        best = self.rpc.getblockcount()
        oldest = max(best - RECENT_BLOCK_COUNT, 0)
        return list(range(best, oldest - 1, -1))

    def show_block(self, height: int) -> None:
        block_json = self.rpc.getblock_by_height(height)
        records = apply_filters(scan_block_json(block_json, self.scan_config), self.options.filters)
        if not records:
            self.output(f"No matching inscriptions in block {height}.")
            return
        for record in records:
            self.output(record_summary(record))
            self.output(render(record, raw_json=self.raw_json))
            if self.options.extract:
                write_to_file(record, self.options.extract_dir)
            if self.options.web:
                open_web(record)

    def edit_options(self) -> None:
        raw = self.input_func(
            "Filters (comma separated: text, json, brc20, image, html; blank for all): "
        )
        try:
            filters = frozenset(parse_filter(name) for name in raw.split(",") if name.strip())
        except FilterError as exc:
            self.output(str(exc))
            filters = self.options.filters
        extract = self._ask_bool("Extract inscriptions to disk?", self.options.extract)
        web = self._ask_bool("Open inscriptions on web?", self.options.web)
        self.options = replace(self.options, filters=filters, extract=extract, web=web)
        logger.debug("Explorer options updated: %s", self.options)

    def _ask_bool(self, question: str, default: bool) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        raw = self.input_func(f"{question} {suffix}: ").strip().lower()
        if not raw:
            return default
        return raw in {"y", "yes", "1", "true"}

    def _prompt(self, title: str, choices: Sequence[Choice]) -> Choice:
        return prompt_choice(title, choices, input_func=self.input_func, output=self.output)
