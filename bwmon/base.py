"""BaseInput / BaseOutput — contracts for counter sources and renderers.

Input lifecycle:
    1. is_available() is asked before selection (probe)
    2. __init__() stores the context and calls setup()
    3. read() is called once per accepted poll tick
    4. shutdown() is called on exit

Output lifecycle:
    1. __init__() stores the context and calls setup()
    2. pre() runs every scheduler pass (e.g. drain pending key presses)
    3. draw() and post() run after each poll tick
    4. shutdown() is called on exit

Subclasses implement: name, description, add_args(), setup() and read() / draw().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from argparse import ArgumentParser, Namespace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bwmon.context import Context


class InputError(RuntimeError):
    """The statistics source cannot be used at all."""


class BaseInput(ABC):
    name: str = ""                # e.g. "proc" — used by the registry
    description: str = ""

    def __init__(self, ctx: Context, args: Namespace | None = None):
        self.ctx = ctx
        self.args = args if args is not None else Namespace()
        self.setup(self.args)

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        """Override to add provider-specific CLI flags."""

    def setup(self, args: Namespace) -> None:
        """Called once after construction. Open the data source here."""

    @abstractmethod
    def read(self) -> None:
        """Resolve every discovered interface and push its counters."""

    def shutdown(self) -> None:
        """Called on exit. Override to release resources."""

    @classmethod
    def is_available(cls) -> bool:
        """Return True if this provider can run on the current system."""
        return True


class BaseOutput(ABC):
    name: str = ""
    description: str = ""

    def __init__(self, ctx: Context, args: Namespace | None = None):
        self.ctx = ctx
        self.args = args if args is not None else Namespace()
        self.done = False
        self.setup(self.args)

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        """Override to add consumer-specific CLI flags."""

    def setup(self, args: Namespace) -> None:
        """Called once after construction."""

    def pre(self) -> None:
        """Called on every scheduler pass, before a possible poll."""

    @abstractmethod
    def draw(self) -> None:
        """Render the current state. Must not mutate counters."""

    def post(self) -> None:
        """Called after draw()."""

    def shutdown(self) -> None:
        """Called on exit. Override to restore the terminal."""

    @classmethod
    def is_available(cls) -> bool:
        return True
