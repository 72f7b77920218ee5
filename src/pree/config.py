"""Render configuration for pree.

Options come from the command line only; there is no configuration file.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from pree.errors import InvalidOption
from pree.sorting import SortMetric

DEFAULT_ROOT_PID = 1

E = TypeVar("E", bound=Enum)


class Style(Enum):
    """Tree rendering strategy."""

    FANCY = "fancy"  # Box-drawing connectors
    BORING = "boring"  # Indentation only, safe for pipes
    AUTO = "auto"  # Fancy on a terminal, boring otherwise

    def resolve(self, isatty: bool) -> "Style":
        """Return a concrete style, deciding AUTO from isatty."""
        if self is not Style.AUTO:
            return self
        return Style.FANCY if isatty else Style.BORING


def _parse_choice(enum_cls: type[E], name: str, value: object) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        raise InvalidOption(name, value, [member.value for member in enum_cls]) from None


@dataclass(frozen=True)
class RenderConfig:
    """What to show and how to order and draw the tree."""

    show_rss: bool = True
    show_cpu: bool = True
    metric: SortMetric = SortMetric.RSS
    reverse: bool = False
    root_pid: int = DEFAULT_ROOT_PID
    style: Style = Style.AUTO

    @classmethod
    def create(
        cls,
        *,
        show_rss: bool = True,
        show_cpu: bool = True,
        sort: str | SortMetric = SortMetric.RSS,
        reverse: bool = False,
        root_pid: int = DEFAULT_ROOT_PID,
        style: str | Style = Style.AUTO,
    ) -> "RenderConfig":
        """Build a config from raw option values.

        Raises:
            InvalidOption: If sort or style is not a recognized value.
        """
        return cls(
            show_rss=show_rss,
            show_cpu=show_cpu,
            metric=_parse_choice(SortMetric, "sort", sort),
            reverse=reverse,
            root_pid=root_pid,
            style=_parse_choice(Style, "style", style),
        )
