from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from . import __version__

BANNER = r"""
  ______  ____  __  ___ ______  ______
 /_  __/ / __ \/  |/  //_  __/ / ____/
  / /   / / / / /|_/ /  / /   / __/
 / /   / /_/ / /  / /  / /   / /___
/_/    \____/_/  /_/  /_/   /_____/
"""


def print_banner(console: Console | None = None) -> None:
    console = console or Console(stderr=True)
    art = Text(BANNER.strip("\n"), style="cyan")
    art.append(f"\n\ntomte {__version__}", style="bold white")
    art.append("\nhost successfully initialized", style="green")
    console.print(Panel(art, border_style="white", padding=(0, 2), expand=False))
