import json
import logging
from typing import Any

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.text import Text

from kvcache.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Console = None, err_console: Console = None):
        """Initializes the rich consoles (results on stdout, messages on stderr)."""
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Prints plain command output without markup so it can be piped."""
        self.console.print(output, markup=False, highlight=False, soft_wrap=True)

    def display_value(self, value: Any, **kwargs: Any) -> None:
        """Prints a cached value.

        Strings are printed as-is. JSON-compatible values are printed as
        JSON so the output can be consumed by other tools; anything else
        falls back to a pretty repr.
        """
        if isinstance(value, str):
            self.display_output(value)
            return
        try:
            self.display_output(json.dumps(value, ensure_ascii=False))
        except (TypeError, ValueError):
            logger.debug(f"Value of type {type(value).__name__} is not JSON-serializable, printing repr")
            self.console.print(Pretty(value))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.err_console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message.

        Args:
            info_message: The informational message to display.
        """
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.err_console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.err_console.print(panel)
