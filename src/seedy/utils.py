"""Helper functions used acrosse the codebase."""
from rich.console import Console
from rich.markup import escape

CONSOLE = Console()

_VERBOSITY = 0
_QUIET = False


def configure_output(verbosity: int = 0, quiet: bool = False):
    """Sets how much gets printed by the logging helpers.

    Arguments:
        verbosity: number of `-v` flags passed on the command line. Any
            value above zero enables debug messages.
        quiet: prints only errors.
    """
    global _VERBOSITY, _QUIET  # pylint: disable=global-statement

    _VERBOSITY = verbosity
    _QUIET = quiet


def print_exception(message: str):
    """Prints an exception to console including its traceback.

    Arguments:
        message: error message to print.
    """
    CONSOLE.print(f"[bold red]ERROR[/] [red]{escape(message)}[/]")
    CONSOLE.print_exception()


def print_info(message: str):
    """Prints an informational message.

    Arguments:
        message: informational message to print.
    """
    if _QUIET:
        return

    CONSOLE.print(escape(message))


def log(message: str):
    """Prints a message with contextual information (i.e. timestamp).

    Arguments:
        message: informational message to print.
    """
    if _QUIET:
        return

    CONSOLE.log(escape(message))


def debug(message: str):
    """Prints a message only when running in verbose mode.

    Arguments:
        message: debug message to print.
    """
    if _QUIET or _VERBOSITY < 1:
        return

    CONSOLE.log(f"[dim]{escape(message)}[/]")


def success(message: str):
    """Prints a message reporting a successful operation.

    Arguments:
        message: message to print.
    """
    if _QUIET:
        return

    CONSOLE.log(f"[green]{escape(message)}[/]")


def error(message: str):
    """Prints an error message. Errors are printed even in quiet mode.

    Arguments:
        message: error message to print.
    """
    CONSOLE.log(f"[bold red]ERROR[/] [red]{escape(message)}[/]")


def warning(message: str):
    """Prints a warning message.

    Arguments:
        message: warning message to print.
    """
    if _QUIET:
        return

    CONSOLE.log(f"[bold yellow]WARNING[/] [yellow]{escape(message)}[/]")
