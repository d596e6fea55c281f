"""REPL with prompt_toolkit for user interaction."""

import os
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from cli.commands import (
    handle_bulk_upload,
    handle_delete,
    handle_download,
    handle_list,
    handle_upload,
)
from cli.constants import (
    COMMANDS,
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    BulkUploadCommand,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command


def clear_screen() -> None:
    os.system("cls" if sys.platform == "win32" else "clear")


def show_welcome() -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


def dispatch_command(cmd_obj) -> str:
    """Send a parsed command to its handler and return the text to print."""
    if isinstance(cmd_obj, UploadCommand):
        return handle_upload(cmd_obj)
    if isinstance(cmd_obj, BulkUploadCommand):
        return handle_bulk_upload(cmd_obj)
    if isinstance(cmd_obj, ListCommand):
        return handle_list(cmd_obj)
    if isinstance(cmd_obj, DownloadCommand):
        return handle_download(cmd_obj)
    if isinstance(cmd_obj, DeleteCommand):
        return handle_delete(cmd_obj)
    return f"Unknown command type: {type(cmd_obj)}"


def run_line(line: str) -> bool:
    """
    Execute one line of input.

    Returns:
        False when the user asked to leave the REPL
    """
    line = line.strip()
    if not line:
        return True

    if line == "exit":
        print("Goodbye!")
        return False
    if line == "help":
        print(HELP_TEXT)
    elif line == "clear":
        clear_screen()
        show_welcome()
    else:
        try:
            print(dispatch_command(parse_command(line)))
        except ParseError as e:
            print(f"Error: {e}")
    return True


def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit."""
    session: PromptSession = PromptSession(
        completer=WordCompleter(COMMANDS, ignore_case=True),
        history=InMemoryHistory(),
        style=STYLE,
    )

    clear_screen()
    show_welcome()

    while True:
        try:
            line = session.prompt([("class:prompt", PROMPT_TEXT)])
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break

        if not run_line(line):
            break
