"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "bulk-upload", "list", "download", "delete", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2BA3EC bold",
        "command": "#0088ff bold",
    }
)

GREEN = "\033[32m"
BLUE = "\033[38;2;43;163;236m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
   ___ _                 _                    _ _
  / __| |_ _  _ _ _  _ _| |____ ____ _ _  _ _| | |_
 | (__| ' \\ || | ' \\| / / / \\ V / _` | || | |  _|
  \\___|_||_\\_,_|_||_|_\\_\\_\\  \\_/\\__,_|\\_,_|_|\\__|
{RESET}"""

WELCOME_TITLE = "Chunkvault CLI - Encrypted chunked file storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "chunkvault> "

HELP_TEXT = """Available commands:
  upload <file>...                    Upload files one request per file
  bulk-upload <file>...               Upload files in a single bulk request
  list                                List stored files and total stored size
  download <id> [output_path]         Download file by id (defaults to its original name)
  delete <id>                         Delete file by id (remote chunks and catalog record)
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Examples:
  upload report.pdf photo.jpg
  bulk-upload data/*.csv
  list
  download 3
  download 3 restored/report.pdf
  delete 3"""
