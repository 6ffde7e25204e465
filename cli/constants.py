"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "list", "info", "download", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E9CCA bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;156;202m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
 ███████╗██████╗ ██╗     ██╗████████╗███████╗████████╗ ██████╗ ██████╗ ███████╗
 ██╔════╝██╔══██╗██║     ██║╚══██╔══╝██╔════╝╚══██╔══╝██╔═══██╗██╔══██╗██╔════╝
 ███████╗██████╔╝██║     ██║   ██║   ███████╗   ██║   ██║   ██║██████╔╝█████╗
 ╚════██║██╔═══╝ ██║     ██║   ██║   ╚════██║   ██║   ██║   ██║██╔══██╗██╔══╝
 ███████║██║     ███████╗██║   ██║   ███████║   ██║   ╚██████╔╝██║  ██║███████╗
 ╚══════╝╚═╝     ╚══════╝╚═╝   ╚═╝   ╚══════╝   ╚═╝    ╚═════╝ ╚═╝  ╚═╝╚══════╝
{RESET}"""

WELCOME_TITLE = "SplitStore CLI - Chunked File Storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "splitstore> "

HELP_TEXT = """Available commands:
  upload <path>                       Upload a local file
  list                                List stored files
  info <file_id>                      Show a file's metadata and chunk layout
  download <file_id> [output_path]    Download a file (defaults to the download directory)
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Examples:
  upload reports/q3.pdf
  list
  info 7
  download 7
  download 7 /tmp/q3-copy.pdf"""
