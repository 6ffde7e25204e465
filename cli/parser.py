"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    DownloadCommand,
    InfoCommand,
    ListCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/List/Info/Download)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "list":
        return _parse_list(tokens[1:])
    elif command_name == "info":
        return _parse_info(tokens[1:])
    elif command_name == "download":
        return _parse_download(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_file_id(command_name: str, value: str) -> int:
    try:
        file_id = int(value)
    except ValueError:
        raise ParseError(f"{command_name}: file id must be a number, got '{value}'")
    if file_id < 1:
        raise ParseError(f"{command_name}: file id must be positive, got {file_id}")
    return file_id


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path>' command."""
    if len(args) != 1:
        raise ParseError("upload requires exactly 1 argument: <path>")

    return UploadCommand(path=args[0])


def _parse_list(args: list[str]) -> ListCommand:
    if args:
        raise ParseError("list takes no arguments")

    return ListCommand()


def _parse_info(args: list[str]) -> InfoCommand:
    """Parse 'info <file_id>' command."""
    if len(args) != 1:
        raise ParseError("info requires exactly 1 argument: <file_id>")

    return InfoCommand(file_id=_parse_file_id("info", args[0]))


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <file_id> [output_path]' command."""
    if not 1 <= len(args) <= 2:
        raise ParseError("download requires 1 or 2 arguments: <file_id> [output_path]")

    file_id = _parse_file_id("download", args[0])
    output_path = args[1] if len(args) > 1 else None

    return DownloadCommand(file_id=file_id, output_path=output_path)
