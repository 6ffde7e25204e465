"""Tests for CLI command parsing."""

import pytest

from cli.models import DownloadCommand, InfoCommand, ListCommand, UploadCommand
from cli.parser import ParseError, parse_command


def test_parse_upload():
    assert parse_command('upload report.pdf') == UploadCommand(path='report.pdf')


def test_parse_upload_quoted_path():
    assert parse_command('upload "my files/q3 report.pdf"') == UploadCommand(path='my files/q3 report.pdf')


def test_parse_list():
    assert parse_command('list') == ListCommand()


def test_parse_info():
    assert parse_command('info 12') == InfoCommand(file_id=12)


def test_parse_download():
    assert parse_command('download 7') == DownloadCommand(file_id=7)
    assert parse_command('download 7 out/copy.bin') == DownloadCommand(file_id=7, output_path='out/copy.bin')


@pytest.mark.parametrize('line', [
    '',
    '   ',
    'upload',
    'upload a b',
    'list extra',
    'info',
    'info abc',
    'info 0',
    'download',
    'download x',
    'download 1 a b',
    'remove 1',
    'upload "unterminated',
])
def test_invalid_commands(line):
    with pytest.raises(ParseError):
        parse_command(line)
