"""Tests for CLI command parsing."""

import pytest

from cli.models import BulkUploadCommand, DeleteCommand, DownloadCommand, ListCommand, UploadCommand
from cli.parser import ParseError, parse_command


def test_parse_upload():
    assert parse_command("upload a.txt 'my report.pdf'") == UploadCommand(file_list=("a.txt", "my report.pdf"))


def test_parse_bulk_upload():
    assert parse_command("bulk-upload a.txt b.txt") == BulkUploadCommand(file_list=("a.txt", "b.txt"))


def test_parse_list():
    assert parse_command("list") == ListCommand()


def test_parse_download_with_output():
    assert parse_command("download 3 out/report.pdf") == DownloadCommand(file_id=3, output_path="out/report.pdf")


def test_parse_download_default_output():
    assert parse_command("download 3") == DownloadCommand(file_id=3)


def test_parse_delete():
    assert parse_command("delete 12") == DeleteCommand(file_id=12)


@pytest.mark.parametrize("line", [
    "",
    "   ",
    "upload",
    "bulk-upload",
    "list extra",
    "download",
    "download abc",
    "download 0",
    "download 1 2 3",
    "delete",
    "delete -4",
    "delete 1 2",
    "frobnicate",
    "upload 'unterminated",
])
def test_invalid_commands(line):
    with pytest.raises(ParseError):
        parse_command(line)
