"""Interactive loop tests: operator input in, printed lines out."""

from unittest.mock import MagicMock

import pytest

from Project_Lookup.cli import (
    INVALID_INPUT,
    SERVER_DOWN,
    format_projects,
    main,
    parse_identifier,
    run_loop,
)
from Project_Lookup.client import LookupClient
from Project_Lookup.config import ClientConfig
from Project_Lookup.errors import DecodeError, TransportUnavailable
from Project_Lookup.protocol import AssociationRecord


def scripted(*lines):
    """read_line stand-in: returns lines in order, then raises EOFError."""
    remaining = list(lines)

    def read_line(prompt):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return read_line


def run(client, *lines, verbose=False):
    output = []
    status = run_loop(client, scripted(*lines), output.append, verbose=verbose)
    return status, output


class TestParseIdentifier:

    @pytest.mark.parametrize("text,expected", [
        ("7", 7),
        (" 42 ", 42),
        ("+3", 3),
        ("-3", -3),
        ("007", 7),
    ])
    def test_valid(self, text, expected):
        assert parse_identifier(text) == expected

    @pytest.mark.parametrize("text", [
        "abc", "1.5", "1_000", " ", "7a", "0x10", "",
        "9" * 5000,
        "\u0663",
        "1\u0661",
    ])
    def test_invalid(self, text):
        assert parse_identifier(text) is None


class TestFormatProjects:

    def test_empty(self):
        assert format_projects(42, ()) == "No project found for employee ID 42"

    def test_records(self):
        text = format_projects(7, (
            AssociationRecord(10, 7, "Apollo", "Infra", "Lead"),
            AssociationRecord(11, 7, None, None, None),
        ))
        assert text.splitlines() == [
            "Project for employee ID 7",
            "",
            "ID: 10",
            "Title: Apollo",
            "Description: Infra",
            "Position: Lead",
            "---",
            "ID: 11",
            "Title: ",
            "Description: ",
            "Position: ",
            "---",
        ]


class TestLoop:

    def test_empty_input_exits(self):
        client = MagicMock()
        status, output = run(client, "", "7")
        assert status == 0
        assert client.lookup.call_count == 0

    def test_eof_exits(self):
        status, _ = run(MagicMock())
        assert status == 0

    def test_invalid_input_does_not_connect(self):
        client = MagicMock()
        _, output = run(client, "abc", "")
        assert INVALID_INPUT in output
        client.lookup.assert_not_called()

    @pytest.mark.parametrize("text", ["9" * 5000, "٣"])
    def test_unparseable_digits_reprompt(self, text):
        client = MagicMock()
        status, output = run(client, text, "7", "")
        assert status == 0
        assert output[1] == INVALID_INPUT
        client.lookup.assert_called_once_with(7)

    @pytest.mark.parametrize("error", [
        TransportUnavailable("Could not connect"),
        DecodeError("Response is not valid JSON"),
    ])
    def test_failure_reports_and_reprompts(self, error):
        client = MagicMock()
        client.lookup.side_effect = [error, ()]
        _, output = run(client, "7", "8", "")
        assert output[1] == SERVER_DOWN
        assert output[2] == "No project found for employee ID 8"
        assert client.lookup.call_count == 2

    def test_verbose_shows_kind(self):
        client = MagicMock()
        client.lookup.side_effect = DecodeError("Response is not valid JSON")
        _, output = run(client, "7", "", verbose=True)
        assert output[1] == SERVER_DOWN
        assert output[2] == "  [decode_error] Response is not valid JSON"


class TestEndToEnd:

    def _client(self, server):
        host, port = server.address
        return LookupClient(ClientConfig(host=host, port=port, timeout=2.0))

    def test_renders_project(self, make_companion):
        server = make_companion({7: (AssociationRecord(10, 7, "Apollo", "Infra", "Lead"),)})
        _, output = run(self._client(server), "7", "")
        lines = output[1].splitlines()
        assert "ID: 10" in lines
        assert "Title: Apollo" in lines

    def test_no_projects(self, companion):
        _, output = run(self._client(companion), "42", "")
        assert output[1] == "No project found for employee ID 42"

    def test_server_unreachable(self, unused_port):
        client = LookupClient(ClientConfig(port=unused_port, timeout=1.0))
        _, output = run(client, "7", "abc", "")
        assert output[1:] == [SERVER_DOWN, INVALID_INPUT]

    def test_invalid_input_opens_no_connection(self, companion):
        _, output = run(self._client(companion), "abc", "")
        assert output[1] == INVALID_INPUT
        assert companion.connections == 0


class TestMain:

    def test_main_runs_loop(self, companion, monkeypatch):
        host, port = companion.address
        answers = iter(["7", ""])
        printed = []
        monkeypatch.setattr("builtins.input", lambda prompt: next(answers))
        monkeypatch.setattr("builtins.print", lambda *args: printed.append(" ".join(map(str, args))))
        status = main(["--host", host, "--port", str(port), "--timeout", "2"])
        assert status == 0
        assert any("Title: Apollo" in line for line in printed)
