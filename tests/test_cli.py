"""Tests for peggylsp.cli argument handling."""
from __future__ import annotations

import pytest

from peggylsp.cli import _build_parser, peggylsp


class TestArguments:
    def test_defaults(self):
        args = _build_parser().parse_args([])
        assert args.stdio is False
        assert args.tcp is None
        assert args.debounce_ms is None
        assert args.log_level == 'WARNING'

    def test_tcp_port(self):
        args = _build_parser().parse_args(['--tcp', '2087'])
        assert args.tcp == 2087

    def test_stdio_and_tcp_are_exclusive(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(['--stdio', '--tcp', '2087'])

    def test_debounce_ms(self):
        args = _build_parser().parse_args(['--debounce-ms', '500'])
        assert args.debounce_ms == 500

    def test_bad_log_level(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(['--log-level', 'LOUD'])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            peggylsp(['--version'])
        assert info.value.code == 0
        assert capsys.readouterr().out.startswith('peggylsp ')
