"""
Tests for the amm-basefee command-line interface
"""

import logging

import pytest
import pandas as pd

from ..scripts.cli import main


class TestCli:
    """Sub-commands and exit codes."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "calibrate" in capsys.readouterr().out

    def test_quote(self, capsys):
        assert main(['quote', '--gas-used', '15000000', '--elapsed', '12']) == 0

        out = capsys.readouterr().out
        assert "base_fee_per_gas" in out
        assert "gas_excess = 45315000000" in out

    def test_quote_over_limit(self):
        assert main(['quote', '--gas-used', '1', '--gas-excess', '90900000000']) == 2

    @pytest.mark.parametrize("args", [
        ['quote', '--gas-used', '1000', '--gas-excess', '-5'],
        ['quote', '--gas-used', '1000', '--gas-excess', '90900000001'],
        ['quote', '--gas-used', str(2**40)],
        ['quote', '--gas-used', '-1'],
    ])
    def test_quote_rejects_bad_input(self, args, capsys):
        """Out-of-range arguments are input errors, and nothing is priced."""
        assert main(args) == 1
        assert "base_fee_per_gas" not in capsys.readouterr().out

    def test_calibrate_mismatch_exit_code(self):
        args = ['calibrate', '--gas-excess-max', '90900000000', '--price', '1000000000',
                '--target', '150000000', '--ratio', '1']
        assert main(args) == 2

    def test_replay(self, tmp_path, capsys):
        data = tmp_path / "blocks.csv"
        data.write_text("timestamp,gas_used\n1700000000,150000000\n1700000012,150000000\n")
        output = tmp_path / "fees.csv"

        assert main(['replay', str(data), '--output', str(output)]) == 0

        results = pd.read_csv(output)
        assert len(results) == 2
        assert "rejection_rate" in capsys.readouterr().out

    def test_replay_multiple_files(self, tmp_path, capsys, caplog):
        first = tmp_path / "a.csv"
        first.write_text("timestamp,gas_used,block_number\n1700000000,10000000,100\n1700000000,20000000,101\n")
        second = tmp_path / "b.csv"
        second.write_text("timestamp,gas_used,block_number\n1700000000,20000000,101\n1700000600,0,102\n")
        output = tmp_path / "fees.csv"

        with caplog.at_level(logging.WARNING):
            assert main(['replay', str(first), str(second), '--output', str(output)]) == 0

        results = pd.read_csv(output)
        assert list(results['gas_used']) == [10_000_000, 20_000_000, 0]
        assert "total gas 30,000,000" in capsys.readouterr().out
        assert "1 gaps longer than 60s" in caplog.text

    def test_replay_missing_file(self, tmp_path):
        assert main(['replay', str(tmp_path / "missing.csv")]) == 1
