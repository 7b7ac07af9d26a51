"""
Tests for progress reporting module.
"""

import io
import sys
from unittest.mock import MagicMock, patch

import pytest

from phenosim.progress import NullReporter, PrintReporter, ProgressReporter, TqdmReporter


class TestProgressReporter:
    """Test ProgressReporter step counting."""

    def test_start_fires_zero(self):
        cb = MagicMock()
        pr = ProgressReporter(5, cb)
        pr.start("Starting")
        cb.assert_called_with(0, 5, "Starting")

    def test_advance_counts_steps(self):
        cb = MagicMock()
        pr = ProgressReporter(5, cb)
        pr.start()
        pr.advance("Simulating genetic_bg")
        pr.advance("Rescaling components")
        cb.assert_called_with(2, 5, "Rescaling components")
        assert pr.current == 2

    def test_advance_clamped_to_total(self):
        cb = MagicMock()
        pr = ProgressReporter(2, cb)
        pr.advance(n=5)
        assert pr.current == 2

    def test_finish_fires_final_update(self):
        cb = MagicMock()
        pr = ProgressReporter(4, cb)
        pr.start()
        pr.advance()
        cb.reset_mock()

        pr.finish()
        cb.assert_called_with(4, 4, "Done")

    def test_finish_no_double_fire(self):
        cb = MagicMock()
        pr = ProgressReporter(2, cb)
        pr.start()
        pr.advance()
        pr.advance()
        cb.reset_mock()

        # Already at total, finish should not fire again
        pr.finish()
        assert cb.call_count == 0

    def test_default_callback_is_silent(self, capsys):
        pr = ProgressReporter(3)
        pr.start()
        pr.advance("step")
        pr.finish()
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


class TestNullReporter:
    """Test NullReporter."""

    def test_discards(self):
        assert NullReporter()(1, 2, "message") is None


class TestPrintReporter:
    """Test PrintReporter console output."""

    def test_output_format(self):
        reporter = PrintReporter()
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            reporter(3, 7, "Rescaling components")

        output = buf.getvalue()
        assert "[3/7] Rescaling components" in output

    def test_explicit_stream(self):
        buf = io.StringIO()
        PrintReporter(stream=buf)(1, 2, "step")
        assert "[1/2] step" in buf.getvalue()

    def test_total_zero_early_return(self):
        buf = io.StringIO()
        PrintReporter(stream=buf)(0, 0)
        assert buf.getvalue() == ""

    def test_completion_newline(self):
        buf = io.StringIO()
        PrintReporter(stream=buf)(7, 7, "Done")
        assert buf.getvalue().endswith("\n")


class TestTqdmReporter:
    """Test TqdmReporter with mock tqdm."""

    def test_tqdm_missing_raises(self):
        reporter = TqdmReporter()
        with patch.dict("sys.modules", {"tqdm": None}):
            with pytest.raises(ImportError, match="tqdm"):
                reporter(0, 5)

    def test_tqdm_basic_flow(self):
        mock_bar = MagicMock()
        mock_bar.n = 0
        mock_tqdm_cls = MagicMock(return_value=mock_bar)
        mock_tqdm_module = MagicMock()
        mock_tqdm_module.tqdm = mock_tqdm_cls

        reporter = TqdmReporter()

        with patch.dict("sys.modules", {"tqdm": mock_tqdm_module}):
            reporter(0, 5, "Starting")  # creates bar
            mock_tqdm_cls.assert_called_once()
            mock_bar.set_description.assert_called_with("Starting")

            mock_bar.n = 0
            reporter(3, 5, "Rescaling")
            mock_bar.update.assert_called_with(3)

            mock_bar.n = 3
            reporter(5, 5)  # closes
            mock_bar.close.assert_called_once()
