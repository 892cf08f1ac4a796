"""
Test suite for the engine runner, command-line entry point and configuration

Runs complete feeds end to end: final report on stdout, diagnostics on
stderr only in verbose mode, and no report at all after a fatal error.
"""

import io
import json
import pytest
from pathlib import Path

from payments_engine.cli import main
from payments_engine.config import PaymentsConfig, get_config, reload_config
from payments_engine.engine import run
from payments_engine.exceptions import DuplicateTransactionError, RecordParseError

DATA_DIR = Path(__file__).parent / "data"

SAMPLE_FEED = (
    "type, client, tx, amount\n"
    "deposit, 1, 1, 1.0\n"
    "deposit, 2, 2, 2.0\n"
    "deposit, 1, 3, 2.0\n"
    "withdrawal, 1, 4, 1.5\n"
    "withdrawal, 2, 5, 3.0\n"
)

SAMPLE_REPORT = (
    "client,available,held,total,locked\n"
    "1,1.5,0,1.5,false\n"
    "2,2,0,2,false\n"
)

DISPUTE_FEED = (
    "type,client,tx,amount\n"
    "deposit,1,1,1.9999\n"
    "deposit,1,2,0.0001\n"
    "deposit,2,3,5\n"
    "dispute,2,3,\n"
    "chargeback,2,3,\n"
    "deposit,2,4,10\n"
    "deposit,3,5,5\n"
    "dispute,3,5\n"
    "resolve,3,5\n"
    "dispute,3,5\n"
    "dispute,1,999,\n"
)

DISPUTE_REPORT = (
    "client,available,held,total,locked\n"
    "1,2,0,2,false\n"
    "2,0,0,0,true\n"
    "3,0,5,5,false\n"
)


@pytest.fixture
def feed_file(tmp_path):
    def _write(content, name="transactions.csv"):
        path = tmp_path / name
        path.write_text(content)
        return str(path)
    return _write


class TestRun:
    """Test the engine runner"""

    def test_sample_feed(self):
        output = io.StringIO()

        result = run(io.StringIO(SAMPLE_FEED), output)

        assert output.getvalue() == SAMPLE_REPORT
        assert result.accounts_reported == 2
        assert result.summary.applied == 4
        assert result.summary.skipped == 1

    def test_dispute_lifecycle_feed(self):
        output = io.StringIO()

        run(io.StringIO(DISPUTE_FEED), output)

        assert output.getvalue() == DISPUTE_REPORT

    def test_fatal_error_writes_nothing(self):
        output = io.StringIO()
        feed = "type,client,tx,amount\ndeposit,1,1,5\ndeposit,1,1,5\n"

        with pytest.raises(DuplicateTransactionError):
            run(io.StringIO(feed), output)

        assert output.getvalue() == ""

    def test_parse_error_writes_nothing(self):
        output = io.StringIO()
        feed = "type,client,tx,amount\ndeposit,1,1,5\ndeposit,x,2,5\n"

        with pytest.raises(RecordParseError):
            run(io.StringIO(feed), output)

        assert output.getvalue() == ""


class TestMain:
    """Test the command-line entry point"""

    def test_smoke_sample_files(self):
        """Test the bundled sample feed produces the expected account table"""
        output = io.StringIO()

        exit_code = main([str(DATA_DIR / "sample_transactions.csv")], stdout=output)

        assert exit_code == 0
        assert output.getvalue() == (DATA_DIR / "expected_output.csv").read_text()

    def test_success(self, feed_file, capsys):
        output = io.StringIO()

        exit_code = main([feed_file(SAMPLE_FEED)], stdout=output)

        assert exit_code == 0
        assert output.getvalue() == SAMPLE_REPORT
        assert capsys.readouterr().err == ""

    def test_report_to_stdout_by_default(self, feed_file, capsys):
        exit_code = main([feed_file(SAMPLE_FEED)])

        captured = capsys.readouterr()
        assert exit_code == 0
        assert captured.out == SAMPLE_REPORT

    def test_legacy_verbose_word(self, feed_file, capsys):
        """Test 'verbose' as second argument surfaces skip diagnostics"""
        output = io.StringIO()

        exit_code = main([feed_file(SAMPLE_FEED), "verbose"], stdout=output)

        err = capsys.readouterr().err
        assert exit_code == 0
        assert output.getvalue() == SAMPLE_REPORT

        events = [json.loads(line) for line in err.splitlines() if line.strip()]
        skips = [e for e in events if e.get("action") == "skip_transaction"]
        assert len(skips) == 1
        assert skips[0]["extra"]["reason"] == "insufficient_funds"
        assert skips[0]["extra"]["tx"] == 5
        assert skips[0]["level"] == "INFO"

    def test_verbose_flag_text_format(self, feed_file, capsys):
        output = io.StringIO()

        exit_code = main([feed_file(SAMPLE_FEED), "-v", "--log-format", "text"], stdout=output)

        err = capsys.readouterr().err
        assert exit_code == 0
        assert "Skipped withdrawal: insufficient_funds" in err

    def test_fatal_error_exit_code(self, feed_file, capsys):
        output = io.StringIO()
        path = feed_file("type,client,tx,amount\ndeposit,1,1,5\ndeposit,1,2,abc\n")

        exit_code = main([path], stdout=output)

        err = capsys.readouterr().err
        assert exit_code == 1
        assert output.getvalue() == ""
        assert "RECORD_PARSE_ERROR" in err
        assert "line 3" in err

    def test_undecodable_input_exit_code(self, tmp_path, capsys):
        """Test a file that is not UTF-8 ends the run like any malformed row"""
        path = tmp_path / "transactions.csv"
        path.write_bytes(b"type,client,tx,amount\ndeposit,1,1,1\xff\n")
        output = io.StringIO()

        exit_code = main([str(path)], stdout=output)

        assert exit_code == 1
        assert output.getvalue() == ""
        assert "RECORD_PARSE_ERROR" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        output = io.StringIO()

        exit_code = main([str(tmp_path / "missing.csv")], stdout=output)

        assert exit_code == 1
        assert output.getvalue() == ""
        assert "Cannot read input" in capsys.readouterr().err

    def test_bad_mode_is_usage_error(self, feed_file):
        with pytest.raises(SystemExit) as exc_info:
            main([feed_file(SAMPLE_FEED), "loud"])
        assert exc_info.value.code == 2

    def test_verbose_from_environment(self, feed_file, capsys, fresh_config):
        fresh_config.setenv("PAYMENTS_VERBOSE", "true")
        fresh_config.setenv("PAYMENTS_LOG_FORMAT", "text")
        reload_config()

        main([feed_file(SAMPLE_FEED)], stdout=io.StringIO())

        assert "insufficient_funds" in capsys.readouterr().err


class TestConfig:
    """Test environment-based configuration"""

    def test_defaults(self, fresh_config):
        for name in ("PAYMENTS_LOG_LEVEL", "PAYMENTS_LOG_FORMAT", "PAYMENTS_VERBOSE", "PAYMENTS_VERBOSE_LOG_LEVEL"):
            fresh_config.delenv(name, raising=False)

        config = PaymentsConfig(_env_file=None)

        assert config.log_level == "WARNING"
        assert config.log_format == "json"
        assert config.verbose is False
        assert config.effective_log_level() == "WARNING"
        assert config.effective_log_level(verbose=True) == "INFO"

    def test_environment_override(self, fresh_config):
        fresh_config.setenv("PAYMENTS_LOG_LEVEL", "error")
        fresh_config.setenv("PAYMENTS_LOG_FORMAT", "TEXT")

        config = reload_config()

        assert config is get_config()
        assert config.log_level == "ERROR"
        assert config.log_format == "text"

    def test_verbose_never_raises_level(self):
        """Test verbose mode keeps an already more detailed level"""
        config = PaymentsConfig(_env_file=None, log_level="DEBUG")
        assert config.effective_log_level(verbose=True) == "DEBUG"

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            PaymentsConfig(_env_file=None, log_level="LOUD")
        with pytest.raises(ValueError):
            PaymentsConfig(_env_file=None, log_format="xml")
