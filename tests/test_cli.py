"""
Tests for the command-line entry point.
"""

import json
import logging

import pytest

from shocksim.__main__ import main
from shocksim.logging_config import configure_logging


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    package_logger = logging.getLogger("shocksim")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


class TestCli:
    """Tests for shocksim.__main__.main."""

    def test_single_scenario(self, capsys) -> None:
        assert main(["--shock", "rate_hike", "--particles", "5000", "--seed", "1"]) == 0
        out = capsys.readouterr().out
        assert "Shock:      Rate Hike" in out
        assert "VaR:" in out
        assert "CVaR:" in out

    def test_json_compare(self, capsys) -> None:
        code = main(["--compare", "--json", "--particles", "5000", "--seed", "2", "--portfolio", "conservative"])
        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert set(payload) == {"black_swan", "rate_hike", "stagflation"}
        assert payload["black_swan"]["stats"]["n_samples"] == 5000
        assert payload["black_swan"]["seed"] == 2

    def test_compare_table(self, capsys) -> None:
        assert main(["--compare", "--particles", "2000", "--seed", "3"]) == 0
        out = capsys.readouterr().out
        for name in ("Rate Hike", "Black Swan", "Stagflation"):
            assert name in out

    def test_fallback(self, capsys) -> None:
        assert main(["--fallback", "--particles", "2000", "--seed", "4"]) == 0
        assert "degraded sampler" in capsys.readouterr().out

    def test_invalid_input_exit_code(self, capsys) -> None:
        assert main(["--particles", "0"]) == 2
        assert "invalid input" in capsys.readouterr().err


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_single_handler(self) -> None:
        configure_logging("DEBUG")
        package_logger = configure_logging("INFO", module_levels={"shocksim.engine": "ERROR"})
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.INFO
        assert logging.getLogger("shocksim.engine").level == logging.ERROR
        logging.getLogger("shocksim.engine").setLevel(logging.NOTSET)

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD")
