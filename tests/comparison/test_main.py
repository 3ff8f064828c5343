"""Tests for the comparison CLI."""

from __future__ import annotations

import json
import logging

import pytest

from cartwise.common.errors import RepositoryError
from cartwise.comparison import main as cli
from cartwise.comparison.engine import PriceComparisonEngine


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """main() installs a stdout handler on the "cartwise" logger."""
    yield
    package_logger = logging.getLogger("cartwise")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


class TestMain:
    def test_seed_compare_and_export(self, db_path, fixtures_dir, tmp_path, caplog):
        output = tmp_path / "out" / "comparison.json"

        with caplog.at_level(logging.INFO):
            code = cli.main([
                "--db", db_path,
                "--seed", str(fixtures_dir / "sample_shopping.yaml"),
                "--output", str(output),
            ])

        assert code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["best_store"] == "Corner Grocer"
        assert data["best_total_price"] == "13.41"
        assert data["total_items"] == 5
        assert [s["store"] for s in data["store_prices"]] == ["Corner Grocer", "Fresh Market"]
        assert "Best store: Corner Grocer" in caplog.text

    def test_reseeding_same_database(self, db_path, fixtures_dir, tmp_path):
        seed = str(fixtures_dir / "sample_shopping.yaml")
        totals = []
        for run in range(2):
            output = tmp_path / f"run{run}.json"
            assert cli.main(["--db", db_path, "--seed", seed, "--output", str(output)]) == 0
            data = json.loads(output.read_text(encoding="utf-8"))
            totals.append((data["total_items"], data["best_store"], data["best_total_price"]))

        assert totals == [(5, "Corner Grocer", "13.41")] * 2

    def test_empty_database(self, db_path, caplog):
        with caplog.at_level(logging.INFO):
            code = cli.main(["--db", db_path, "--no-refresh"])

        assert code == 0
        assert "shopping list is empty" in caplog.text

    def test_no_qualifying_store(self, db_path, tmp_path, caplog):
        seed = tmp_path / "seed.yaml"
        seed.write_text(
            "items:\n"
            "  - name: Milk\n"
            "    prices: {Store A: 3.00}\n"
            "  - name: Eggs\n"
            "    prices: {Store B: 2.00}\n",
            encoding="utf-8",
        )
        output = tmp_path / "none.json"

        with caplog.at_level(logging.INFO):
            code = cli.main(["--db", db_path, "--seed", str(seed), "--output", str(output)])

        assert code == 0
        assert "No store has prices for enough" in caplog.text
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["best_store"] is None
        assert data["store_prices"] == []
        assert data["total_items"] == 2

    def test_missing_seed_file(self, db_path, tmp_path, caplog):
        code = cli.main(["--db", db_path, "--seed", str(tmp_path / "missing.yaml")])
        assert code == 1
        assert "Could not load seed data" in caplog.text

    def test_invalid_seed_root(self, db_path, tmp_path):
        seed = tmp_path / "list.yaml"
        seed.write_text("- Milk\n", encoding="utf-8")
        assert cli.main(["--db", db_path, "--seed", str(seed)]) == 1

    def test_unopenable_database(self, tmp_path, caplog):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")

        code = cli.main(["--db", str(blocker / "cli.db")])

        assert code == 1
        assert "Could not open database" in caplog.text

    def test_unwritable_output(self, db_path, tmp_path, caplog):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")

        code = cli.main(["--db", db_path, "--output", str(blocker / "out.json")])

        assert code == 1
        assert "Could not write output" in caplog.text

    def test_repository_error_exit_code(self, db_path, monkeypatch, caplog):
        def fail(self, items=None):
            raise RepositoryError("disk I/O error")

        monkeypatch.setattr(PriceComparisonEngine, "compare_sync", fail)

        code = cli.main(["--db", db_path])

        assert code == 1
        assert "Could not read prices: disk I/O error" in caplog.text

    def test_logging_configured_on_package_logger(self, db_path):
        assert cli.main(["--db", db_path]) == 0
        package_logger = logging.getLogger("cartwise")
        assert package_logger.level == logging.INFO
        assert len(package_logger.handlers) == 1

        assert cli.main(["--db", db_path, "--verbose"]) == 0
        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1
        assert package_logger.handlers[0].level == logging.DEBUG
