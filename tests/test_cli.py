import io
import json
import logging
import os
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from coin_sync import cli
from coin_sync.enrich.models import EnrichStats
from coin_sync.numista import client as numista_client


class CliArgumentTests(unittest.TestCase):
    def _exit_code(self, argv) -> int:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            cli.main(argv)
        return ctx.exception.code

    def test_rejects_out_of_range_batch_size(self) -> None:
        self.assertEqual(self._exit_code(["enrich", "--batch-size", "900"]), 2)

    def test_rejects_non_positive_limit(self) -> None:
        self.assertEqual(self._exit_code(["enrich", "--limit", "0"]), 2)

    def test_library_run_does_not_accept_russian(self) -> None:
        self.assertEqual(self._exit_code(["enrich", "--lang", "ru"]), 2)

    def test_search_flags_are_exclusive(self) -> None:
        self.assertEqual(self._exit_code(["enrich", "--enable-search", "--disable-search"]), 2)

    @patch.dict(os.environ, {"NUMISTA_API_KEY": ""})
    def test_missing_api_key_is_an_argument_error(self) -> None:
        self.assertEqual(self._exit_code(["enrich", "--dry-run"]), 2)


class CliRunTests(unittest.TestCase):
    @patch("coin_sync.cli.run_library_enrichment")
    def test_enrich_builds_options_and_prints_stats(self, run) -> None:
        run.return_value = EnrichStats(scanned=3, updated=2)
        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main(
                ["enrich", "--enable-search", "--batch-size", "50", "--lang", "FR", "--numista-api-key", "k"]
            )

        self.assertEqual(code, 0)
        options = run.call_args[0][0]
        self.assertTrue(options.enable_search)
        self.assertEqual(options.batch_size, 50)
        self.assertEqual(options.lang, "fr")
        self.assertEqual(options.numista_api_key, "k")
        self.assertEqual(json.loads(out.getvalue())["updated"], 2)

    @patch.dict(os.environ, {"NUMISTA_LANG": ""})
    @patch("coin_sync.cli.run_wire_enrichment")
    def test_wire_defaults(self, run) -> None:
        run.return_value = EnrichStats()
        with redirect_stdout(io.StringIO()):
            cli.main(["enrich-wire", "--numista-api-key", "k"])

        options = run.call_args[0][0]
        self.assertTrue(options.enable_search)
        self.assertEqual(options.lang, "ru")
        self.assertEqual(options.search_count, 50)
        self.assertEqual(options.progress_every, 50)

    @patch("coin_sync.cli.run_wire_enrichment")
    def test_disable_search_on_wire(self, run) -> None:
        run.return_value = EnrichStats()
        with redirect_stdout(io.StringIO()):
            cli.main(["enrich-wire", "--disable-search", "--numista-api-key", "k"])
        self.assertFalse(run.call_args[0][0].enable_search)

    @patch("coin_sync.cli.run_library_enrichment", side_effect=RuntimeError("store down"))
    def test_fatal_error_returns_one(self, run) -> None:
        with redirect_stdout(io.StringIO()):
            self.assertEqual(cli.main(["enrich", "--numista-api-key", "k"]), 1)

    @patch("coin_sync.cli.run_library_enrichment")
    def test_verbose_raises_package_loggers_to_debug(self, run) -> None:
        run.return_value = EnrichStats()
        names = ("coin_sync.cli", "coin_sync.numista.client", "coin_sync.enrich.runner")
        before = {name: logging.getLogger(name).level for name in names}
        for name, level in before.items():
            self.addCleanup(logging.getLogger(name).setLevel, level)

        with redirect_stdout(io.StringIO()):
            cli.main(["enrich", "--verbose", "--numista-api-key", "k"])

        for name in names:
            self.assertEqual(logging.getLogger(name).level, logging.DEBUG, name)
        self.assertTrue(numista_client.logger.isEnabledFor(logging.DEBUG))

    @patch("coin_sync.cli.init_db", return_value=["coins"])
    def test_init_db(self, init_db) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(cli.main(["init-db"]), 0)
        self.assertEqual(json.loads(out.getvalue()), {"created": ["coins"]})


if __name__ == "__main__":
    unittest.main()
