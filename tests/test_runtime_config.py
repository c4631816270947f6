import tempfile
import unittest
from pathlib import Path

from coin_sync.matching.scoring import GENERAL_PROFILE, RULER_PROFILE
from coin_sync.runtime_config import load_runtime_config


class RuntimeConfigTests(unittest.TestCase):
    def _load(self, text: str):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "runtime.toml"
            path.write_text(text, encoding="utf-8")
            return load_runtime_config(path)

    def test_missing_file_uses_defaults(self) -> None:
        cfg = load_runtime_config(Path("/nonexistent/runtime.toml"))
        self.assertEqual(cfg.enrich.batch_size, 200)
        self.assertEqual(cfg.enrich.wire_lang, "ru")
        self.assertEqual(cfg.numista.base_url, "https://api.numista.com/v3")
        self.assertIs(cfg.scoring_general, GENERAL_PROFILE)

    def test_malformed_file_uses_defaults(self) -> None:
        cfg = self._load("[enrich\nbatch_size = ")
        self.assertEqual(cfg.enrich.request_delay_ms, 250)

    def test_values_are_coerced(self) -> None:
        cfg = self._load(
            """
[numista]
base_url = "https://numista.local/v3/"
timeout_seconds = "soon"

[enrich]
batch_size = 900
lang = " ES "
max_retries = -2
collection = "coins_staging"
"""
        )
        self.assertEqual(cfg.numista.base_url, "https://numista.local/v3")
        self.assertEqual(cfg.numista.timeout_seconds, 30)
        self.assertEqual(cfg.enrich.batch_size, 500)
        self.assertEqual(cfg.enrich.lang, "es")
        self.assertEqual(cfg.enrich.max_retries, 4)
        self.assertEqual(cfg.enrich.collection, "coins_staging")

    def test_scoring_overrides(self) -> None:
        cfg = self._load(
            """
[scoring.general]
accept_floor = 60
token_cap = -1
bogus = 3
name = "other"

[scoring.ruler]
require_title = true
coin_category = 0
year_tolerance = "wide"
"""
        )
        self.assertEqual(cfg.scoring_general.accept_floor, 60)
        self.assertEqual(cfg.scoring_general.token_cap, GENERAL_PROFILE.token_cap)
        self.assertEqual(cfg.scoring_general.name, "general")
        self.assertTrue(cfg.scoring_ruler.require_title)
        self.assertEqual(cfg.scoring_ruler.coin_category, 0)
        self.assertEqual(cfg.scoring_ruler.year_tolerance, RULER_PROFILE.year_tolerance)


if __name__ == "__main__":
    unittest.main()
