import unittest

from coin_sync.enrich.merge import (
    SNAPSHOT_FIELD,
    SYNCED_AT_FIELD,
    build_numista_snapshot,
    build_update,
    needs_enrichment,
    should_enrich,
)
from coin_sync.enrich.models import CoinRecord

TYPE_DATA = {
    "id": 1001,
    "url": "https://en.numista.com/catalogue/pieces1001.html",
    "title": "1 Ruble Peter the Great",
    "category": "coin",
    "issuer": {"code": "russia-empire", "name": "Russia"},
    "min_year": 1700,
    "max_year": 1725,
    "value": {"text": "1 Ruble", "numeric_value": 1, "currency": {"id": 7, "name": "Ruble", "full_name": "Ruble (1700-1917)"}},
    "composition": {"text": "Silver"},
    "weight": 28.0,
    "size": 42,
    "obverse": {"picture": "https://img.example/o.jpg", "thumbnail": "https://img.example/o-t.jpg", "description": "Bust"},
    "reverse": {"picture": "https://img.example/r.jpg"},
    "mints": [{"name": "Moscow"}],
    "references": [{"catalogue": {"code": "KM"}, "number": "157"}],
}

NOW = "2024-05-01T00:00:00Z"


class BuildUpdateTests(unittest.TestCase):
    def test_default_mode_keeps_existing_name(self) -> None:
        record = CoinRecord.from_item("coin-a", {"name": "My rouble", "year": 1720})
        update = build_update(record, TYPE_DATA, lang="en", now=NOW)
        self.assertNotIn("name", update)
        self.assertNotIn("year", update)
        self.assertEqual(update["title"], "1 Ruble Peter the Great")
        self.assertEqual(update["denomination"], "1 Ruble")
        self.assertEqual(update[SYNCED_AT_FIELD], NOW)

    def test_force_mode_overwrites_name(self) -> None:
        record = CoinRecord.from_item("coin-a", {"name": "My rouble", "year": 1720})
        update = build_update(record, TYPE_DATA, lang="en", force=True, now=NOW)
        self.assertEqual(update["name"], "1 Ruble Peter the Great")
        self.assertEqual(update["year"], 1700)

    def test_field_mapping(self) -> None:
        update = build_update(CoinRecord.from_item("coin-a", {}), TYPE_DATA, lang="en", now=NOW)
        self.assertEqual(update["numistaTypeId"], 1001)
        self.assertEqual(update["image"], "https://img.example/o.jpg")
        self.assertEqual(update["reverseImage"], "https://img.example/r.jpg")
        self.assertEqual(update["catalogNumber"], "KM 157")
        self.assertEqual(update["mint"], "Moscow")
        self.assertEqual(update["metal"], "Silver")
        self.assertEqual(update["diameter"], 42)
        self.assertEqual(update["currency"], "Ruble")
        self.assertEqual(update["description"], "Bust")
        self.assertEqual(update["nameEn"], "1 Ruble Peter the Great")
        self.assertNotIn("reverseThumbnail", update)

    def test_name_en_only_for_english(self) -> None:
        update = build_update(CoinRecord.from_item("coin-a", {}), TYPE_DATA, lang="es", now=NOW)
        self.assertNotIn("nameEn", update)

    def test_unchanged_record_is_a_no_op(self) -> None:
        first = build_update(CoinRecord.from_item("coin-a", {}), TYPE_DATA, lang="en", now=NOW)
        enriched = CoinRecord.from_item("coin-a", first)
        self.assertEqual(build_update(enriched, TYPE_DATA, lang="en", now="2025-01-01T00:00:00Z"), {})
        self.assertEqual(build_update(enriched, TYPE_DATA, lang="en", force=True, now="2025-01-01T00:00:00Z"), {})

    def test_changed_snapshot_alone_is_written(self) -> None:
        first = build_update(CoinRecord.from_item("coin-a", {}), TYPE_DATA, lang="en", now=NOW)
        enriched = CoinRecord.from_item("coin-a", first)
        changed = dict(TYPE_DATA, weight=27.5)
        update = build_update(enriched, changed, lang="en", now=NOW)
        self.assertEqual(set(update), {SNAPSHOT_FIELD, SYNCED_AT_FIELD})
        self.assertEqual(update[SNAPSHOT_FIELD]["weight"], 27.5)


class SnapshotTests(unittest.TestCase):
    def test_snapshot_is_pruned_and_stamped(self) -> None:
        snap = build_numista_snapshot({"id": 5, "title": "Denga", "obverse": {}}, "ru", fetched_at=NOW)
        self.assertEqual(snap, {"id": 5, "title": "Denga", "lang": "ru", "fetchedAt": NOW})

    def test_snapshot_nested_shapes(self) -> None:
        snap = build_numista_snapshot(TYPE_DATA, "en", fetched_at=NOW)
        self.assertEqual(snap["issuer"], {"code": "russia-empire", "name": "Russia"})
        self.assertEqual(snap["years"], {"min": 1700, "max": 1725})
        self.assertEqual(snap["value"]["currency"]["fullName"], "Ruble (1700-1917)")
        self.assertEqual(snap["obverse"]["picture"], "https://img.example/o.jpg")


class CompletenessTests(unittest.TestCase):
    def test_library_skips_named_record_with_image(self) -> None:
        record = CoinRecord.from_item("coin-a", {"title": "x", "image": "https://img.example/x.jpg"})
        self.assertFalse(should_enrich(record, force=False))
        self.assertTrue(should_enrich(record, force=True))
        self.assertTrue(should_enrich(CoinRecord.from_item("coin-a", {"title": "x"}), force=False))

    def test_wire_needs_images_and_link(self) -> None:
        full = {"obverseImage": "o", "reverseImage": "r", "numistaId": 5}
        self.assertFalse(needs_enrichment(CoinRecord.from_item("coin-a", full)))
        self.assertTrue(needs_enrichment(CoinRecord.from_item("coin-a", {"obverseImage": "o"})))
        self.assertTrue(needs_enrichment(CoinRecord.from_item("coin-a", {"numistaId": 5})))


if __name__ == "__main__":
    unittest.main()
