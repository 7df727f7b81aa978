from unittest import TestCase

from erpchat.backend.services.entity_resolver import distinct_names, is_approximate_match, normalize_text, resolve


def _names(*values):
	return [{"name": value} for value in values]


class NormalizeTextTests(TestCase):
	def test_folds_turkish_letters_and_case(self) -> None:
		self.assertEqual(normalize_text("  Türkiye İş Bankası "), "turkiye is bankasi")
		self.assertEqual(normalize_text("ÇELİK MAKİNA"), "celik makina")
		self.assertEqual(normalize_text("Öztürk Gıda"), "ozturk gida")

	def test_strips_other_combining_marks(self) -> None:
		self.assertEqual(normalize_text("Crédit Agricole"), "credit agricole")
		self.assertEqual(normalize_text("Ärzte Bank"), "arzte bank")

	def test_total_on_empty_and_none(self) -> None:
		self.assertEqual(normalize_text(None), "")
		self.assertEqual(normalize_text(""), "")
		self.assertEqual(normalize_text("   "), "")

	def test_idempotent(self) -> None:
		samples = ["", "çğıöşüİ", "ÇĞIÖŞÜ", "Yılmaz İnşaat A.Ş.", "́̈", "MiXeD CaSe 123", "é"]
		for sample in samples:
			once = normalize_text(sample)
			self.assertEqual(normalize_text(once), once, sample)


class ResolveTests(TestCase):
	def test_exact_and_approximate_tiers(self) -> None:
		candidates = _names("Garanti BBVA", "Garanti Yatırım", "Ziraat Bankası")
		result = resolve(candidates, "garanti bbva")
		self.assertEqual(result.exact, [{"name": "Garanti BBVA"}])
		self.assertEqual(result.approximate, [{"name": "Garanti Yatırım"}])
		self.assertEqual(result.suggestions, ["Garanti BBVA", "Garanti Yatırım"])

	def test_tiers_are_disjoint(self) -> None:
		candidates = _names("Akbank", "akbank", "AKBANK T.A.Ş.", "Akbank Ticari", "Ziraat")
		result = resolve(candidates, "Akbank")
		exact_ids = {id(item) for item in result.exact}
		approximate_ids = {id(item) for item in result.approximate}
		self.assertFalse(exact_ids & approximate_ids)
		self.assertEqual(len(result.exact), 2)
		self.assertEqual(len(result.approximate), 2)

	def test_suggestions_capped_at_five_exact_first(self) -> None:
		candidates = _names(*[f"Yilmaz Branch {index}" for index in range(20)]) + _names("yilmaz")
		result = resolve(candidates, "Yılmaz")
		self.assertEqual(len(result.suggestions), 5)
		self.assertEqual(result.suggestions[0], "yilmaz")

	def test_token_match_requires_tokens_longer_than_two(self) -> None:
		self.assertTrue(is_approximate_match("celik makina san.", "celik holding"))
		self.assertFalse(is_approximate_match("abc", "ab xy"))

	def test_prefix_and_containment_both_directions(self) -> None:
		self.assertTrue(is_approximate_match("ozturk gida ltd.", "ozturk"))
		self.assertTrue(is_approximate_match("ozturk", "ozturk gida ltd."))

	def test_empty_or_missing_candidates_yield_empty_buckets(self) -> None:
		for candidates in (None, []):
			result = resolve(candidates, "anything")
			self.assertTrue(result.empty)
			self.assertEqual(result.suggestions, [])

	def test_empty_renders_are_dropped(self) -> None:
		candidates = [{"name": "Akbank", "label": ""}, {"name": "Akbank Ticari", "label": "Akbank Ticari (TL)"}]
		result = resolve(candidates, "akbank", render=lambda record: record["label"])
		self.assertEqual(result.suggestions, ["Akbank Ticari (TL)"])

	def test_custom_name_accessor(self) -> None:
		rows = [{"quote_no": "TEK-2024-1050"}, {"quote_no": "TEK-2024-1051"}]
		result = resolve(rows, "tek-2024-105", name_of=lambda row: row["quote_no"])
		self.assertEqual(len(result.approximate), 2)

	def test_no_match(self) -> None:
		result = resolve(_names("Garanti BBVA", "Akbank"), "Deutsche")
		self.assertTrue(result.empty)
		self.assertEqual(result.suggestions, [])


class DistinctNamesTests(TestCase):
	def test_skips_blank_and_duplicate_values(self) -> None:
		rows = [{"bank_name": "Akbank"}, {"bank_name": "Akbank"}, {"bank_name": " "}, {"bank_name": None}, {"bank_name": "Ziraat"}]
		self.assertEqual(distinct_names(rows, "bank_name"), [{"name": "Akbank"}, {"name": "Ziraat"}])
		self.assertEqual(distinct_names(None, "bank_name"), [])
