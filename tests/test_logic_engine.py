"""
Tests for symptom normalization and disease ranking.

Run: pytest tests/test_logic_engine.py -v
"""
import random

import pytest

from logic_engine import (SymptomVocabulary, always_register, never_register, normalize_token,
                          rank_diseases, split_symptoms, top_candidates)
from schemas import DiseaseRecord


class FakeStore:
    def __init__(self, names=None, fail_inserts=False):
        self.names = dict(names or {})
        self.fail_inserts = fail_inserts
        self.inserted = []

    def load_symptoms(self):
        return dict(self.names)

    def lookup_symptom_id(self, name):
        return self.names.get(name.strip().lower())

    def insert_symptom(self, name):
        if self.fail_inserts: return None
        new_id = max(self.names.values(), default=0) + 1
        self.names[name.lower()] = new_id
        self.inserted.append(name)
        return new_id


@pytest.fixture
def vocab():
    return SymptomVocabulary(FakeStore({"fever": 1, "cough": 2, "headache": 3}))


def disease(id, name, symptoms, spec="General"):
    return DiseaseRecord(id=id, name=name, specialization=spec, symptom_ids=set(symptoms))


# --- NORMALIZER ---
def test_split_drops_empty_segments():
    assert split_symptoms(",fever,, cough ,\t,\n") == ["fever", "cough"]
    assert split_symptoms("") == []
    assert split_symptoms(" , ,") == []


def test_split_keeps_internal_whitespace():
    assert split_symptoms("  sore  throat\t, runny nose\r\n") == ["sore  throat", "runny nose"]


def test_case_and_whitespace_insensitive(vocab):
    assert normalize_token(" FEVER \n") == "fever"
    assert vocab.lookup("Fever") == vocab.lookup("fever") == vocab.lookup(" FEVER ") == 1
    assert "  Cough" in vocab


def test_known_symptoms_do_not_touch_store(vocab):
    got = vocab.gather("Fever, cough", always_register)
    assert got.symptom_ids == [1, 2]
    assert got.registered == []
    assert vocab.store.inserted == []


def test_declined_unknown_is_dropped(vocab):
    asked = []
    def decline(token):
        asked.append(token); return False

    got = vocab.gather("fever, Chills", decline)
    assert got.symptom_ids == [1]
    assert got.skipped == ["Chills"]
    assert asked == ["Chills"]
    assert vocab.lookup("chills") is None


def test_registered_unknown_gets_new_id(vocab):
    got = vocab.gather(" Chills , cough", always_register)
    assert got.symptom_ids == [4, 2]
    assert got.registered == ["Chills"]
    assert vocab.store.inserted == ["Chills"]
    assert vocab.lookup("CHILLS") == 4
    assert len(vocab) == 4


def test_registration_failure_skips_token():
    vocab = SymptomVocabulary(FakeStore({"fever": 1}, fail_inserts=True))
    got = vocab.gather("fever, chills", always_register)
    assert got.symptom_ids == [1]
    assert got.skipped == ["chills"]


def test_duplicates_collapse_and_ask_once(vocab):
    asked = []
    def decline(token):
        asked.append(token); return False

    got = vocab.gather("fever, FEVER, chills, Chills", decline)
    assert got.symptom_ids == [1]
    assert asked == ["chills"]


def test_symptom_added_elsewhere_is_found_in_store(vocab):
    vocab.store.names["chills"] = 9
    asked = []
    def decline(token):
        asked.append(token); return False

    got = vocab.gather("Chills, fever", decline)
    assert got.symptom_ids == [9, 1]
    assert asked == []
    assert vocab.store.inserted == []
    assert "chills" in vocab


def test_all_declined_gives_empty_set(vocab):
    assert vocab.gather("chills, sweats", never_register).symptom_ids == []


# --- RANKING ---
def test_flu_scenario():
    ranked = rank_diseases({1, 2}, [disease(1, "Flu", {1, 2}), disease(2, "Migraine", {3})])
    assert [r.disease_name for r in ranked] == ["Flu"]
    assert ranked[0].score == 100.0
    assert ranked[0].match_count == 2
    assert ranked[0].total_symptoms == 2


def test_partial_match_score():
    (cold,) = rank_diseases({1}, [disease(3, "Cold", {1, 2, 3})])
    assert cold.match_count == 1
    assert cold.total_symptoms == 3
    assert round(cold.score, 1) == 33.3


def test_disease_without_symptoms_never_ranked():
    assert rank_diseases({1, 2, 3}, [disease(1, "Empty", set())]) == []


def test_sorted_by_score_then_match_count():
    diseases = [
        disease(1, "Half of two", {1, 9}),
        disease(2, "Half of four", {1, 2, 8, 9}),
        disease(3, "All of one", {1}),
        disease(4, "Third", {2, 7, 8}),
    ]
    ranked = rank_diseases({1, 2}, diseases)
    assert [r.disease_id for r in ranked] == [3, 2, 1, 4]


def test_ties_both_present_and_ordered_by_id():
    diseases = [disease(7, "B", {1, 2}), disease(5, "A", {3, 4}), disease(9, "Low", {1, 5, 6, 8})]
    ranked = rank_diseases({1, 2, 3, 4}, diseases)
    assert [r.disease_id for r in ranked] == [5, 7, 9]
    assert ranked[0].score == ranked[1].score == 100.0


def test_engine_is_unbounded_and_truncation_is_separate():
    diseases = [disease(i, f"D{i}", {1, 100 + i}) for i in range(1, 9)]
    ranked = rank_diseases({1}, diseases)
    assert len(ranked) == 8
    assert [r.disease_id for r in top_candidates(ranked)] == [1, 2, 3, 4, 5]
    assert [r.disease_id for r in top_candidates(ranked, 0)] == [1]
    assert [r.disease_id for r in top_candidates(ranked, -3)] == [1]
    assert top_candidates([], 0) == []


def test_ranking_properties_on_random_catalogs():
    rng = random.Random(1234)
    for _ in range(200):
        diseases = [disease(i, f"D{i}", rng.sample(range(1, 15), rng.randint(0, 6))) for i in range(1, 12)]
        reported = set(rng.sample(range(1, 15), rng.randint(1, 8)))
        ranked = rank_diseases(reported, diseases)
        by_id = {d.id: d for d in diseases}

        for r in ranked:
            d = by_id[r.disease_id]
            assert r.total_symptoms == len(d.symptom_ids) > 0
            assert 0 < r.match_count <= r.total_symptoms
            assert r.match_count == len(d.symptom_ids & reported)
            assert r.score == 100.0 * r.match_count / r.total_symptoms
        for a, b in zip(ranked, ranked[1:]):
            assert (a.score, a.match_count) >= (b.score, b.match_count)

        expected = {d.id for d in diseases if d.symptom_ids & reported}
        assert {r.disease_id for r in ranked} == expected
