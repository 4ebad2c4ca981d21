import time

import pytest

from ranttrack.nlu import extractor
from ranttrack.nlu.extractor import extract_symptoms


def symptoms(text):
    return [s.symptom for s in extract_symptoms(text).symptoms]


def test_idempotent_up_to_id():
    text = "Migraine since this morning, 7/10, and I'm wiped out after the shower"
    a = [s.model_dump(exclude={"id"}) for s in extract_symptoms(text).symptoms]
    b = [s.model_dump(exclude={"id"}) for s in extract_symptoms(text).symptoms]
    assert a and a == b


@pytest.mark.parametrize("text", [
    "Crashed hard after grocery shopping, Brain Fog all day",
    "my LOWER BACK is killing me and I'm exhausted",
    "Can't sleep, feel like garbage, joints hurt",
    "burning pain in my shoulders since yesterday",
])
def test_matched_is_verbatim_slice(text):
    result = extract_symptoms(text)
    assert result.symptoms
    for s in result.symptoms:
        assert s.matched in text
        assert text[s.start:s.end] == s.matched


def test_ids_are_unique():
    result = extract_symptoms("tired and nauseous and dizzy")
    ids = [s.id for s in result.symptoms]
    assert len(ids) == 3
    assert len(set(ids)) == 3


def test_repeated_mentions_are_not_merged():
    assert symptoms("tired. so tired.") == ["fatigue", "fatigue"]


def test_pem_default_severity_and_trigger():
    result = extract_symptoms("crashed hard after grocery shopping")
    pem = [s for s in result.symptoms if s.symptom == "pem"]
    assert len(pem) == 1
    assert pem[0].severity == "severe"
    assert pem[0].method == "phrase"
    assert "grocery shopping" in pem[0].trigger.activity
    assert pem[0].trigger.timeframe == "after"
    assert pem[0].trigger.category == "shopping"


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_input(text):
    result = extract_symptoms(text)
    assert result.text == text
    assert result.symptoms == []
    assert result.spoon_count is None


@pytest.mark.parametrize("text", [
    "!!!!!!!!" * 500,
    "... ,,, ;;; ??? " * 200,
    "lorem ipsum " * 2000,
])
def test_pathological_input_does_not_raise(text):
    assert extract_symptoms(text).symptoms == []


def test_non_string_raises_type_error():
    with pytest.raises(TypeError):
        extract_symptoms(None)


def test_long_input_is_truncated(monkeypatch):
    monkeypatch.setattr(extractor, "MAX_TEXT_CHARS", 20)
    text = "tired " * 5 + "nauseous"
    result = extract_symptoms(text)
    assert result.text == text
    assert "nausea" not in [s.symptom for s in result.symptoms]
    assert "fatigue" in [s.symptom for s in result.symptoms]


def test_confidence_is_bounded_and_rewards_detail():
    plain = extract_symptoms("pain").symptoms[0]
    rich = extract_symptoms("sharp stabbing pain in my knee for 3 days after walking").symptoms[0]
    assert 0.0 <= plain.confidence <= 1.0
    assert 0.0 <= rich.confidence <= 1.0
    assert rich.confidence > plain.confidence


def test_spoon_count_rides_along():
    result = extract_symptoms("exhausted, only 2 spoons left")
    assert "fatigue" in [s.symptom for s in result.symptoms]
    assert result.spoon_count is not None
    assert result.spoon_count.current == 2.0


def test_lemma_context_filter():
    assert "pem" not in symptoms("the server crashed again so I was stressed")
    assert "pem" in symptoms("I crashed again after the walk")
    assert symptoms("I came back home exhausted") == ["fatigue"]


def test_supporting_neighbours_outweigh_invalidating_ones():
    assert symptoms("completely crashed after the wedding") == ["pem"]
    assert symptoms("head is pounding, lost my keys") == ["headache"]
    assert "pem" not in symptoms("the wedding party crashed")


def test_unsupported_lemma_keeps_a_capped_confidence():
    [bare] = extract_symptoms("my head today").symptoms
    assert bare.symptom == "headache"
    assert bare.confidence == 0.3

    [backed] = extract_symptoms("head is pounding").symptoms
    assert backed.confidence > 0.3


@pytest.mark.parametrize("noise", ["!" * 100000, "?!" * 50000])
def test_long_punctuation_runs_stay_fast(noise):
    text = "so tired " + noise
    started = time.perf_counter()
    result = extract_symptoms(text)
    assert time.perf_counter() - started < 5.0
    assert [s.matched for s in result.symptoms] == ["tired"]


def test_offsets_survive_punctuation_runs():
    text = "tired!!!!!headache?!?!?! nauseous"
    result = extract_symptoms(text)
    assert [s.symptom for s in result.symptoms] == ["fatigue", "headache", "nausea"]
    for s in result.symptoms:
        assert text[s.start:s.end] == s.matched
