#!/usr/bin/env python3
"""Tests for the Question / Answer / Passage data model."""

from qaserve.models import Answer, Passage, Question


def passage(title, text="", source="stub", rank=None):
    return Passage(title=title, text=text or f"{title} body", source=source, rank=rank)


def test_duplicate_titles_merge_into_one_answer():
    question = Question("When was the Magna Carta signed?")
    question.add_passages([
        passage("1215", "Signed at Runnymede in 1215."),
        passage("1215", "King John sealed it in June 1215."),
    ])

    assert len(question.answers) == 1
    assert question.answers[0].text == "1215"
    assert len(question.answers[0].passages) == 2


def test_same_passage_twice_is_attached_once():
    question = Question("When was the Magna Carta signed?")
    p = passage("1215")
    question.add_passages([p, p])
    question.add_passages([passage("1215")])

    assert len(question.answers) == 1
    assert len(question.answers[0].passages) == 1


def test_same_text_from_same_source_is_a_duplicate_under_any_title():
    question = Question("When was the Magna Carta signed?")
    question.add_passages([
        passage("1215", "Sealed at Runnymede in 1215."),
        passage("Runnymede", "Sealed at Runnymede in 1215."),
        passage("Runnymede", "Sealed at Runnymede in 1215.", source="web"),
    ])

    assert [a.text for a in question.answers] == ["1215", "Runnymede"]
    assert question.answers[1].passages[0].source == "web"


def test_candidate_text_comparison_ignores_case_and_spacing():
    question = Question("Who sealed the Magna Carta?")
    question.add_passages([
        passage("King John", source="lucene"),
        passage("king  john", source="web"),
        passage("Henry III"),
    ])

    assert [a.text for a in question.answers] == ["King John", "Henry III"]
    assert len(question.answers[0].passages) == 2


def test_answers_point_back_to_question():
    question = Question("Who sealed the Magna Carta?")
    question.add_passages([passage("King John")])

    assert question.answers[0].question is question


def test_missing_score_reads_as_none():
    answer = Answer(text="1215")

    assert answer.get_score("correct") is None
    answer.set_score("correct", None)
    assert "correct" not in answer.scores


def test_score_write_does_not_touch_other_names():
    answer = Answer(text="1215")
    answer.set_score("date_matches", 1.0)
    answer.set_score("passage_count", 2)

    answer.set_score("passage_count", 3)

    assert answer.get_score("date_matches") == 1.0
    assert answer.get_score("passage_count") == 3.0


def test_ranked_answers_put_absent_scores_last():
    question = Question("When was the Magna Carta signed?")
    question.add_passages([passage("1066"), passage("1215"), passage("King John"), passage("1297")])
    question.answers[0].set_score("combined", 0.2)
    question.answers[1].set_score("combined", 0.9)
    question.answers[3].set_score("combined", 0.2)

    ranked = [a.text for a in question.ranked_answers()]

    assert ranked == ["1215", "1066", "1297", "King John"]


def test_merge_duplicates_keeps_existing_scores():
    question = Question("Who sealed the Magna Carta?")
    question.add_passages([passage("King John"), passage("John")])
    first, second = question.answers
    first.set_score("search_rank", 1.0)
    second.set_score("search_rank", 0.5)
    second.set_score("passage_count", 1.0)

    second.text = "king john"
    question.merge_duplicates()

    assert len(question.answers) == 1
    merged = question.answers[0]
    assert merged is first
    assert merged.get_score("search_rank") == 1.0
    assert merged.get_score("passage_count") == 1.0
    assert len(merged.passages) == 2


def test_to_json_omits_withheld_scores():
    question = Question("When was the Magna Carta signed?")
    question.add_passages([passage("1215")])
    question.answers[0].set_score("combined", 0.7)
    question.answers[0].set_score("correct", None)

    data = question.to_json()

    assert data == [{"text": "1215", "scores": {"combined": 0.7}, "passages": 1}]


def test_known_question_keeps_answer_and_category():
    question = Question.known("This king sealed it in 1215", "King John", "ENGLISH HISTORY")

    assert question.raw_text == question.text
    assert question.answer == "King John"
    assert question.category == "ENGLISH HISTORY"
