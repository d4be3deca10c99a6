#!/usr/bin/env python3
"""Tests for the bundled researchers."""

import json
import math

from qaserve.classification import QuestionAnalyzer
from qaserve.models import Passage, Question
from qaserve.stages import CombineScores, FitbExtractor, MarkupTrimmer, Merge, TrainingTee
from qaserve.stages.researchers import clean_markup, trim_title


def test_clean_markup_strips_html_and_wiki_syntax():
    text = "<b>King</b> [[John of England|John]] sealed it<ref>cite</ref> in '''1215'''{{citation needed}}"

    assert clean_markup(text) == "King John sealed it in 1215"


def test_trim_title():
    assert trim_title("Magna Carta - Wikipedia") == "Magna Carta"
    assert trim_title("Magna Carta | History, Facts - Britannica") == "Magna Carta | History, Facts"
    assert trim_title("Mercury (disambiguation)") == "Mercury"
    assert trim_title("King John") == "King John"


def test_markup_trimmer_merges_cleaned_titles():
    question = Question("What charter was sealed in 1215?")
    question.add_passages([
        Passage(title="Magna Carta - Wikipedia", text="<p>The <i>Magna Carta</i></p>", source="web"),
        Passage(title="Magna Carta", text="Sealed at Runnymede.", source="lucene"),
    ])

    MarkupTrimmer().process(question)

    assert len(question.answers) == 1
    answer = question.answers[0]
    assert answer.text == "Magna Carta"
    assert len(answer.passages) == 2
    assert answer.passages[0].text == "The Magna Carta"


def test_merge_researcher():
    question = Question("Who sealed the Magna Carta?")
    question.add_passages([
        Passage(title="King John", text="a", source="x"),
        Passage(title="John", text="b", source="x"),
    ])
    question.answers[1].text = "KING JOHN"

    Merge().process(question)

    assert [a.text for a in question.answers] == ["King John"]


def test_fitb_extractor_fills_the_blank():
    question = Question('He wrote "The ___ of the Opera" in 1910')
    QuestionAnalyzer().analyze(question)
    question.add_passages([
        Passage(
            title="The Phantom of the Opera (novel)",
            text="Gaston Leroux wrote The Phantom of the Opera as a serial.",
            source="web",
        ),
        Passage(title="Gaston Leroux", text="A French journalist.", source="web"),
    ])

    FitbExtractor().process(question)

    assert [a.text for a in question.answers] == ["Phantom", "Gaston Leroux"]


def test_fitb_extractor_ignores_other_questions():
    question = Question("Who wrote The Phantom of the Opera?")
    QuestionAnalyzer().analyze(question)
    question.add_passages([Passage(title="Gaston Leroux", text="The ___ of", source="web")])

    FitbExtractor().process(question)

    assert question.answers[0].text == "Gaston Leroux"


def test_combine_scores_skips_absent_and_unweighted():
    question = Question("When was the Magna Carta signed?")
    question.add_passages([
        Passage(title="1215", text="a", source="x"),
        Passage(title="King John", text="b", source="x"),
    ])
    first, second = question.answers
    first.set_score("date_matches", 1.0)
    first.set_score("unweighted", 100.0)

    CombineScores({"date_matches": 1.0, "search_rank": 2.0}).process(question)

    assert math.isclose(first.get_score("combined"), 1 / (1 + math.exp(-1.0)))
    assert math.isclose(second.get_score("combined"), 0.5)
    assert first.get_score("unweighted") == 100.0
    assert question.ranked_answers()[0] is first


def test_training_tee_writes_on_complete(tmp_path):
    output = tmp_path / "training.jsonl"
    tee = TrainingTee(output)

    known = Question.known("This king sealed it", "King John", "HISTORY")
    known.add_passages([Passage(title="King John", text="a", source="x")])
    known.answers[0].set_score("correct", 1.0)
    unknown = Question("Who sealed it?")
    unknown.add_passages([Passage(title="King John", text="a", source="x")])

    tee.process(known)
    tee.process(unknown)
    assert not output.exists()

    tee.complete()

    rows = [json.loads(line) for line in output.read_text().splitlines()]
    assert rows == [{
        "question": "This king sealed it",
        "category": "HISTORY",
        "candidate": "King John",
        "scores": {"correct": 1.0},
    }]


def test_training_tee_complete_without_rows(tmp_path):
    output = tmp_path / "training.jsonl"

    TrainingTee(output).complete()

    assert not output.exists()
