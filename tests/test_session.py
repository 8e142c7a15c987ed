"""Tests for answer tracking, completion gating and scoring."""
from __future__ import annotations

import random

import pytest

from comprehension_quiz.attempt import (
    Attempt,
    AttemptCloze,
    AttemptQuestionGroup,
    AttemptVocabulary,
    ClozeBlank,
    ClozeKey,
    RenderedQuestion,
    VocabItem,
    VocabKey,
    generate_attempt,
)
from comprehension_quiz.models import ClozeSection, Document, Question, QuestionGroup, VocabularySection
from comprehension_quiz.parsers.document_builder import parse_document
from comprehension_quiz.session import (
    InvalidAnswerError,
    QuizSession,
    ScoreBreakdown,
    SessionState,
    SessionStateError,
    UnknownItemError,
    cloze_matches,
)


@pytest.fixture
def example_attempt():
    """Paris question, dog/"an animal" word and a "Quick" blank."""
    question = Question("Capital of France?", ("Paris", "Rome"), "Paris")
    group = QuestionGroup(0, None, (question,))
    vocab = VocabularySection(1, {"dog": "an animal"})
    cloze = ClozeSection(2, "The *Quick* fox.", ("Quick",))
    doc = Document("Example", (group, vocab, cloze))
    return Attempt(
        document=doc,
        question_groups=(AttemptQuestionGroup(group, (RenderedQuestion(0, 0, question, ("Rome", "Paris")),)),),
        vocabulary=(AttemptVocabulary(vocab, (VocabItem(VocabKey(1, "dog"), "an animal", ("a fish", "an animal")),)),),
        cloze=(AttemptCloze(cloze, (ClozeBlank(ClozeKey(2, 0), "Quick"),)),),
    )


@pytest.fixture
def session(example_attempt):
    s = QuizSession(example_attempt)
    s.unlock()
    return s


class TestStateMachine:
    def test_starts_locked(self, example_attempt):
        s = QuizSession(example_attempt)
        assert s.state is SessionState.LOCKED
        with pytest.raises(SessionStateError):
            s.answer_question(0, "Paris")

    def test_unlock_once(self, session):
        assert session.state is SessionState.ANSWERING
        with pytest.raises(SessionStateError):
            session.unlock()

    def test_inputs_frozen_after_check(self, session):
        session.answer_question(0, "Paris")
        session.choose_definition(1, "dog", "an animal")
        session.fill_blank(2, 0, "quick")
        session.check()
        assert session.state is SessionState.CHECKED
        with pytest.raises(SessionStateError):
            session.answer_question(0, "Rome")
        with pytest.raises(SessionStateError):
            session.check()


class TestAnswering:
    def test_idempotent_answers(self, small_document):
        s = QuizSession(generate_attempt(small_document, random.Random(0)))
        s.unlock()
        s.answer_question(0, "Rome")
        s.answer_question(0, "Paris")
        assert s.question_answers == {0: "Paris"}
        assert s.answered_questions == 1

    def test_answer_index_two_twice(self):
        doc = parse_document(
            "T\n---\nquestions\n" + "\n".join(f"Q: q{i}\nA: a{i} [correct]\nA: b{i}" for i in range(3))
        )
        s = QuizSession(generate_attempt(doc, random.Random(1)))
        s.unlock()
        s.answer_question(2, "a2")
        s.answer_question(2, "b2")
        assert list(s.question_answers) == [2]
        assert s.question_answers[2] == "b2"
        assert s.answered_questions == 1

    def test_unknown_items(self, session):
        with pytest.raises(UnknownItemError):
            session.answer_question(5, "Paris")
        with pytest.raises(UnknownItemError):
            session.choose_definition(1, "cat", "an animal")
        with pytest.raises(UnknownItemError):
            session.fill_blank(2, 3, "x")

    def test_invalid_choices(self, session):
        with pytest.raises(InvalidAnswerError):
            session.answer_question(0, "London")
        with pytest.raises(InvalidAnswerError):
            session.choose_definition(1, "dog", "a tree")

    def test_whitespace_blank_not_filled(self, session):
        session.fill_blank(2, 0, "   ")
        assert session.filled_blanks == 0

    def test_non_string_blank_rejected(self, session):
        with pytest.raises(InvalidAnswerError):
            session.fill_blank(2, 0, None)
        assert session.cloze_answers == {}
        assert session.filled_blanks == 0


class TestCompleteness:
    def test_gate_flips_once_all_recorded(self, session):
        flips = []
        steps = [
            lambda: session.answer_question(0, "Rome"),
            lambda: session.choose_definition(1, "dog", "a fish"),
            lambda: session.fill_blank(2, 0, "slow"),
        ]
        for step in steps:
            assert not session.is_complete()
            with pytest.raises(SessionStateError):
                session.check()
            step()
            flips.append(session.is_complete())
        assert flips == [False, False, True]

    def test_empty_blank_blocks_check(self, session):
        session.answer_question(0, "Paris")
        session.choose_definition(1, "dog", "an animal")
        session.fill_blank(2, 0, "")
        assert not session.is_complete()

    def test_progress(self, session):
        session.answer_question(0, "Paris")
        p = session.progress()
        assert p["questions"] == {"answered": 1, "total": 1}
        assert p["vocab"] == {"answered": 0, "total": 1}
        assert p["complete"] is False


class TestScoring:
    def test_scoring_example(self, session):
        session.answer_question(0, "Paris")
        session.choose_definition(1, "dog", "a fish")
        session.fill_blank(2, 0, " quick ")
        scores = session.check()
        assert scores.questions == 1
        assert scores.vocab == 0
        assert scores.cloze == 1
        assert (scores.score, scores.total) == (2, 3)
        assert scores.band == "medium"
        assert scores.percentage == 67

    def test_unmarked_question_never_correct(self):
        doc = parse_document("T\n---\nquestions\nQ: Unmarked?\nA: one\nA: two")
        s = QuizSession(generate_attempt(doc, random.Random(0)))
        s.unlock()
        s.answer_question(0, "one")
        assert s.check().score == 0

    def test_empty_session_reaches_checked(self):
        s = QuizSession(generate_attempt(parse_document("Nothing\n---\ntext\nJust reading."), random.Random(0)))
        s.unlock()
        assert s.is_complete()
        scores = s.check()
        assert (scores.score, scores.total) == (0, 0)
        assert scores.fraction == 0.0
        assert s.state is SessionState.CHECKED

    def test_feedback(self, session):
        session.answer_question(0, "Rome")
        session.choose_definition(1, "dog", "an animal")
        session.fill_blank(2, 0, "QUICK")
        with pytest.raises(SessionStateError):
            session.feedback()
        session.check()
        fb = session.feedback()
        assert fb["questions"][0]["correct"] is False
        assert fb["questions"][0]["correct_option"] == "Paris"
        assert fb["vocab"][0]["correct"] is True
        assert fb["cloze"][0]["correct"] is True


class TestScoreBreakdown:
    @pytest.mark.parametrize("score,total,band", [(8, 10, "high"), (5, 10, "medium"), (4, 10, "low"), (0, 0, "low")])
    def test_bands(self, score, total, band):
        assert ScoreBreakdown(questions=score, questions_total=total).band == band

    def test_totals_sum_categories(self):
        b = ScoreBreakdown(vocab=1, vocab_total=2, cloze=3, cloze_total=4, questions=5, questions_total=6)
        assert (b.score, b.total) == (9, 12)
        assert b.to_dict()["cloze"] == {"score": 3, "total": 4}


def test_cloze_matches():
    assert cloze_matches(" quick ", "Quick")
    assert not cloze_matches("quack", "Quick")
