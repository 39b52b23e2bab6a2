import pytest

from cbt.core.models import Answer, MatchPair, Student, parse_question
from cbt.core.scoring import aggregate_score, evaluate, is_answered, round_half_up


def by_id(questions, question_id):
    return next(q for q in questions if q.id == question_id)


def test_multiple_choice_full_or_zero(questions):
    mc = by_id(questions, 'mc1')
    assert evaluate(mc, Answer(question_id='mc1', selected_options=[1])) == 10
    assert evaluate(mc, Answer(question_id='mc1', selected_options=[0])) == 0
    assert evaluate(mc, Answer(question_id='mc1', selected_options=[])) == 0


def test_multi_select_requires_exact_set(questions):
    ms = by_id(questions, 'ms1')
    assert evaluate(ms, Answer(question_id='ms1', selected_options=[2, 1])) == 10
    # 部分点なし
    assert evaluate(ms, Answer(question_id='ms1', selected_options=[1])) == 0
    assert evaluate(ms, Answer(question_id='ms1', selected_options=[1, 2, 3])) == 0
    assert evaluate(ms, Answer(question_id='ms1', selected_options=[])) == 0


def test_ordering_only_identity_sequence_scores(questions):
    ordering = by_id(questions, 'or1')
    assert evaluate(ordering, Answer(question_id='or1', order_sequence=[0, 1, 2, 3])) == 15
    assert evaluate(ordering, Answer(question_id='or1', order_sequence=[1, 0, 2, 3])) == 0
    assert evaluate(ordering, Answer(question_id='or1', order_sequence=[0, 1, 2])) == 0


def test_matching_partial_credit(questions):
    matching = by_id(questions, 'ma1')
    answer = Answer(question_id='ma1', pairs=[
        MatchPair(left_index=0, right_index=0),
        MatchPair(left_index=1, right_index=2),
        MatchPair(left_index=2, right_index=2),
    ])
    assert evaluate(matching, answer) == pytest.approx(10)


def test_matching_duplicate_pairs_count_once(questions):
    matching = by_id(questions, 'ma1')
    answer = Answer(question_id='ma1', pairs=[
        MatchPair(left_index=0, right_index=0),
        MatchPair(left_index=0, right_index=0),
        MatchPair(left_index=5, right_index=5),
    ])
    assert evaluate(matching, answer) == pytest.approx(5)


def test_essay_keyword_ratio_rounds_half_up(questions):
    essay = by_id(questions, 'es1')
    answer = Answer(question_id='es1', text_answer='Lingkungan bersih membuat SEHAT dan mencegah banjir.')
    assert evaluate(essay, answer) == 10
    answer = Answer(question_id='es1', text_answer='sehat banjir nyaman penyakit sehat')
    assert evaluate(essay, answer) == 20


def test_essay_keyword_ratio_half_case():
    essay = parse_question({
        'id': 'e', 'type': 'essay', 'text': 't', 'points': 5, 'keywords': ['a', 'zz'],
    })
    # 0.5 * 5 = 2.5 -> 3
    assert evaluate(essay, Answer(question_id='e', text_answer='a')) == 3


def test_essay_without_keywords_uses_length():
    essay = parse_question({'id': 'e', 'type': 'essay', 'text': 't', 'points': 8})
    assert evaluate(essay, Answer(question_id='e', text_answer='12345678901')) == 8
    assert evaluate(essay, Answer(question_id='e', text_answer='1234567890')) == 0
    assert evaluate(essay, Answer(question_id='e', text_answer='   12345      ')) == 0


def test_missing_answer_scores_zero(questions):
    for question in questions:
        assert evaluate(question, None) == 0
        assert evaluate(question, Answer(question_id=question.id)) == 0


def test_malformed_answer_never_raises(questions):
    matching = by_id(questions, 'ma1')
    broken = Answer.model_construct(question_id='ma1', pairs=[{'leftIndex': 0}], selected_options=None,
                                    text_answer=None, order_sequence=None)
    assert evaluate(matching, broken) == 0

    mc = by_id(questions, 'mc1')
    weird = Answer.model_construct(question_id='mc1', selected_options='1', text_answer=None,
                                   pairs=None, order_sequence=None)
    assert evaluate(mc, weird) == 0


def test_score_is_bounded_by_points(questions):
    answers = [
        Answer(question_id='mc1', selected_options=[1, 0]),
        Answer(question_id='ms1', selected_options=[1, 2]),
        Answer(question_id='or1', order_sequence=[0, 1, 2, 3]),
        Answer(question_id='ma1', pairs=[MatchPair(left_index=i, right_index=i) for i in range(3)]),
        Answer(question_id='es1', text_answer='sehat banjir nyaman penyakit'),
    ]
    for answer in answers:
        question = by_id(questions, answer.question_id)
        assert 0 <= evaluate(question, answer) <= question.points


def test_aggregate_rounds_sum_and_ignores_unknown_questions(questions):
    student = Student(id='s', code='X', answers=[
        Answer(question_id='mc1', selected_options=[1]),
        Answer(question_id='ma1', pairs=[MatchPair(left_index=0, right_index=0)]),
        Answer(question_id='deleted', selected_options=[0]),
    ])
    # 10 + 15/3 = 15
    assert aggregate_score(student, questions) == 15


def test_aggregate_rounds_fraction_half_up():
    matching = parse_question({
        'id': 'm', 'type': 'matching', 'text': 't', 'points': 3,
        'matches': [{'left': 'a', 'right': 'b'}, {'left': 'c', 'right': 'd'}],
    })
    student = Student(id='s', code='X', answers=[
        Answer(question_id='m', pairs=[MatchPair(left_index=1, right_index=1)]),
    ])
    # 1.5 -> 2
    assert aggregate_score(student, [matching]) == 2


def test_aggregate_is_deterministic(questions):
    student = Student(id='s', code='X', answers=[
        Answer(question_id='ms1', selected_options=[1, 2]),
        Answer(question_id='es1', text_answer='nyaman'),
    ])
    assert aggregate_score(student, questions) == aggregate_score(student, questions) == 15


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2


def test_is_answered_per_type(questions):
    mc, ms, ordering, matching, essay = questions
    assert not is_answered(mc, None)
    assert is_answered(mc, Answer(question_id='mc1', selected_options=[0]))
    assert not is_answered(ms, Answer(question_id='ms1', selected_options=[]))
    assert not is_answered(essay, Answer(question_id='es1', text_answer='   '))
    assert is_answered(essay, Answer(question_id='es1', text_answer='x'))
    assert not is_answered(matching, Answer(question_id='ma1', pairs=[]))
    assert is_answered(matching, Answer(question_id='ma1', pairs=[MatchPair(left_index=0, right_index=1)]))


def test_ordering_counts_as_answered_once_reached(questions):
    ordering = by_id(questions, 'or1')
    assert not is_answered(ordering, None)
    assert is_answered(ordering, None, reached=True)
    assert is_answered(ordering, Answer(question_id='or1', order_sequence=[1, 0, 2, 3]))


def test_aggregate_ignores_answer_order(questions):
    answers = [
        Answer(question_id='mc1', selected_options=[1]),
        Answer(question_id='ms1', selected_options=[2, 1]),
        Answer(question_id='or1', order_sequence=[0, 1, 2, 3]),
        Answer(question_id='ma1', pairs=[MatchPair(left_index=0, right_index=0)]),
        Answer(question_id='es1', text_answer='sehat'),
    ]
    forward = Student(id='s', code='X', answers=answers)
    backward = Student(id='s', code='X', answers=list(reversed(answers)))
    # 10 + 10 + 15 + 5 + 5
    assert aggregate_score(forward, questions) == 45
    assert aggregate_score(backward, questions) == 45
    assert aggregate_score(forward, list(reversed(questions))) == 45


def test_student_drops_only_broken_answers():
    student = Student.model_validate({
        'id': 's', 'code': 'X',
        'answers': [
            {'questionId': 'es1', 'textAnswer': 12345},
            {'questionId': 'mc1', 'selectedOptions': [1]},
        ],
    })
    assert [a.question_id for a in student.answers] == ['mc1']
