"""
採点エンジン
問題と解答の組から獲得点を計算し、受験者の合計点を集計する

- 副作用なし、例外を投げない（壊れた解答データは 0 点扱い）
- 問題タイプごとの採点方針:
    multiple_choice  完全一致で満点
    multi_select     正解集合と完全一致で満点（部分点なし）
    ordering         [0, 1, ..., n-1] と一致で満点（部分点なし）
    matching         正しいペア数 / 定義ペア数 で部分点（丸めは集計時）
    essay            キーワード一致率で部分点、キーワード未設定なら 10 文字超で満点
"""
import logging
import math

from .models import QUESTION_TYPES

logger = logging.getLogger(__name__)

ESSAY_MIN_LENGTH = 10


def round_half_up(value):
    """四捨五入（Python の round は偶数丸めのため使わない）"""
    return int(math.floor(value + 0.5))


def _index_list(values):
    """int 以外を取り除いたインデックス列"""
    if not isinstance(values, (list, tuple)):
        return []
    return [v for v in values if isinstance(v, int) and not isinstance(v, bool)]


def _question_points(question):
    points = getattr(question, 'points', 0)
    if not isinstance(points, (int, float)) or math.isnan(points) or points <= 0:
        return 0
    return points


def _grade_multiple_choice(question, answer, points):
    selected = _index_list(answer.selected_options)
    correct = _index_list(question.correct_options)
    if not selected or not correct:
        return 0
    return points if selected[0] == correct[0] else 0


def _grade_multi_select(question, answer, points):
    selected = set(_index_list(answer.selected_options))
    correct = set(_index_list(question.correct_options))
    if not selected:
        return 0
    return points if selected == correct else 0


def _grade_ordering(question, answer, points):
    sequence = _index_list(answer.order_sequence)
    items = question.order_items or []
    if not sequence or len(sequence) != len(items):
        return 0
    if all(value == position for position, value in enumerate(sequence)):
        return points
    return 0


def _grade_matching(question, answer, points):
    total = len(question.matches or [])
    if total == 0:
        return 0
    matched_left = set()
    for pair in answer.pairs or []:
        left = getattr(pair, 'left_index', None)
        right = getattr(pair, 'right_index', None)
        if left == right and isinstance(left, int) and 0 <= left < total:
            matched_left.add(left)
    return len(matched_left) / total * points


def _grade_essay(question, answer, points):
    text = answer.text_answer if isinstance(answer.text_answer, str) else ''
    keywords = [k for k in (question.keywords or []) if isinstance(k, str) and k]
    if keywords:
        lowered = text.lower()
        hits = sum(1 for keyword in keywords if keyword.lower() in lowered)
        ratio = min(1, hits / len(keywords))
        return round_half_up(ratio * points)
    return points if len(text.strip()) > ESSAY_MIN_LENGTH else 0


_GRADERS = {
    'multiple_choice': _grade_multiple_choice,
    'multi_select': _grade_multi_select,
    'ordering': _grade_ordering,
    'matching': _grade_matching,
    'essay': _grade_essay,
}


def _answered_choice(question, answer, reached):
    return bool(_index_list(answer.selected_options)) if answer else False


def _answered_essay(question, answer, reached):
    if not answer or not isinstance(answer.text_answer, str):
        return False
    return bool(answer.text_answer.strip())


def _answered_matching(question, answer, reached):
    return bool(answer and answer.pairs)


def _answered_ordering(question, answer, reached):
    # 並べ替え問題は表示時点で初期順序が存在するため、到達した時点で回答済み扱い
    return answer is not None or reached


_ANSWERED = {
    'multiple_choice': _answered_choice,
    'multi_select': _answered_choice,
    'essay': _answered_essay,
    'matching': _answered_matching,
    'ordering': _answered_ordering,
}

for _table in (_GRADERS, _ANSWERED):
    _missing = set(QUESTION_TYPES) - set(_table)
    if _missing:
        raise RuntimeError(f"Unhandled question types: {sorted(_missing)}")


def evaluate(question, answer):
    """1問分の獲得点（0 以上 question.points 以下）"""
    if question is None or answer is None:
        return 0
    grader = _GRADERS.get(getattr(question, 'type', None))
    if grader is None:
        logger.warning(f"Unknown question type for {getattr(question, 'id', '?')}")
        return 0
    points = _question_points(question)
    if not points:
        return 0
    try:
        earned = grader(question, answer, points)
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Malformed answer for question {question.id}: {e}")
        return 0
    return max(0, min(earned, points))


def aggregate_score(student, questions):
    """受験者の合計点（整数に四捨五入）

    問題バンクに存在しない questionId の解答は無視する
    """
    bank = {q.id: q for q in questions}
    total = 0
    for answer in student.answers or []:
        question = bank.get(answer.question_id)
        if question is None:
            continue
        total += evaluate(question, answer)
    return round_half_up(total)


def is_answered(question, answer, reached=False):
    """進捗表示・未回答警告用の「回答済み」判定"""
    predicate = _ANSWERED.get(getattr(question, 'type', None))
    if predicate is None:
        return False
    return bool(predicate(question, answer, reached))
