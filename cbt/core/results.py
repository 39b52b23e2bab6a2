"""
試験結果の表示用データ
得点・問題ごとの獲得点・解答の要約・メッセージを組み立てる
"""
from .question_manager import filter_by_subject
from .scoring import evaluate, round_half_up

NO_ANSWER = 'Tidak menjawab'


def motivation_for(score):
    """得点帯ごとのメッセージ"""
    if score >= 100:
        return {'band': 'perfect', 'message': 'Luar Biasa! Sempurna!'}
    if score >= 80:
        return {'band': 'great', 'message': 'Kerja Bagus! Pertahankan!'}
    if score >= 60:
        return {'band': 'good', 'message': 'Cukup Baik. Tingkatkan lagi.'}
    return {'band': 'low', 'message': 'Jangan Menyerah. Ayo belajar lagi!'}


def _truncate(text, limit):
    return text[:limit] + '...' if len(text) > limit else text


def summarize_answer(question, answer):
    """解答の短い要約（一覧表示用）"""
    if answer is None:
        answer_fields = {}
    else:
        answer_fields = answer.model_dump()

    if question.type == 'multiple_choice':
        selected = answer_fields.get('selected_options') or []
        if selected and 0 <= selected[0] < len(question.options):
            return question.options[selected[0]]
        return NO_ANSWER
    if question.type == 'multi_select':
        selected = answer_fields.get('selected_options') or []
        if not selected:
            return NO_ANSWER
        labels = ', '.join(question.options[i] for i in selected if 0 <= i < len(question.options))
        return _truncate(labels, 40)
    if question.type == 'essay':
        text = answer_fields.get('text_answer') or ''
        return _truncate(text, 50) if text else NO_ANSWER
    if question.type == 'ordering':
        sequence = answer_fields.get('order_sequence')
        if not sequence:
            return 'Belum diurutkan'
        in_order = all(value == i for i, value in enumerate(sequence))
        return 'Urutan Benar' if in_order else 'Urutan Salah'
    if question.type == 'matching':
        pairs = answer_fields.get('pairs') or []
        return f'{len(pairs)} dari {len(question.matches)} pasangan'
    return '-'


def build_result_report(student, questions, subject=None):
    """結果画面用のレポート

    得点は受験者レコードの score（全問題で採点済み）をそのまま使い、
    問題一覧だけを受験科目で絞り込む
    """
    items = []
    for number, question in enumerate(filter_by_subject(questions, subject), start=1):
        answer = student.find_answer(question.id)
        earned = evaluate(question, answer)
        if earned == question.points:
            status = 'full'
        elif earned == 0:
            status = 'zero'
        else:
            status = 'partial'
        items.append({
            'number': number,
            'question_id': question.id,
            'type': question.type,
            'text': question.text,
            'points': question.points,
            'points_earned': round(earned, 2),
            'status': status,
            'summary': summarize_answer(question, answer),
        })

    return {
        'student': {
            'id': student.id,
            'name': student.name,
            'code': student.code,
            'className': student.class_name,
            'school': student.school,
        },
        'score': student.score,
        'subject': subject,
        'total_questions': len(items),
        'motivation': motivation_for(student.score),
        'items': items,
    }


def summarize_students(students):
    """管理画面の集計（受験完了者の平均点・完了人数）"""
    completed = [s for s in students if s.status == 'completed']
    average = 0
    if completed:
        average = round_half_up(sum(s.score for s in completed) / len(completed) * 10) / 10
    return {
        'total': len(students),
        'completed': len(completed),
        'average_score': average,
    }
