"""
問題管理クラス
問題の取得、入力チェック、保存、削除を管理
"""
import logging
import uuid

from .exceptions import InputValidationError
from .models import DEFAULT_SUBJECT, QUESTION_TYPES, parse_question

logger = logging.getLogger(__name__)


def filter_by_subject(questions, subject):
    """科目名（大文字小文字を区別しない完全一致）で問題を絞り込む"""
    if not subject:
        return list(questions)
    target = subject.strip().lower()
    return [q for q in questions if (q.subject or '').strip().lower() == target]


def _first(data, *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _clean_strings(values):
    if not isinstance(values, (list, tuple)):
        return []
    return [str(v) for v in values if v is not None]


def parse_keywords(value):
    """キーワード（カンマ区切り文字列またはリスト）を正規化"""
    if isinstance(value, str):
        parts = value.split(',')
    elif isinstance(value, (list, tuple)):
        parts = [str(v) for v in value if v is not None]
    else:
        return []
    return [p.strip() for p in parts if p.strip()]


class QuestionManager:
    """問題管理クラス"""

    def __init__(self, storage):
        self.storage = storage

    def get_questions(self, subject=None):
        return filter_by_subject(self.storage.get_questions(), subject)

    def get_question(self, question_id):
        for question in self.storage.get_questions():
            if question.id == str(question_id):
                return question
        return None

    def get_question_count_by_subject(self):
        """科目別問題数を取得"""
        counts = {}
        for question in self.storage.get_questions():
            counts[question.subject] = counts.get(question.subject, 0) + 1
        return counts

    def validate_question(self, data):
        """入力チェックを行い、保存可能な問題モデルを返す

        不正な入力は InputValidationError（画面表示用の理由付き）
        """
        qtype = data.get('type') or 'multiple_choice'
        if qtype not in QUESTION_TYPES:
            raise InputValidationError('Tipe soal tidak dikenal.', 'type')

        text = str(data.get('text') or '')
        if not text.strip():
            raise InputValidationError('Pertanyaan wajib diisi', 'text')

        try:
            points = float(data.get('points'))
        except (TypeError, ValueError):
            points = 0
        if points <= 0:
            raise InputValidationError('Poin harus lebih dari 0', 'points')
        if points.is_integer():
            points = int(points)

        subject = str(data.get('subject') or '').strip() or DEFAULT_SUBJECT

        record = {
            'id': str(data.get('id') or uuid.uuid4().hex),
            'type': qtype,
            'text': text,
            'subject': subject,
            'points': points,
        }
        image_url = _first(data, 'imageUrl', 'image_url')
        if image_url:
            record['imageUrl'] = image_url

        if qtype in ('multiple_choice', 'multi_select'):
            record.update(self._validate_choices(data, qtype))
        elif qtype == 'matching':
            record['matches'] = self._validate_matches(data)
        elif qtype == 'ordering':
            record['orderItems'] = self._validate_order_items(data)
        elif qtype == 'essay':
            keywords = parse_keywords(data.get('keywords'))
            if keywords:
                record['keywords'] = keywords

        return parse_question(record)

    def _validate_choices(self, data, qtype):
        raw_options = _clean_strings(data.get('options'))
        raw_correct = _first(data, 'correctOptions', 'correct_options', default=[])

        # 空欄の選択肢を詰めるので、正解インデックスも詰めた位置に付け替える
        options = []
        position = {}
        for i, option in enumerate(raw_options):
            if option.strip():
                position[i] = len(options)
                options.append(option)

        if len(options) < 2:
            raise InputValidationError('Minimal 2 opsi jawaban wajib diisi.', 'options')

        correct = []
        for index in raw_correct if isinstance(raw_correct, (list, tuple)) else []:
            if isinstance(index, int) and index in position and position[index] not in correct:
                correct.append(position[index])

        if not correct:
            raise InputValidationError('Pilih minimal satu jawaban yang benar.', 'correctOptions')
        if qtype == 'multiple_choice' and len(correct) != 1:
            raise InputValidationError('Pilihan ganda hanya boleh memiliki satu jawaban benar.', 'correctOptions')

        return {'options': options, 'correctOptions': correct}

    def _validate_matches(self, data):
        matches = []
        for pair in data.get('matches') or []:
            if not isinstance(pair, dict):
                continue
            left = str(pair.get('left') or '').strip()
            right = str(pair.get('right') or '').strip()
            if left and right:
                matches.append({'left': left, 'right': right})
        if len(matches) < 1:
            raise InputValidationError('Minimal 1 pasangan wajib diisi.', 'matches')
        return matches

    def _validate_order_items(self, data):
        raw = _first(data, 'orderItems', 'order_items', default=[])
        items = [item for item in _clean_strings(raw) if item.strip()]
        if len(items) < 2:
            raise InputValidationError('Minimal 2 item urutan wajib diisi.', 'orderItems')
        return items

    def save_question(self, data):
        """問題を検証して保存（id があれば上書き）"""
        try:
            question = self.validate_question(data)
        except InputValidationError as e:
            logger.info(f"Question rejected: {e.message}")
            raise
        self.storage.save_question(question)
        logger.info(f"Question saved: {question.id} ({question.type}, {question.subject})")
        return question

    def delete_question(self, question_id):
        if self.get_question(question_id) is None:
            return False
        self.storage.delete_question(str(question_id))
        return True
