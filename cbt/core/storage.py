"""
ストレージ（受験者・問題・試験設定の読み書き）

コアロジックは ExamStorage インターフェースだけに依存し、
実体（DatabaseStorage）はアプリ起動時に注入する。
読み書きは同期・レコード単位の upsert で、部分更新やトランザクションは持たない。
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import ValidationError

from .models import ExamConfig, Question, Student, parse_question

logger = logging.getLogger(__name__)

STUDENTS = 'students'
QUESTIONS = 'questions'
CONFIG_KEY = 'exam_config'
SUBJECTS_KEY = 'subjects'

DEFAULT_SUBJECTS = ['Matematika', 'Bahasa Indonesia', 'IPA', 'IPS', 'PKN', 'Bahasa Inggris']


class ExamStorage(ABC):
    """コアが利用するストレージのインターフェース"""

    @abstractmethod
    def get_students(self) -> List[Student]:
        ...

    @abstractmethod
    def save_student(self, student: Student):
        ...

    @abstractmethod
    def delete_student(self, student_id):
        ...

    @abstractmethod
    def get_questions(self) -> List[Question]:
        ...

    @abstractmethod
    def save_question(self, question: Question):
        ...

    @abstractmethod
    def delete_question(self, question_id):
        ...

    @abstractmethod
    def get_exam_config(self) -> ExamConfig:
        ...

    @abstractmethod
    def save_exam_config(self, config: ExamConfig):
        ...

    @abstractmethod
    def get_subjects(self) -> List[str]:
        ...

    @abstractmethod
    def save_subjects(self, subjects: List[str]):
        ...

    def get_student(self, student_id) -> Optional[Student]:
        for student in self.get_students():
            if student.id == student_id:
                return student
        return None


def _decode(value):
    # PostgreSQL の JSON 列は dict、SQLite は文字列で返る
    if isinstance(value, str):
        return json.loads(value)
    return value


class DatabaseStorage(ExamStorage):
    """DatabaseManager を使った ExamStorage 実装"""

    def __init__(self, db_manager, default_duration_minutes=90):
        self.db_manager = db_manager
        self.default_duration_minutes = default_duration_minutes

    # --- 共通 ---

    def _load_collection(self, collection):
        p = self.db_manager.placeholder
        rows = self.db_manager.execute_query(
            f'SELECT record_id, data FROM records WHERE collection = {p} ORDER BY id',
            (collection,)
        )
        return [(row['record_id'], _decode(row['data'])) for row in rows or []]

    def _upsert_record(self, collection, record_id, data):
        p = self.db_manager.placeholder
        self.db_manager.execute_query(
            f'''INSERT INTO records (collection, record_id, data)
                VALUES ({p}, {p}, {p})
                ON CONFLICT (collection, record_id)
                DO UPDATE SET data = excluded.data, updated_at = CURRENT_TIMESTAMP''',
            (collection, str(record_id), json.dumps(data, ensure_ascii=False))
        )

    def _delete_record(self, collection, record_id):
        p = self.db_manager.placeholder
        return self.db_manager.execute_query(
            f'DELETE FROM records WHERE collection = {p} AND record_id = {p}',
            (collection, str(record_id))
        )

    def _get_setting(self, key):
        p = self.db_manager.placeholder
        rows = self.db_manager.execute_query(
            f'SELECT value FROM settings WHERE key = {p}', (key,)
        )
        return _decode(rows[0]['value']) if rows else None

    def _set_setting(self, key, value):
        p = self.db_manager.placeholder
        self.db_manager.execute_query(
            f'''INSERT INTO settings (key, value) VALUES ({p}, {p})
                ON CONFLICT (key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP''',
            (key, json.dumps(value, ensure_ascii=False))
        )

    # --- 受験者 ---

    def get_students(self):
        students = []
        for record_id, data in self._load_collection(STUDENTS):
            try:
                students.append(Student.model_validate(data))
            except ValidationError as e:
                logger.warning(f"Skipping malformed student record {record_id}: {e}")
        return students

    def save_student(self, student):
        self._upsert_record(STUDENTS, student.id, student.to_record())

    def delete_student(self, student_id):
        self._delete_record(STUDENTS, student_id)

    # --- 問題 ---

    def get_questions(self):
        questions = []
        for record_id, data in self._load_collection(QUESTIONS):
            try:
                questions.append(parse_question(data))
            except ValidationError as e:
                logger.warning(f"Skipping malformed question record {record_id}: {e}")
        return questions

    def save_question(self, question):
        self._upsert_record(QUESTIONS, question.id, question.to_record())

    def delete_question(self, question_id):
        self._delete_record(QUESTIONS, question_id)

    def count_questions(self):
        p = self.db_manager.placeholder
        result = self.db_manager.execute_query(
            f'SELECT COUNT(*) as count FROM records WHERE collection = {p}', (QUESTIONS,)
        )
        return result[0]['count'] if result else 0

    # --- 試験設定 ---

    def get_exam_config(self):
        stored = self._get_setting(CONFIG_KEY)
        defaults = {'durationMinutes': self.default_duration_minutes}
        if not stored:
            return ExamConfig.model_validate(defaults)
        merged = {**defaults, **stored}
        merged['subjectSchedules'] = stored.get('subjectSchedules') or []
        try:
            return ExamConfig.model_validate(merged)
        except ValidationError as e:
            logger.error(f"Stored exam config is invalid, using defaults: {e}")
            return ExamConfig.model_validate(defaults)

    def save_exam_config(self, config):
        self._set_setting(CONFIG_KEY, config.to_record())

    # --- 科目 ---

    def get_subjects(self):
        stored = self._get_setting(SUBJECTS_KEY)
        if stored is None:
            self._set_setting(SUBJECTS_KEY, DEFAULT_SUBJECTS)
            return list(DEFAULT_SUBJECTS)
        return list(stored)

    def save_subjects(self, subjects):
        self._set_setting(SUBJECTS_KEY, list(subjects))
