"""
受験者管理
登録・受験コード発行・コード照合・リセット
"""
import logging
import secrets
import string
import uuid

from .exceptions import InputValidationError
from .models import Student

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_code(length=CODE_LENGTH):
    """受験コード（英大文字+数字）を生成"""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class StudentManager:
    def __init__(self, storage):
        self.storage = storage

    def get_students(self):
        return self.storage.get_students()

    def get_student(self, student_id):
        return self.storage.get_student(student_id)

    def find_by_code(self, code):
        """受験コードで検索（大文字小文字を区別しない）。見つからなければ None"""
        if not code or not isinstance(code, str) or not code.strip():
            return None
        for student in self.storage.get_students():
            if student.matches_code(code):
                return student
        return None

    def _unique_code(self):
        used = {s.code.upper() for s in self.storage.get_students()}
        code = generate_code()
        while code in used:
            code = generate_code()
        return code

    def add_student(self, name, class_name, school=None):
        name = (name or '').strip()
        class_name = (class_name or '').strip()
        if not name:
            raise InputValidationError('Nama siswa wajib diisi.', 'name')
        if not class_name:
            raise InputValidationError('Kelas wajib diisi.', 'className')

        student = Student(
            id=uuid.uuid4().hex,
            name=name,
            class_name=class_name,
            school=(school or '').strip() or '-',
            code=self._unique_code(),
        )
        self.storage.save_student(student)
        logger.info(f"Student registered: {student.id} code={student.code}")
        return student

    def reset_student(self, student_id):
        """受験状態を未受験に戻す（解答・開始時刻・得点を消去）"""
        student = self.storage.get_student(student_id)
        if student is None:
            return None
        student.reset()
        self.storage.save_student(student)
        logger.info(f"Student reset: {student.id}")
        return student

    def delete_student(self, student_id):
        if self.storage.get_student(student_id) is None:
            return False
        self.storage.delete_student(student_id)
        return True
