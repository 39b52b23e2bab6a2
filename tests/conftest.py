import pytest

from cbt.core.models import ExamConfig, Student, parse_question
from cbt.core.storage import DEFAULT_SUBJECTS, ExamStorage
from cbt.core.timers import IntervalScheduler


class ManualClock:
    """手動で進める時計（epoch 秒）"""

    def __init__(self, start=1_700_000_000.0):
        self.current = start

    def now(self):
        return self.current

    def advance(self, seconds):
        self.current += seconds


class InMemoryStorage(ExamStorage):
    def __init__(self, questions=None, students=None, config=None):
        self.questions = list(questions or [])
        self.students = list(students or [])
        self.config = config or ExamConfig()
        self.subjects = list(DEFAULT_SUBJECTS)
        self.save_count = 0
        self.fail_saves = False

    def get_students(self):
        return [s.model_copy(deep=True) for s in self.students]

    def save_student(self, student):
        if self.fail_saves:
            raise IOError("storage unavailable")
        self.save_count += 1
        copy = student.model_copy(deep=True)
        for i, existing in enumerate(self.students):
            if existing.id == student.id:
                self.students[i] = copy
                return
        self.students.append(copy)

    def delete_student(self, student_id):
        self.students = [s for s in self.students if s.id != student_id]

    def get_questions(self):
        return list(self.questions)

    def save_question(self, question):
        for i, existing in enumerate(self.questions):
            if existing.id == question.id:
                self.questions[i] = question
                return
        self.questions.append(question)

    def delete_question(self, question_id):
        self.questions = [q for q in self.questions if q.id != question_id]

    def get_exam_config(self):
        return self.config.model_copy(deep=True)

    def save_exam_config(self, config):
        self.config = config

    def get_subjects(self):
        return list(self.subjects)

    def save_subjects(self, subjects):
        self.subjects = list(subjects)


def make_questions():
    return [
        parse_question({
            'id': 'mc1', 'type': 'multiple_choice', 'subject': 'Matematika',
            'text': '2 + 2 = ?', 'points': 10,
            'options': ['3', '4', '5'], 'correctOptions': [1],
        }),
        parse_question({
            'id': 'ms1', 'type': 'multi_select', 'subject': 'IPA',
            'text': 'Hewan mamalia?', 'points': 10,
            'options': ['Ayam', 'Kucing', 'Sapi', 'Buaya'], 'correctOptions': [1, 2],
        }),
        parse_question({
            'id': 'or1', 'type': 'ordering', 'subject': 'IPA',
            'text': 'Urutkan', 'points': 15,
            'orderItems': ['Telur', 'Ulat', 'Kepompong', 'Kupu-kupu'],
        }),
        parse_question({
            'id': 'ma1', 'type': 'matching', 'subject': 'IPS',
            'text': 'Pasangkan', 'points': 15,
            'matches': [
                {'left': 'Jawa Barat', 'right': 'Bandung'},
                {'left': 'Jawa Timur', 'right': 'Surabaya'},
                {'left': 'Bali', 'right': 'Denpasar'},
            ],
        }),
        parse_question({
            'id': 'es1', 'type': 'essay', 'subject': 'Matematika',
            'text': 'Jelaskan', 'points': 20,
            'keywords': ['sehat', 'banjir', 'nyaman', 'penyakit'],
        }),
    ]


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def scheduler(clock):
    return IntervalScheduler(clock)


@pytest.fixture()
def questions():
    return make_questions()


@pytest.fixture()
def student():
    return Student(id='s1', name='Budi', code='ABC123', class_name='6A')


@pytest.fixture()
def storage(questions, student):
    return InMemoryStorage(questions=questions, students=[student])
