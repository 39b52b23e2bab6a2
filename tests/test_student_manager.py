import pytest

from cbt.core.exceptions import InputValidationError
from cbt.core.models import Answer
from cbt.core.student_manager import CODE_ALPHABET, StudentManager, generate_code


@pytest.fixture()
def sm(storage):
    return StudentManager(storage)


def test_generate_code_format():
    code = generate_code()
    assert len(code) == 6
    assert all(c in CODE_ALPHABET for c in code)


def test_add_student_issues_unique_code(sm, storage):
    student = sm.add_student(' Siti ', '6B', '')
    assert student.name == 'Siti'
    assert student.school == '-'
    assert student.status == 'not_started'
    assert student.code != 'ABC123'
    assert len(storage.students) == 2


def test_add_student_validation(sm):
    with pytest.raises(InputValidationError) as exc:
        sm.add_student('', '6A')
    assert exc.value.field == 'name'
    with pytest.raises(InputValidationError):
        sm.add_student('Ani', '  ')


def test_find_by_code_is_case_insensitive(sm):
    assert sm.find_by_code(' abc123 ').id == 's1'
    assert sm.find_by_code('ZZZZZZ') is None
    assert sm.find_by_code('') is None


def test_reset_clears_exam_state(sm, storage, student):
    done = student.model_copy(update={
        'status': 'completed', 'score': 80, 'start_time': 123,
        'answers': [Answer(question_id='mc1', selected_options=[1])],
    })
    storage.save_student(done)

    reset = sm.reset_student('s1')
    assert reset.status == 'not_started'
    assert reset.answers == []
    assert reset.score == 0
    assert reset.start_time is None
    assert storage.get_student('s1').status == 'not_started'
    assert sm.reset_student('missing') is None


def test_delete_student(sm, storage):
    assert sm.delete_student('s1')
    assert storage.students == []
    assert not sm.delete_student('s1')
