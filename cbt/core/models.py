"""
ドメインモデル（問題・解答・受験者・試験設定）

保存形式は camelCase（questionId, correctOptions ...）のため、
各フィールドに alias を付けて by_alias=True でシリアライズする。
"""
import logging
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = 'Umum'

QUESTION_TYPES = ('multiple_choice', 'multi_select', 'matching', 'ordering', 'essay')
STUDENT_STATUSES = ('not_started', 'in_progress', 'completed')

StudentStatus = Literal['not_started', 'in_progress', 'completed']


class Record(BaseModel):
    """保存レコードの共通設定"""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    def to_record(self):
        """ストレージ保存用の dict（camelCase, 未設定フィールドは省略）"""
        return self.model_dump(by_alias=True, exclude_none=True, mode='json')


# --- 問題 ---

class MatchPairDefinition(Record):
    left: str = ''
    right: str = ''


class QuestionBase(Record):
    id: str
    text: str = ''
    subject: str = DEFAULT_SUBJECT
    image_url: Optional[str] = Field(None, alias='imageUrl')
    points: Union[int, float] = 0


class MultipleChoiceQuestion(QuestionBase):
    type: Literal['multiple_choice'] = 'multiple_choice'
    options: List[str] = []
    correct_options: List[int] = Field(default_factory=list, alias='correctOptions')


class MultiSelectQuestion(QuestionBase):
    type: Literal['multi_select'] = 'multi_select'
    options: List[str] = []
    correct_options: List[int] = Field(default_factory=list, alias='correctOptions')


class MatchingQuestion(QuestionBase):
    """左側は固定順、右側は受験者にシャッフルして提示する"""
    type: Literal['matching'] = 'matching'
    matches: List[MatchPairDefinition] = []


class OrderingQuestion(QuestionBase):
    """orderItems の並びそのものが正解順"""
    type: Literal['ordering'] = 'ordering'
    order_items: List[str] = Field(default_factory=list, alias='orderItems')


class EssayQuestion(QuestionBase):
    type: Literal['essay'] = 'essay'
    keywords: List[str] = []


Question = Annotated[
    Union[MultipleChoiceQuestion, MultiSelectQuestion, MatchingQuestion,
          OrderingQuestion, EssayQuestion],
    Field(discriminator='type'),
]

_question_adapter = TypeAdapter(Question)


def parse_question(data) -> Question:
    """dict から type に応じた問題モデルを生成"""
    return _question_adapter.validate_python(data)


# --- 解答 ---

class MatchPair(Record):
    left_index: int = Field(alias='leftIndex')
    right_index: int = Field(alias='rightIndex')


class Answer(Record):
    """1問分の解答。問題の type に関係するフィールドだけを持つ"""
    question_id: str = Field(alias='questionId')
    selected_options: Optional[List[int]] = Field(None, alias='selectedOptions')
    text_answer: Optional[str] = Field(None, alias='textAnswer')
    pairs: Optional[List[MatchPair]] = None
    order_sequence: Optional[List[int]] = Field(None, alias='orderSequence')


# --- 受験者 ---

class Student(Record):
    id: str
    name: str = ''
    code: str
    class_name: str = Field('', alias='className')
    school: str = '-'
    status: StudentStatus = 'not_started'
    start_time: Optional[int] = Field(None, alias='startTime')  # epoch ms
    answers: List[Answer] = []
    score: int = 0

    @field_validator('answers', mode='before')
    @classmethod
    def drop_broken_answers(cls, value):
        """壊れた解答だけを捨て、受験者レコード自体は読めるようにする"""
        if not isinstance(value, list):
            return value
        answers = []
        for item in value:
            try:
                answers.append(Answer.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping malformed answer {item!r}: {e}")
        return answers

    def find_answer(self, question_id) -> Optional[Answer]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None

    def upsert_answer(self, answer: Answer):
        """questionId 単位で置き換え（なければ末尾に追加）"""
        answers = list(self.answers)
        for i, existing in enumerate(answers):
            if existing.question_id == answer.question_id:
                answers[i] = answer
                break
        else:
            answers.append(answer)
        self.answers = answers

    def matches_code(self, code) -> bool:
        if not code or not isinstance(code, str):
            return False
        return self.code.upper() == code.strip().upper()

    def reset(self):
        """管理者リセット: 未受験状態に戻す"""
        self.status = 'not_started'
        self.answers = []
        self.score = 0
        self.start_time = None


# --- 試験設定 ---

class SubjectSchedule(Record):
    id: str = ''
    subject: str
    scheduled_start: str = Field(alias='scheduledStart')
    scheduled_end: str = Field(alias='scheduledEnd')


class ExamConfig(Record):
    title: str = 'TRY OUT TKA SD'
    duration_minutes: int = Field(90, alias='durationMinutes')
    description: str = 'Tes Kemampuan Akademik untuk persiapan ujian sekolah.'
    scheduled_start: Optional[str] = Field(None, alias='scheduledStart')
    scheduled_end: Optional[str] = Field(None, alias='scheduledEnd')
    subject_schedules: List[SubjectSchedule] = Field(default_factory=list, alias='subjectSchedules')

    @property
    def is_subject_scoped(self) -> bool:
        return bool(self.subject_schedules)
