"""
試験セッション制御
1人の受験者の1回の受験を管理する状態機械

    Initializing -> Active -> Submitting -> Completed

- 開始時刻は受験者ごとに一度だけ記録し、再入室でリセットしない
- 解答の変更は即時保存（write-through）、加えて一定間隔で自動保存
- 残り時間が閾値を切ったら一度だけ警告を出す
- 手動終了は確認を挟み、時間切れは確認なしで自動提出する
- 提出処理は二重実行しない。保存に失敗したら再試行できる状態に戻す
"""
import logging
import random
import threading
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from .exceptions import SubmissionError
from .models import QUESTION_TYPES, Answer, MatchPair
from .question_manager import filter_by_subject
from .scoring import aggregate_score, is_answered
from .timers import IntervalScheduler

logger = logging.getLogger(__name__)

SUBMIT_FAILED_MESSAGE = 'Terjadi kesalahan saat menyimpan jawaban. Silakan coba lagi.'
NO_QUESTIONS_MESSAGE = 'Tidak Ada Soal'


class SessionState(str, Enum):
    INITIALIZING = 'initializing'
    ACTIVE = 'active'
    SUBMITTING = 'submitting'
    COMPLETED = 'completed'


class Notice(BaseModel):
    """画面に出すダイアログの内容（表示は呼び出し側）"""
    title: str
    body: str
    severity: str = 'info'
    unanswered: List[int] = []


def _is_index(value):
    return isinstance(value, int) and not isinstance(value, bool)


def format_time(seconds):
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f'{minutes}:{secs:02d}'


def _present_choices(question, answer, seed):
    return {
        'options': list(question.options),
        'multiple': question.type == 'multi_select',
    }


def _present_matching(question, answer, seed):
    right = [{'index': i, 'text': m.right} for i, m in enumerate(question.matches)]
    random.Random(seed).shuffle(right)
    return {
        'left': [m.left for m in question.matches],
        'right': right,
    }


def _present_ordering(question, answer, seed):
    count = len(question.order_items)
    sequence = answer.order_sequence if answer and answer.order_sequence else list(range(count))
    return {
        'items': [
            {'index': i, 'text': question.order_items[i]}
            for i in sequence if isinstance(i, int) and 0 <= i < count
        ],
    }


def _present_essay(question, answer, seed):
    return {}


_PRESENTERS = {
    'multiple_choice': _present_choices,
    'multi_select': _present_choices,
    'matching': _present_matching,
    'ordering': _present_ordering,
    'essay': _present_essay,
}

_missing = set(QUESTION_TYPES) - set(_PRESENTERS)
if _missing:
    raise RuntimeError(f"Unhandled question types: {sorted(_missing)}")


class ExamSessionController:
    """受験セッションの状態機械

    storage   ExamStorage 実装
    student   ログインした受験者
    subject   科目別日程で限定された科目（None なら全問題）
    scheduler カウントダウン・自動保存を登録する IntervalScheduler
    on_finish 提出完了時に確定済みの Student を受け取るコールバック
    """

    def __init__(self, storage, student, subject=None, scheduler=None, clock=None,
                 on_finish=None, tick_seconds=1, autosave_seconds=60, low_time_seconds=60):
        self.storage = storage
        self.student = student.model_copy(deep=True)
        self.subject = subject
        self.scheduler = scheduler or IntervalScheduler(clock)
        self.clock = self.scheduler.clock
        self.on_finish = on_finish
        self.tick_seconds = tick_seconds
        self.autosave_seconds = autosave_seconds
        self.low_time_seconds = low_time_seconds

        self.state = SessionState.INITIALIZING
        self.config = None
        self.questions = []
        self.current_index = 0
        self.visited = set()
        self.time_left = 0
        self.low_time_warning: Optional[Notice] = None
        self.confirmation: Optional[Notice] = None
        self.last_saved = None
        self.last_error = None

        self._warned = False
        self._submitting = False
        self._submit_lock = threading.Lock()
        self._jobs = []

    # --- 状態遷移 ---

    def start(self):
        """Initializing -> Active

        問題が1問もない場合は開始せず Initializing のまま（画面側で「問題なし」を表示）
        """
        if self.state != SessionState.INITIALIZING:
            return self.state

        stored = self.storage.get_student(self.student.id)
        if stored is not None:
            self.student = stored

        if self.student.status == 'completed':
            logger.info(f"Student {self.student.id} already completed; skipping exam session")
            self.state = SessionState.COMPLETED
            return self.state

        self.config = self.storage.get_exam_config()
        self.questions = filter_by_subject(self.storage.get_questions(), self.subject)
        if not self.questions:
            logger.info(f"No questions available for student {self.student.id} (subject={self.subject})")
            return self.state

        changed = False
        if self.student.start_time is None:
            self.student.start_time = self._now_ms()
            changed = True
        if self.student.status == 'not_started':
            self.student.status = 'in_progress'
            changed = True
        if changed:
            self.storage.save_student(self.student)
            self.last_saved = self.clock.now()

        self.state = SessionState.ACTIVE
        self.visited.add(0)
        self._refresh_time_left()
        self._jobs = [
            self.scheduler.every(self.tick_seconds, self._tick, name='countdown'),
            self.scheduler.every(self.autosave_seconds, self.autosave, name='autosave'),
        ]
        logger.info(
            f"Exam session started: student={self.student.id} questions={len(self.questions)} "
            f"time_left={self.time_left}s resumed={not changed}"
        )

        if self.time_left <= 0:
            self.submit()
        return self.state

    def request_finish(self):
        """終了ボタン: 未回答数に応じた確認内容を返す（まだ提出しない）"""
        self.run_pending()
        if self.state != SessionState.ACTIVE:
            return None
        unanswered = self.unanswered_numbers()
        if unanswered:
            listed = ', '.join(str(n) for n in unanswered[:5])
            more = '...' if len(unanswered) > 5 else ''
            self.confirmation = Notice(
                title='Jawaban Belum Lengkap',
                body=(f'Kamu belum menjawab {len(unanswered)} soal (No: {listed}{more}). '
                      'Yakin ingin selesai? Nilai soal kosong akan 0.'),
                severity='warning',
                unanswered=unanswered,
            )
        else:
            self.confirmation = Notice(
                title='Konfirmasi Selesai',
                body=('Apakah kamu yakin ingin mengakhiri ujian ini sekarang? '
                      'Jawaban tidak bisa diubah lagi setelah ini.'),
            )
        return self.confirmation

    def cancel_finish(self):
        self.confirmation = None

    def confirm_finish(self):
        """確認ダイアログで「はい」: 提出する"""
        if self.confirmation is None:
            return None
        return self.submit()

    def submit(self):
        """Active -> Submitting -> Completed

        二重提出はガードで無視する。保存に失敗した場合は Active に戻して再試行可能にする
        """
        # 判定と設定を不可分にする（リクエストが並行しても提出は1回）
        with self._submit_lock:
            if self._submitting or self.state in (SessionState.SUBMITTING, SessionState.COMPLETED):
                logger.debug(f"Submission already in progress for student {self.student.id}")
                return None
            if self.state != SessionState.ACTIVE:
                return None
            self._submitting = True
            self.state = SessionState.SUBMITTING

        self.confirmation = None
        self.low_time_warning = None

        try:
            final = self._finalize()
        except SubmissionError as e:
            logger.error(f"Submission failed for student {self.student.id}: {e}")
            self.last_error = SUBMIT_FAILED_MESSAGE
            self.state = SessionState.ACTIVE
            self._submitting = False
            return None

        self.student = final
        self.last_error = None
        self.state = SessionState.COMPLETED
        self.close()
        logger.info(f"Exam submitted: student={final.id} score={final.score}")

        if self.on_finish is not None:
            self.on_finish(final)
        return final

    def _finalize(self):
        # 科目で絞り込む前の全問題で採点する
        try:
            questions = self.storage.get_questions()
            final = self.student.model_copy(deep=True, update={'status': 'completed'})
            final.score = aggregate_score(final, questions)
            self.storage.save_student(final)
        except Exception as e:
            raise SubmissionError(str(e)) from e
        return final

    def close(self):
        """タイマー解除（画面離脱・提出完了時）"""
        for job in self._jobs:
            self.scheduler.cancel(job)
        self._jobs = []

    # --- タイマー ---

    def run_pending(self):
        return self.scheduler.run_pending()

    def _now_ms(self):
        return int(self.clock.now() * 1000)

    def _refresh_time_left(self):
        total = int(self.config.duration_minutes) * 60 if self.config else 0
        start = self.student.start_time or self._now_ms()
        elapsed = max(0, (self._now_ms() - start) // 1000)
        self.time_left = max(0, total - elapsed)
        return self.time_left

    def _tick(self):
        if self.state != SessionState.ACTIVE:
            return
        self._refresh_time_left()

        if not self._warned and 0 < self.time_left <= self.low_time_seconds:
            self._warned = True
            self.low_time_warning = Notice(
                title='Waktu Segera Habis!',
                body='Sisa waktu kurang dari 1 menit. Segera periksa dan simpan jawaban Anda.',
                severity='warning',
            )
            logger.info(f"Low time warning: student={self.student.id} time_left={self.time_left}s")

        if self.time_left <= 0:
            logger.info(f"Time is up: auto-submitting student {self.student.id}")
            self.submit()

    def autosave(self):
        """現在の解答を定期保存（変更の有無にかかわらず）"""
        if self.state != SessionState.ACTIVE:
            return False
        try:
            self.storage.save_student(self.student)
        except Exception as e:
            logger.error(f"Autosave failed for student {self.student.id}: {e}")
            return False
        self.last_saved = self.clock.now()
        logger.debug(f"Autosaved student {self.student.id}")
        return True

    def dismiss_warning(self):
        self.low_time_warning = None

    # --- 解答 ---

    def _question_index(self, question_id):
        for i, question in enumerate(self.questions):
            if question.id == question_id:
                return i
        return None

    def navigate(self, index):
        """任意の問題へ移動（順不同）"""
        if self.state != SessionState.ACTIVE:
            return False
        if not isinstance(index, int) or not 0 <= index < len(self.questions):
            return False
        self.current_index = index
        self.visited.add(index)
        return True

    def update_answer(self, answer):
        """解答を差し替えて即時保存"""
        # 属性代入は検証されないため、保存前に必ず検証し直す
        if isinstance(answer, Answer):
            answer = answer.model_dump(by_alias=True)
        answer = Answer.model_validate(answer)
        if self.state != SessionState.ACTIVE:
            logger.warning(f"Answer ignored, session is {self.state.value}: student={self.student.id}")
            return False
        index = self._question_index(answer.question_id)
        if index is None:
            logger.warning(f"Answer for unknown question {answer.question_id} ignored")
            return False

        self.student.upsert_answer(answer)
        self.visited.add(index)
        self.storage.save_student(self.student)
        self.last_saved = self.clock.now()
        return True

    def _existing_answer(self, question_id):
        current = self.student.find_answer(question_id)
        if current is None:
            return Answer(question_id=question_id)
        return current.model_copy(deep=True)

    def select_option(self, question_id, option_index):
        """選択肢クリック（単一選択は置き換え、複数選択はトグル）"""
        if not _is_index(option_index):
            return False
        index = self._question_index(question_id)
        if index is None:
            return False
        question = self.questions[index]
        answer = self._existing_answer(question_id)
        if question.type == 'multi_select':
            selected = list(answer.selected_options or [])
            if option_index in selected:
                selected.remove(option_index)
            else:
                selected.append(option_index)
            answer.selected_options = selected
        else:
            answer.selected_options = [option_index]
        return self.update_answer(answer)

    def set_text(self, question_id, text):
        if not isinstance(text, str):
            return False
        answer = self._existing_answer(question_id)
        answer.text_answer = text
        return self.update_answer(answer)

    def set_pair(self, question_id, left_index, right_index=None):
        """左項目の組み合わせを設定（right_index が None / -1 なら解除）"""
        if not _is_index(left_index) or not (right_index is None or _is_index(right_index)):
            return False
        answer = self._existing_answer(question_id)
        pairs = [p for p in (answer.pairs or []) if p.left_index != left_index]
        if right_index is not None and right_index != -1:
            pairs.append(MatchPair(left_index=left_index, right_index=right_index))
        answer.pairs = pairs
        return self.update_answer(answer)

    def move_item(self, question_id, position, direction):
        """並べ替え: position の項目を direction（-1 / 1）方向へ入れ替える"""
        if not _is_index(position) or direction not in (-1, 1):
            return False
        index = self._question_index(question_id)
        if index is None:
            return False
        question = self.questions[index]
        answer = self._existing_answer(question_id)
        order = list(answer.order_sequence or range(len(question.order_items)))
        target = position + direction
        if not 0 <= position < len(order) or not 0 <= target < len(order):
            return False
        order[position], order[target] = order[target], order[position]
        answer.order_sequence = order
        return self.update_answer(answer)

    # --- 表示用 ---

    def unanswered_numbers(self):
        """未回答の問題番号（1始まり）"""
        return [
            i + 1 for i, question in enumerate(self.questions)
            if not is_answered(question, self.student.find_answer(question.id), reached=i in self.visited)
        ]

    @property
    def answered_count(self):
        return len(self.questions) - len(self.unanswered_numbers())

    def present_question(self, index=None):
        """受験者向けの問題データ（正解・キーワードは含めない）"""
        if index is None:
            index = self.current_index
        if not 0 <= index < len(self.questions):
            return None
        question = self.questions[index]
        answer = self.student.find_answer(question.id)

        view = {
            'number': index + 1,
            'id': question.id,
            'type': question.type,
            'text': question.text,
            'subject': question.subject,
            'imageUrl': question.image_url,
            'points': question.points,
            'answer': answer.to_record() if answer else None,
            'answered': is_answered(question, answer, reached=index in self.visited),
        }
        # 右側選択肢の並びは受験者・問題ごとに固定
        view.update(_PRESENTERS[question.type](question, answer, f'{self.student.id}:{question.id}'))
        return view

    def snapshot(self):
        """現在の状態（API 応答用）"""
        total = len(self.questions)
        answered = self.answered_count if total else 0
        return {
            'state': self.state.value,
            'student_id': self.student.id,
            'subject': self.subject,
            'time_left': self.time_left,
            'time_left_display': format_time(self.time_left),
            'current_index': self.current_index,
            'total_questions': total,
            'answered_count': answered,
            'progress': round(answered / total * 100, 1) if total else 0,
            'low_time_warning': self.low_time_warning.model_dump() if self.low_time_warning else None,
            'confirmation': self.confirmation.model_dump() if self.confirmation else None,
            'last_saved': self.last_saved,
            'last_error': self.last_error,
            'score': self.student.score if self.state == SessionState.COMPLETED else None,
            'notice': NO_QUESTIONS_MESSAGE if not total and self.state == SessionState.INITIALIZING else None,
            'question': self.present_question() if self.state == SessionState.ACTIVE else None,
        }
