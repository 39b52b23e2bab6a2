"""
受験スケジュール判定
ログイン（試験開始）が現在許可されているかを、全体日程または科目別日程から判定する

科目別日程（subjectSchedules）が1件でもあれば全体日程より優先し、
試験はその科目の問題だけに限定される。
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

REASON_NOT_YET_OPEN = 'not_yet_open'
REASON_ALREADY_CLOSED = 'already_closed'
REASON_NO_ACTIVE_SUBJECT = 'no_active_subject'


class LoginDecision(BaseModel):
    allowed: bool
    active_subject: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None


def parse_schedule_time(value):
    """ISO 形式の日時文字列を解析（空・不正な値は None）"""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Invalid schedule datetime: {value!r}")
        return None


def _aware(moment):
    # タイムゾーンなしの日時はサーバーのローカル時刻とみなす
    return moment if moment.tzinfo else moment.astimezone()


def _now(now):
    if now is None:
        return datetime.now(timezone.utc)
    if isinstance(now, (int, float)):
        return datetime.fromtimestamp(now, tz=timezone.utc)
    return _aware(now)


def _format_time(moment):
    return moment.strftime('%d/%m/%Y %H.%M')


def is_window_open(schedule, now=None):
    """科目別日程の [開始, 終了] に now が含まれるか（両端含む）"""
    start = parse_schedule_time(schedule.scheduled_start)
    end = parse_schedule_time(schedule.scheduled_end)
    if start is None or end is None:
        return False
    current = _now(now)
    return _aware(start) <= current <= _aware(end)


def find_active_schedule(config, now=None):
    """現在有効な科目別日程（複数一致時はリスト順で最初のもの）"""
    for schedule in config.subject_schedules or []:
        if is_window_open(schedule, now):
            return schedule
    return None


def active_schedule_info(config, now=None):
    """ログイン画面の「実施中」表示用"""
    schedule = find_active_schedule(config, now)
    if schedule is None:
        return None
    return {'subject': schedule.subject, 'end': schedule.scheduled_end}


def is_login_allowed(config, now=None, student=None) -> LoginDecision:
    """ログイン可否の判定

    student が受験済み（completed）の場合、全体日程の終了時刻チェックのみ免除する
    （結果閲覧のため）。開始時刻チェックは免除しない。
    """
    current = _now(now)

    if config.subject_schedules:
        schedule = find_active_schedule(config, current)
        if schedule is None:
            return LoginDecision(
                allowed=False,
                reason=REASON_NO_ACTIVE_SUBJECT,
                message='Tidak ada sesi ujian mata pelajaran yang aktif saat ini.',
            )
        return LoginDecision(allowed=True, active_subject=schedule.subject)

    start = parse_schedule_time(config.scheduled_start)
    if start is not None and current < _aware(start):
        return LoginDecision(
            allowed=False,
            reason=REASON_NOT_YET_OPEN,
            message=f'Ujian belum dibuka. Jadwal mulai: {_format_time(start)}',
        )

    completed = student is not None and student.status == 'completed'
    end = parse_schedule_time(config.scheduled_end)
    if end is not None and not completed and current > _aware(end):
        return LoginDecision(
            allowed=False,
            reason=REASON_ALREADY_CLOSED,
            message=f'Ujian telah berakhir pada: {_format_time(end)}',
        )

    return LoginDecision(allowed=True)


class ScheduleMonitor:
    """科目別日程を一定間隔で再評価し、「実施中」表示を更新する

    設定と時刻はユーザー操作と無関係に変わるため、イベントではなくポーリングで見る
    """

    def __init__(self, load_config, scheduler, interval=10):
        self.load_config = load_config
        self.scheduler = scheduler
        self.interval = interval
        self.active = None
        self._job = None

    def start(self):
        self.refresh()
        if self._job is None:
            self._job = self.scheduler.every(self.interval, self.refresh, name='schedule_poll')
        return self

    def refresh(self):
        config = self.load_config()
        self.active = active_schedule_info(config, self.scheduler.clock.now())
        return self.active

    def stop(self):
        if self._job is not None:
            self.scheduler.cancel(self._job)
            self._job = None
