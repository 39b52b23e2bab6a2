"""
時計とインターバルスケジューラ

試験のカウントダウン・自動保存・日程ポーリングは、いずれも一定間隔で
呼ばれるコールバックとして登録する。スケジューラは協調型（専用スレッドを持たない）で、
run_pending() を呼んだ時点で期限の来たジョブだけを実行する。
テストでは時計を差し替えて時間経過を再現する。
Flask のスレッド実行下でも同じジョブが二重に走らないよう、操作はロックで直列化する。
"""
import logging
import threading
import time

logger = logging.getLogger(__name__)


class SystemClock:
    """実時間の時計（epoch 秒）"""

    def now(self):
        return time.time()


class ScheduledJob:
    def __init__(self, interval, callback, next_run, name=None):
        self.interval = interval
        self.callback = callback
        self.next_run = next_run
        self.name = name or getattr(callback, '__name__', 'job')
        self.cancelled = False

    def __repr__(self):
        return f"<ScheduledJob {self.name} every {self.interval}s>"


class IntervalScheduler:
    """一定間隔ジョブの協調型スケジューラ"""

    def __init__(self, clock=None):
        self.clock = clock or SystemClock()
        self._jobs = []
        # コールバック内から every/cancel を呼ぶため再入可能ロック
        self._lock = threading.RLock()

    @property
    def jobs(self):
        return [job for job in self._jobs if not job.cancelled]

    def every(self, seconds, callback, name=None):
        """seconds 秒ごとに callback を呼ぶジョブを登録"""
        if seconds <= 0:
            raise ValueError("interval must be positive")
        with self._lock:
            job = ScheduledJob(seconds, callback, self.clock.now() + seconds, name)
            self._jobs.append(job)
        return job

    def cancel(self, job):
        with self._lock:
            job.cancelled = True
            if job in self._jobs:
                self._jobs.remove(job)

    def clear(self):
        """全ジョブ解除（セッション破棄時）"""
        with self._lock:
            for job in self._jobs:
                job.cancelled = True
            self._jobs = []

    def run_pending(self):
        """期限を過ぎたジョブを 1 回ずつ実行し、実行数を返す

        長時間呼ばれなかった場合も、各ジョブは 1 回だけ実行して次回時刻を進める。
        同時に呼ばれた場合は後から来た側が待ち、進んだ次回時刻を見て実行しない。
        """
        fired = 0
        with self._lock:
            for job in list(self._jobs):
                if job.cancelled:
                    continue
                now = self.clock.now()
                if now < job.next_run:
                    continue
                while job.next_run <= now:
                    job.next_run += job.interval
                job.callback()
                fired += 1
        return fired
