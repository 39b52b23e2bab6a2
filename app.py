"""
CBT ujian sekolah - メインアプリケーション
Flask + PostgreSQL/SQLite による時間制限付きオンライン試験
"""

import logging
from datetime import timedelta
from flask import Flask

from cbt.core.config import Config
from cbt.core.database import DatabaseManager
from cbt.core.auth import init_auth_routes
from cbt.core.question_manager import QuestionManager
from cbt.core.student_manager import StudentManager
from cbt.core.sample_data import seed_sample_questions
from cbt.core.schedule import ScheduleMonitor
from cbt.core.storage import DatabaseStorage
from cbt.core.timers import IntervalScheduler
from cbt.routes import main_bp, exam_bp, admin_bp


def create_app(config_class=Config, clock=None):
    """Application Factory Pattern

    clock を渡すとタイマー・日程判定の時刻を差し替えられる（テスト用）
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # ログ設定
    _configure_logging(config_class)

    # セキュリティ設定
    _configure_security(app, config_class)

    # データベース初期化
    db_manager = _init_database(config_class)

    # アプリケーションコンテキスト設定
    app.db_manager = db_manager
    app.storage = DatabaseStorage(db_manager, config_class.DEFAULT_DURATION_MINUTES)
    app.question_manager = QuestionManager(app.storage)
    app.student_manager = StudentManager(app.storage)
    app.config['ADMIN_PASSWORD'] = config_class.ADMIN_PASSWORD
    app.config['EXAM_TIMERS'] = config_class.get_timer_config()

    # 受験セッション（受験者ID -> ExamSessionController）とタイマー
    app.exam_sessions = {}
    app.scheduler = IntervalScheduler(clock)
    app.schedule_monitor = ScheduleMonitor(
        app.storage.get_exam_config, app.scheduler, config_class.SCHEDULE_POLL_SECONDS
    ).start()

    # 認証システム初期化
    init_auth_routes(app, app.student_manager)

    # ルーティング登録
    _register_blueprints(app)

    return app


def _configure_logging(config_class):
    """ログ設定"""
    logging.basicConfig(
        level=getattr(logging, config_class.LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


def _configure_security(app, config_class):
    """セキュリティ設定"""
    if not app.config['SECRET_KEY']:
        if config_class.DEBUG:
            app.config['SECRET_KEY'] = 'dev-secret-key-change-in-production'
            app.logger.warning("開発用のSECRET_KEYを使用しています。本番環境では必ず環境変数を設定してください。")
        else:
            raise ValueError("セキュリティエラー: SECRET_KEY環境変数が設定されていません。")

    if not config_class.ADMIN_PASSWORD:
        if config_class.DEBUG:
            config_class.ADMIN_PASSWORD = 'dev-admin-password-CHANGE-ME'
            app.logger.warning("開発用のデフォルト管理者パスワードを使用しています。")
        else:
            raise ValueError("セキュリティエラー: ADMIN_PASSWORD環境変数が設定されていません。")

    # セッション設定
    app.config.update(
        SESSION_COOKIE_SECURE=not config_class.DEBUG,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=timedelta(hours=24)
    )


def _init_database(config_class):
    """データベース初期化"""
    try:
        db_manager = DatabaseManager(config_class.get_db_config())
        db_manager.init_database()
        return db_manager
    except Exception as e:
        raise RuntimeError(f"データベース初期化エラー: {e}")


def _register_blueprints(app):
    """ブループリント登録"""
    blueprints = [
        (main_bp, {}),
        (exam_bp, {}),
        (admin_bp, {})
    ]

    for blueprint, options in blueprints:
        app.register_blueprint(blueprint, **options)


def load_initial_questions(app):
    """初期データ読み込み（問題が1件もない場合のみサンプル問題を投入）"""
    with app.app_context():
        try:
            if not app.config.get('SEED_SAMPLE_DATA'):
                app.logger.info("サンプルデータの投入は無効です。スキップします。")
                return

            existing_total = app.storage.count_questions()
            if existing_total > 0:
                app.logger.info(f"データベースに既に {existing_total}問の問題が登録されています。")
                return

            saved = seed_sample_questions(app.question_manager)
            subjects = app.storage.get_subjects()
            app.logger.info(f"サンプル問題 {saved}問を登録しました（科目: {', '.join(subjects)}）")

        except Exception as e:
            app.logger.error(f"初期問題データ読み込みエラー: {e}")


# アプリケーション作成
app = create_app()

if __name__ == '__main__':
    # 初期データ読み込み
    load_initial_questions(app)

    # アプリケーション起動
    app.logger.info(f"🚀 Starting Flask app on port {Config.PORT}")
    app.logger.info(f"🔧 Debug mode: {'ON (開発環境)' if Config.DEBUG else 'OFF (本番環境)'}")
    app.logger.info(f"💾 Database: {Config.DATABASE_TYPE.upper()}")

    app.run(debug=Config.DEBUG, host=Config.HOST, port=Config.PORT)
