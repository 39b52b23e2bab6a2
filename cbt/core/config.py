"""
Configuration file for the application
Loads settings from environment variables
"""
import os
from dotenv import load_dotenv
import re

# Load environment variables (for local development)
load_dotenv()


def _env_int(name, default):
    return int(os.environ.get(name, default))


class Config:
    """Application configuration"""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY')
    FLASK_ENV = os.environ.get('FLASK_ENV', 'production')
    DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Database settings
    DATABASE_URL = os.environ.get('DATABASE_URL')

    if DATABASE_URL:
        # Normalize postgres scheme (Render often gives postgres://)
        if DATABASE_URL.startswith("postgres://"):
            DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

        if DATABASE_URL.startswith('postgresql://'):
            DATABASE_TYPE = 'postgresql'
        else:
            DATABASE_TYPE = 'sqlite'
    else:
        DATABASE_TYPE = 'sqlite'
        DATABASE_URL = 'sqlite:///cbt_exam.db'

    # Parse PostgreSQL URL if needed
    if DATABASE_TYPE == 'postgresql':
        match = re.match(r'postgresql://([^:]+):([^@]+)@([^:/]+):?(\d+)?/(.+)', DATABASE_URL)
        if match:
            DB_USER = match.group(1)
            DB_PASSWORD = match.group(2)
            DB_HOST = match.group(3)
            DB_PORT = match.group(4) or '5432'
            DB_NAME = match.group(5)
        else:
            raise ValueError('Invalid PostgreSQL DATABASE_URL format')
    else:
        DB_USER = None
        DB_PASSWORD = None
        DB_HOST = None
        DB_PORT = None
        DB_NAME = DATABASE_URL.replace('sqlite:///', '')

    # Admin settings
    ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')

    # Server settings
    PORT = _env_int('PORT', 5002)
    HOST = os.environ.get('HOST', '0.0.0.0')

    # 試験セッションのタイマー設定（秒）
    COUNTDOWN_TICK_SECONDS = _env_int('COUNTDOWN_TICK_SECONDS', 1)
    AUTOSAVE_INTERVAL_SECONDS = _env_int('AUTOSAVE_INTERVAL_SECONDS', 60)
    LOW_TIME_WARNING_SECONDS = _env_int('LOW_TIME_WARNING_SECONDS', 60)
    SCHEDULE_POLL_SECONDS = _env_int('SCHEDULE_POLL_SECONDS', 10)

    # 試験設定が未保存の場合のデフォルト
    DEFAULT_DURATION_MINUTES = _env_int('DEFAULT_DURATION_MINUTES', 90)
    SEED_SAMPLE_DATA = os.environ.get('SEED_SAMPLE_DATA', 'True').lower() == 'true'

    @classmethod
    def get_db_config(cls):
        """Get database configuration dictionary"""
        if cls.DATABASE_TYPE == 'postgresql':
            return {
                'DATABASE_TYPE': 'postgresql',
                'DB_NAME': cls.DB_NAME,
                'DB_USER': cls.DB_USER,
                'DB_PASSWORD': cls.DB_PASSWORD,
                'DB_HOST': cls.DB_HOST,
                'DB_PORT': cls.DB_PORT
            }
        else:
            return {
                'DATABASE_TYPE': 'sqlite',
                'DATABASE': cls.DB_NAME
            }

    @classmethod
    def get_timer_config(cls):
        """試験セッションのタイマー間隔"""
        return {
            'tick_seconds': cls.COUNTDOWN_TICK_SECONDS,
            'autosave_seconds': cls.AUTOSAVE_INTERVAL_SECONDS,
            'low_time_seconds': cls.LOW_TIME_WARNING_SECONDS,
        }
