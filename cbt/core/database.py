"""
データベース管理クラス（PostgreSQL/SQLite対応）
受験者・問題は JSON レコードとして、試験設定・科目一覧は settings テーブルに保存する
"""
import logging
import sqlite3

import psycopg2
import psycopg2.extras

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, config):
        self.db_type = config['DATABASE_TYPE']
        self.config = config

    @property
    def placeholder(self):
        """SQL パラメータのプレースホルダ"""
        return '%s' if self.db_type == 'postgresql' else '?'

    def get_connection(self):
        if self.db_type == 'postgresql':
            conn = psycopg2.connect(
                host=self.config['DB_HOST'],
                database=self.config['DB_NAME'],
                user=self.config['DB_USER'],
                password=self.config['DB_PASSWORD'],
                port=self.config['DB_PORT']
            )
            conn.autocommit = False
            return conn
        else:
            db_path = self.config.get('DATABASE', 'cbt_exam.db')
            conn = sqlite3.connect(db_path)
            conn.row_factory = sqlite3.Row
            return conn

    def execute_query(self, query, params=None):
        conn = self.get_connection()
        try:
            if self.db_type == 'postgresql':
                cur = conn.cursor(cursor_factory=psycopg2.extras.DictCursor)
            else:
                cur = conn.cursor()
            cur.execute(query, params or ())
            if query.strip().upper().startswith(('SELECT', 'WITH', 'PRAGMA')):
                result = [dict(row) for row in cur.fetchall()]
            else:
                result = cur.rowcount
                conn.commit()
            cur.close()
            return result
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_database(self):
        if self.db_type == 'postgresql':
            self._init_postgresql()
        else:
            self._init_sqlite()

    def _init_postgresql(self):
        queries = [
            """CREATE TABLE IF NOT EXISTS records (
                id SERIAL PRIMARY KEY,
                collection VARCHAR(32) NOT NULL,
                record_id VARCHAR(64) NOT NULL,
                data JSON NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (collection, record_id)
            )""",
            """CREATE TABLE IF NOT EXISTS settings (
                key VARCHAR(64) PRIMARY KEY,
                value JSON NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )""",
            "CREATE INDEX IF NOT EXISTS idx_records_collection ON records(collection)",
        ]

        for query in queries:
            try:
                self.execute_query(query)
            except Exception as e:
                logger.error(f"PostgreSQL init error: {e}")

    def _init_sqlite(self):
        queries = [
            """CREATE TABLE IF NOT EXISTS records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                collection TEXT NOT NULL,
                record_id TEXT NOT NULL,
                data TEXT NOT NULL,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (collection, record_id)
            )""",
            """CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )""",
            "CREATE INDEX IF NOT EXISTS idx_records_collection ON records(collection)",
        ]

        for query in queries:
            try:
                self.execute_query(query)
            except Exception as e:
                logger.error(f"SQLite init error: {e}")
