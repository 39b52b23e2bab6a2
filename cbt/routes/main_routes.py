"""
メインページのルーティング
"""
from flask import Blueprint, current_app, jsonify

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """ヘルスチェックエンドポイント"""
    return jsonify({'status': 'healthy'}), 200


@main_bp.route('/')
def index():
    """トップページ（試験タイトル・説明・制限時間）"""
    config = current_app.storage.get_exam_config()
    return jsonify({
        'title': config.title,
        'description': config.description,
        'durationMinutes': config.duration_minutes,
    })


@main_bp.route('/api/schedule/active')
def active_schedule():
    """実施中の科目別セッション（ログイン画面の表示用）"""
    current_app.scheduler.run_pending()
    return jsonify({'active': current_app.schedule_monitor.active})
