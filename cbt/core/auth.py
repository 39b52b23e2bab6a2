"""
認証（受験コードによる受験者ログイン・管理者ログイン）
"""
from functools import wraps

from flask import current_app, jsonify, request, session

from .schedule import is_login_allowed


def student_required(f):
    """受験者ログイン確認デコレータ"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'student_id' not in session:
            return jsonify({'error': 'Silakan login terlebih dahulu.'}), 401
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """管理者権限確認デコレータ"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('admin_logged_in'):
            return jsonify({'error': 'Akses admin diperlukan.'}), 401
        return f(*args, **kwargs)
    return decorated_function


def close_exam_session(app, student_id):
    """受験者の試験セッションを破棄（タイマー解除）"""
    controller = app.exam_sessions.pop(student_id, None)
    if controller is not None:
        controller.close()
    return controller


def init_auth_routes(app, student_manager):
    """認証ルートの初期化"""

    @app.route('/login', methods=['POST'])
    def login():
        data = request.get_json(silent=True) or request.form
        code = (data.get('code') or '').strip()
        if not code:
            return jsonify({'error': 'Kode peserta wajib diisi.'}), 400

        student = student_manager.find_by_code(code)
        if student is None:
            app.logger.info("Login failed: unknown access code")
            return jsonify({'error': 'Kode peserta tidak ditemukan.'}), 404

        config = app.storage.get_exam_config()
        decision = is_login_allowed(config, app.scheduler.clock.now(), student)
        if not decision.allowed:
            app.logger.info(f"Login rejected for {student.id}: {decision.reason}")
            return jsonify({
                'error': decision.message or 'Ujian tidak tersedia saat ini.',
                'reason': decision.reason,
            }), 403

        # 別の受験者で開いていたセッションは破棄
        previous = session.get('student_id')
        if previous and previous != student.id:
            close_exam_session(app, previous)

        session.permanent = True
        session['student_id'] = student.id
        session['active_subject'] = decision.active_subject
        app.logger.info(f"Student logged in: {student.id} subject={decision.active_subject}")

        return jsonify({
            'student': {
                'id': student.id,
                'name': student.name,
                'code': student.code,
                'className': student.class_name,
                'school': student.school,
                'status': student.status,
            },
            'active_subject': decision.active_subject,
            'next': 'result' if student.status == 'completed' else 'confirm_bio',
        })

    @app.route('/admin/login', methods=['POST'])
    def admin_login():
        data = request.get_json(silent=True) or request.form
        username = (data.get('username') or '').strip()
        password = data.get('password') or ''

        if username == current_app.config['ADMIN_USERNAME'] and password == current_app.config['ADMIN_PASSWORD']:
            session.permanent = True
            session['admin_logged_in'] = True
            session['username'] = username
            app.logger.info(f"Admin logged in: {username}")
            return jsonify({'success': True})

        app.logger.warning(f"Admin login failed: {username!r}")
        return jsonify({'error': 'Username atau password salah.'}), 401

    @app.route('/logout')
    def logout():
        student_id = session.get('student_id')
        if student_id:
            close_exam_session(app, student_id)
        session.clear()
        return jsonify({'success': True})
