"""
受験関連のルーティング
画面側はポーリング（/exam/state）で残り時間・警告・自動提出を反映する
"""
from flask import Blueprint, current_app, jsonify, request, session
from pydantic import ValidationError

from cbt.core.auth import student_required
from cbt.core.exam_session import ExamSessionController, SessionState
from cbt.core.results import build_result_report

exam_bp = Blueprint('exam', __name__)

NOT_STARTED_MESSAGE = 'Sesi ujian belum dimulai.'


def _new_controller(student):
    app = current_app._get_current_object()

    def on_finish(final):
        app.exam_sessions.pop(final.id, None)

    return ExamSessionController(
        app.storage,
        student,
        subject=session.get('active_subject'),
        scheduler=app.scheduler,
        on_finish=on_finish,
        **app.config['EXAM_TIMERS']
    )


def _active_controller():
    """期限の来たタイマーを処理してから、ログイン中の受験者のセッションを返す"""
    current_app.scheduler.run_pending()
    controller = current_app.exam_sessions.get(session['student_id'])
    if controller is None or controller.state == SessionState.COMPLETED:
        return None
    return controller


def _not_started():
    return jsonify({'error': NOT_STARTED_MESSAGE}), 409


@exam_bp.route('/exam/start', methods=['POST'])
@student_required
def start_exam():
    """受験開始（再入室の場合は開始時刻を引き継ぐ）"""
    try:
        controller = _active_controller()
        if controller is not None and controller.state != SessionState.INITIALIZING:
            return jsonify(controller.snapshot())

        student = current_app.storage.get_student(session['student_id'])
        if student is None:
            session.clear()
            return jsonify({'error': 'Data peserta tidak ditemukan.'}), 404

        controller = _new_controller(student)
        controller.start()
        if controller.state == SessionState.ACTIVE:
            current_app.exam_sessions[student.id] = controller
        return jsonify(controller.snapshot())
    except Exception as e:
        current_app.logger.error(f"Exam start error: {e}")
        return jsonify({'error': 'Gagal memulai ujian.'}), 500


@exam_bp.route('/exam/state')
@student_required
def exam_state():
    controller = _active_controller()
    if controller is None:
        student = current_app.storage.get_student(session['student_id'])
        completed = student is not None and student.status == 'completed'
        return jsonify({
            'state': SessionState.COMPLETED.value if completed else SessionState.INITIALIZING.value,
            'score': student.score if completed else None,
        })
    return jsonify(controller.snapshot())


@exam_bp.route('/exam/navigate', methods=['POST'])
@student_required
def navigate():
    controller = _active_controller()
    if controller is None:
        return _not_started()
    data = request.get_json(silent=True) or {}
    if not controller.navigate(data.get('index')):
        return jsonify({'error': 'Nomor soal tidak valid.'}), 400
    return jsonify(controller.snapshot())


def _apply_answer(controller, data):
    action = data.get('action')
    question_id = data.get('questionId')
    if action == 'select':
        return controller.select_option(question_id, data.get('optionIndex'))
    if action == 'text':
        return controller.set_text(question_id, data.get('text') or '')
    if action == 'pair':
        return controller.set_pair(question_id, data.get('leftIndex'), data.get('rightIndex'))
    if action == 'move':
        return controller.move_item(question_id, data.get('position'), data.get('direction'))
    return controller.update_answer(data.get('answer') or data)


@exam_bp.route('/exam/answer', methods=['POST'])
@student_required
def answer():
    """解答の更新（即時保存）"""
    controller = _active_controller()
    if controller is None:
        return _not_started()
    data = request.get_json(silent=True) or {}
    try:
        if not _apply_answer(controller, data):
            return jsonify({'error': 'Jawaban tidak dapat disimpan.'}), 400
    except ValidationError as e:
        return jsonify({'error': 'Format jawaban tidak valid.', 'details': e.errors(include_url=False)}), 400
    except Exception as e:
        current_app.logger.error(f"Answer save error for {controller.student.id}: {e}")
        return jsonify({'error': 'Gagal menyimpan jawaban.'}), 500
    return jsonify(controller.snapshot())


@exam_bp.route('/exam/warning/dismiss', methods=['POST'])
@student_required
def dismiss_warning():
    controller = _active_controller()
    if controller is None:
        return _not_started()
    controller.dismiss_warning()
    return jsonify(controller.snapshot())


@exam_bp.route('/exam/finish', methods=['POST'])
@student_required
def request_finish():
    """終了確認の内容を返す"""
    controller = _active_controller()
    if controller is None:
        return _not_started()
    controller.request_finish()
    return jsonify(controller.snapshot())


@exam_bp.route('/exam/finish/cancel', methods=['POST'])
@student_required
def cancel_finish():
    controller = _active_controller()
    if controller is None:
        return _not_started()
    controller.cancel_finish()
    return jsonify(controller.snapshot())


@exam_bp.route('/exam/submit', methods=['POST'])
@student_required
def submit():
    """確認済みの提出"""
    controller = _active_controller()
    if controller is None:
        return _not_started()
    if controller.confirmation is None:
        return jsonify({'error': 'Konfirmasi penyelesaian ujian terlebih dahulu.'}), 409

    final = controller.confirm_finish()
    if final is None:
        return jsonify({'error': controller.last_error, 'state': controller.snapshot()}), 500
    return jsonify({'state': SessionState.COMPLETED.value, 'score': final.score, 'next': 'result'})


@exam_bp.route('/result')
@student_required
def result():
    """結果画面"""
    try:
        student = current_app.storage.get_student(session['student_id'])
        if student is None:
            return jsonify({'error': 'Data peserta tidak ditemukan.'}), 404
        if student.status != 'completed':
            return jsonify({'error': 'Ujian belum selesai.'}), 409
        report = build_result_report(
            student, current_app.storage.get_questions(), session.get('active_subject')
        )
        return jsonify(report)
    except Exception as e:
        current_app.logger.error(f"Result error: {e}")
        return jsonify({'error': 'Gagal memuat hasil ujian.'}), 500
