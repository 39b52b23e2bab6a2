"""
管理者機能のルーティング
問題・受験者・試験設定・科目一覧の管理
"""
from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from cbt.core.auth import admin_required, close_exam_session
from cbt.core.exceptions import InputValidationError
from cbt.core.models import ExamConfig
from cbt.core.results import summarize_students

admin_bp = Blueprint('admin', __name__)


# --- 問題 ---

@admin_bp.route('/admin/questions', methods=['GET'])
@admin_required
def list_questions():
    """問題一覧（正解を含む）"""
    subject = request.args.get('subject')
    questions = current_app.question_manager.get_questions(subject)
    return jsonify({
        'questions': [q.to_record() for q in questions],
        'counts': current_app.question_manager.get_question_count_by_subject(),
    })


@admin_bp.route('/admin/questions', methods=['POST'])
@admin_required
def save_question():
    """問題の作成・更新"""
    data = request.get_json(silent=True) or {}
    try:
        question = current_app.question_manager.save_question(data)
    except InputValidationError as e:
        return jsonify({'error': e.message, 'field': e.field}), 400
    except Exception as e:
        current_app.logger.error(f"Question save error: {e}")
        return jsonify({'error': 'Gagal menyimpan soal.'}), 500
    return jsonify({'question': question.to_record()})


@admin_bp.route('/admin/questions/<question_id>', methods=['DELETE'])
@admin_required
def delete_question(question_id):
    if not current_app.question_manager.delete_question(question_id):
        return jsonify({'error': 'Soal tidak ditemukan.'}), 404
    current_app.logger.info(f"Question deleted: {question_id}")
    return jsonify({'success': True})


# --- 受験者 ---

@admin_bp.route('/admin/students', methods=['GET'])
@admin_required
def list_students():
    students = current_app.student_manager.get_students()
    return jsonify({
        'students': [s.to_record() for s in students],
        'summary': summarize_students(students),
    })


@admin_bp.route('/admin/students', methods=['POST'])
@admin_required
def add_student():
    data = request.get_json(silent=True) or {}
    try:
        student = current_app.student_manager.add_student(
            data.get('name'), data.get('className'), data.get('school')
        )
    except InputValidationError as e:
        return jsonify({'error': e.message, 'field': e.field}), 400
    except Exception as e:
        current_app.logger.error(f"Student add error: {e}")
        return jsonify({'error': 'Gagal menambahkan siswa.'}), 500
    return jsonify({'student': student.to_record()}), 201


@admin_bp.route('/admin/students/<student_id>', methods=['DELETE'])
@admin_required
def delete_student(student_id):
    close_exam_session(current_app, student_id)
    if not current_app.student_manager.delete_student(student_id):
        return jsonify({'error': 'Siswa tidak ditemukan.'}), 404
    current_app.logger.info(f"Student deleted: {student_id}")
    return jsonify({'success': True})


@admin_bp.route('/admin/students/<student_id>/reset', methods=['POST'])
@admin_required
def reset_student(student_id):
    """受験状態のリセット（再受験を許可）"""
    close_exam_session(current_app, student_id)
    student = current_app.student_manager.reset_student(student_id)
    if student is None:
        return jsonify({'error': 'Siswa tidak ditemukan.'}), 404
    return jsonify({'student': student.to_record()})


# --- 試験設定 ---

@admin_bp.route('/admin/config', methods=['GET'])
@admin_required
def get_config():
    return jsonify({'config': current_app.storage.get_exam_config().to_record()})


@admin_bp.route('/admin/config', methods=['PUT'])
@admin_required
def update_config():
    data = request.get_json(silent=True) or {}
    try:
        config = ExamConfig.model_validate(data)
    except ValidationError as e:
        return jsonify({'error': 'Pengaturan ujian tidak valid.', 'details': e.errors(include_url=False)}), 400
    if config.duration_minutes <= 0:
        return jsonify({'error': 'Durasi harus lebih dari 0 menit.', 'field': 'durationMinutes'}), 400

    try:
        current_app.storage.save_exam_config(config)
        current_app.schedule_monitor.refresh()
    except Exception as e:
        current_app.logger.error(f"Config save error: {e}")
        return jsonify({'error': 'Gagal menyimpan pengaturan.'}), 500
    current_app.logger.info(
        f"Exam config updated: duration={config.duration_minutes} "
        f"subject_schedules={len(config.subject_schedules)}"
    )
    return jsonify({'config': config.to_record()})


# --- 科目 ---

@admin_bp.route('/admin/subjects', methods=['GET'])
@admin_required
def get_subjects():
    return jsonify({'subjects': current_app.storage.get_subjects()})


@admin_bp.route('/admin/subjects', methods=['PUT'])
@admin_required
def update_subjects():
    data = request.get_json(silent=True) or {}
    raw = data.get('subjects')
    if not isinstance(raw, list):
        return jsonify({'error': 'Daftar mata pelajaran tidak valid.'}), 400

    subjects = []
    for name in raw:
        name = str(name or '').strip()
        if name and name not in subjects:
            subjects.append(name)
    current_app.storage.save_subjects(subjects)
    return jsonify({'subjects': subjects})
