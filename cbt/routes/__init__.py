"""
ルーティングモジュール
"""
from .main_routes import main_bp
from .exam_routes import exam_bp
from .admin_routes import admin_bp

__all__ = ['main_bp', 'exam_bp', 'admin_bp']
