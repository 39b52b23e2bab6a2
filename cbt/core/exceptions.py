"""
アプリケーション共通の例外
"""


class InputValidationError(ValueError):
    """管理者の入力（問題・受験者）が不正な場合の例外

    message はそのまま画面に表示できる文言
    """

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field


class SubmissionError(RuntimeError):
    """答案の最終保存に失敗した場合の例外"""
