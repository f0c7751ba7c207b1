"""ドメインエラー: サービス層で送出し、main.py のハンドラでJSONに変換する"""


class AppError(Exception):
    """アプリケーションエラー基底"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """必須項目欠落・値不正"""

    status_code = 400


class ParseError(AppError):
    """CSV等の入力形式不正"""

    status_code = 400


class PermissionDeniedError(AppError):
    """ロール不足"""

    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """一意制約違反・同時更新の衝突"""

    status_code = 409


class InvalidStateError(AppError):
    """状態遷移が許可されていない (例: draft以外への変更)"""

    status_code = 409


class StoreError(AppError):
    """永続化の失敗"""

    status_code = 500
