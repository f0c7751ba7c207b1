"""セキュリティヘッダーミドルウェア"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# APIドキュメント (DEBUG時のみ) はCDNのスクリプトを読み込む
DOCS_PATHS = ("/api/docs", "/api/redoc", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    JSON/CSV API向けのセキュリティヘッダーを付与するミドルウェア
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

        # APIレスポンスはスクリプト実行を一切許可しない
        if not request.url.path.startswith(DOCS_PATHS):
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none'"
            )

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # CSVダウンロードはキャッシュさせない
        if response.headers.get("content-type", "").startswith("text/csv"):
            response.headers["Cache-Control"] = "no-store"

        return response
