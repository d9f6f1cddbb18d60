"""
FastAPI plumbing shared by the engines: access logging, protected API docs,
and the lazily created Postgres/Redis handles.
"""

import base64
import json
import logging
import secrets
import time

import psycopg2
import redis
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.openapi.utils import get_openapi

from config import Config
from services.shared_auth import validate_bearer_token

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("shared-http")

_db_conn = None
_redis_client: redis.Redis | None = None

ACCESS_LOGS_DDL = """
CREATE TABLE IF NOT EXISTS access_logs (
    id BIGSERIAL PRIMARY KEY,
    service TEXT NOT NULL,
    method TEXT NOT NULL,
    path TEXT NOT NULL,
    status INTEGER,
    time_ms INTEGER,
    req_headers JSONB,
    req_body TEXT,
    resp_headers JSONB,
    resp_body TEXT,
    created_at TIMESTAMP NOT NULL DEFAULT NOW()
);
"""


def get_db():
    """Shared connection, reconnecting when the previous one went away. None when Postgres is down."""
    global _db_conn
    if _db_conn is not None:
        try:
            cursor = _db_conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()
            return _db_conn
        except Exception as e:
            logger.warning(f"Database connection lost: {e}. Reconnecting...")
            _db_conn = None
    try:
        _db_conn = psycopg2.connect(
            host=Config.DB_HOST,
            port=Config.DB_PORT,
            user=Config.DB_USER,
            password=Config.DB_PASSWORD,
            dbname=Config.DB_NAME,
            connect_timeout=5,
        )
        cur = _db_conn.cursor()
        cur.execute(ACCESS_LOGS_DDL)
        _db_conn.commit()
        logger.info("Database connected and access_logs table ready")
        return _db_conn
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}", exc_info=True)
        return None


def get_redis() -> redis.Redis | None:
    global _redis_client
    if _redis_client is not None:
        return _redis_client
    try:
        _redis_client = redis.from_url(Config.REDIS_URL, decode_responses=True)
        _redis_client.ping()
        return _redis_client
    except Exception as e:
        logger.warning(f"Redis unavailable at {Config.REDIS_URL.split('@')[-1]}: {e}")
        _redis_client = None
        return None


def _redact_headers(h: dict[str, str]) -> dict[str, str]:
    out = dict(h)
    for k in list(out.keys()):
        if k.lower() in {"authorization", "cookie", "set-cookie"}:
            out[k] = "REDACTED"
    return out


def _store_access_log(service: str, method: str, path: str, status: int, time_ms: int, req_headers, req_body, resp_headers, resp_body):
    db = get_db()
    if not db:
        logger.warning("Database connection not available for access logging")
        return
    try:
        cur = db.cursor()
        cur.execute(
            "INSERT INTO access_logs (service, method, path, status, time_ms, req_headers, req_body, resp_headers, resp_body) VALUES (%s,%s,%s,%s,%s,%s::jsonb,%s,%s::jsonb,%s);",
            (service, method, path, status, time_ms, json.dumps(req_headers), req_body, json.dumps(resp_headers), resp_body),
        )
        db.commit()
    except Exception as e:
        logger.error(f"Failed to insert access log: {e}", exc_info=True)
        try:
            db.rollback()
        except Exception:
            logger.debug("Rollback after failed access log insert also failed", exc_info=True)


def install_access_log(app: FastAPI, service: str) -> None:
    service_logger = logging.getLogger(service)

    @app.middleware("http")
    async def log_middleware(request: Request, call_next):
        start = time.perf_counter()
        req_headers = _redact_headers(dict(request.headers))
        body_text = (await request.body()).decode("utf-8", errors="replace")
        service_logger.info(json.dumps({"type": "request", "method": request.method, "path": str(request.url), "headers": req_headers, "body": body_text}))

        response = await call_next(request)
        resp_body = b""
        async for chunk in response.body_iterator:
            resp_body += chunk
        duration_ms = int((time.perf_counter() - start) * 1000)
        resp_text = resp_body.decode("utf-8", errors="replace")
        resp_headers = _redact_headers(dict(response.headers))
        service_logger.info(json.dumps({"type": "response", "method": request.method, "path": str(request.url), "status": response.status_code, "time_ms": duration_ms}))
        _store_access_log(service, request.method, str(request.url), int(response.status_code), duration_ms, req_headers, body_text, resp_headers, resp_text)

        async def body_iterator():
            yield resp_body
        response.body_iterator = body_iterator()
        return response


def _check_basic_auth(auth_header: str | None):
    expected = "Basic " + base64.b64encode(f"{Config.DOCS_USER}:{Config.DOCS_PASS}".encode()).decode()
    if not auth_header or not secrets.compare_digest(auth_header, expected):
        raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Basic"})


def _authorize_docs(authorization: str | None):
    """Bearer token first, then fall back to basic auth."""
    if authorization and authorization.startswith("Bearer "):
        try:
            validate_bearer_token(authorization)
            return
        except HTTPException:
            pass
    _check_basic_auth(authorization)


def install_protected_docs(app: FastAPI, title: str, description: str, version: str) -> None:
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(title=title, version=version, description=description, routes=app.routes)
        schema.setdefault("components", {})["securitySchemes"] = {
            "Bearer": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "JWT Bearer token with an HR_ADMIN or SERVICE role",
            }
        }
        schema["security"] = [{"Bearer": []}]
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi

    @app.get("/docs", tags=["Documentation"], include_in_schema=False)
    def protected_docs(authorization: str | None = Header(default=None)):
        """Swagger UI documentation. Requires Bearer token or basic auth."""
        _authorize_docs(authorization)
        return get_swagger_ui_html(
            openapi_url="/openapi.json",
            title=f"{title} - Swagger UI",
            swagger_ui_parameters={"persistAuthorization": True},
        )

    @app.get("/redoc", tags=["Documentation"], include_in_schema=False)
    def protected_redoc(authorization: str | None = Header(default=None)):
        """ReDoc documentation. Requires Bearer token or basic auth."""
        _authorize_docs(authorization)
        return get_redoc_html(openapi_url="/openapi.json", title=f"{title} - ReDoc")

    @app.get("/openapi.json", tags=["Documentation"], include_in_schema=False)
    def protected_openapi(authorization: str | None = Header(default=None)):
        """OpenAPI schema. Requires Bearer token or basic auth."""
        _authorize_docs(authorization)
        return app.openapi()


def create_app(service: str, title: str, description: str, version: str = "1.0.0") -> FastAPI:
    app = FastAPI(
        title=title,
        description=description,
        version=version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    install_access_log(app, service)
    install_protected_docs(app, title, description, version)

    @app.get("/health")
    def health():
        return {"status": "ok", "service": service}

    return app
