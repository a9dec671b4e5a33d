import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

import taskhub.config as _cfg
from taskhub.core.controller import RequestContext
from taskhub.core.errors import HttpError
from taskhub.core.router import Router, normalize_path
from taskhub.core.security import SECURE_HEADERS, csrf_token, load_session, store_session
from taskhub.database import Database
from taskhub.records.category import CategoryRecord
from taskhub.routes import build_router

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
OVERRIDABLE = {"PUT", "PATCH", "DELETE"}


async def _read_body(request: Request) -> tuple[dict, bool]:
    """Return (data, bad_json) for form or JSON bodies."""
    if request.method == "GET":
        return {}, False
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        raw = await request.body()
        if not raw.strip():
            return {}, False
        try:
            body = await request.json()
        except ValueError:
            return {}, True
        if not isinstance(body, dict):
            return {}, True
        return body, False
    if "form" in content_type:
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}, False
    return {}, False


def _home(context: RequestContext, db_status: str) -> Response:
    path = context.path
    route = "home" if path == "/" else path.strip("/")
    return templates.TemplateResponse(
        context.request,
        "home.html",
        {"route": route, "db_status": db_status, "csrf_token": csrf_token(context.session)},
    )


def create_app(database: Optional[Database] = None, router: Optional[Router] = None) -> FastAPI:
    db = database or Database(_cfg.DATABASE_URL)
    app_router = router or build_router()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(db.create_schema)
        if _cfg.SEED_CATEGORIES:
            await run_in_threadpool(CategoryRecord.create_default_categories, db)
        logger.info("TaskHub started routes=%d", len(app_router.routes))
        yield
        db.close()

    app = FastAPI(title="TaskHub", lifespan=lifespan)
    app.state.db = db
    app.state.router = app_router

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-CSRF-Token"],
    )
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.api_route("/{path:path}", methods=METHODS, include_in_schema=False)
    async def dispatch(request: Request, path: str):
        data, bad_json = await _read_body(request)
        method = request.method
        override = str(data.pop("_method", "")).upper() if method == "POST" else ""
        if override in OVERRIDABLE:
            method = override

        uri = normalize_path(request.url.path)
        context = RequestContext(
            request=request,
            method=method,
            path=uri,
            db=db,
            templates=templates,
            session=load_session(request),
            query=dict(request.query_params),
            data=data,
            bad_json=bad_json,
        )

        try:
            result = await run_in_threadpool(app_router.dispatch, method, uri, context)
        except HttpError as e:
            if e.status_code == 404 and uri.startswith("/api/"):
                result = JSONResponse(
                    status_code=404,
                    content={"status": "error", "message": "Endpoint not found", "code": 404},
                )
            elif e.status_code == 404:
                logger.debug("No route for %s %s, serving home view", method, uri)
                result = None
            else:
                logger.error("Routing failed %s %s: %s", method, uri, e)
                result = PlainTextResponse(f"Error: {e.message}", status_code=e.status_code)
        except Exception:
            logger.exception("Unhandled error on %s %s", method, uri)
            if uri.startswith("/api/"):
                result = JSONResponse(status_code=500, content={"detail": "Internal server error"})
            else:
                result = PlainTextResponse("Internal server error", status_code=500)

        if result is None:
            db_status = "Connected" if await run_in_threadpool(db.test_connection) else "Failed"
            result = _home(context, db_status)
        elif isinstance(result, str):
            result = HTMLResponse(result)
        elif not isinstance(result, Response):
            result = JSONResponse(content=result)

        if result.headers.get("content-type", "").startswith("text/html"):
            for name, value in SECURE_HEADERS.items():
                result.headers.setdefault(name, value)
        store_session(result, context.session)
        return result

    return app

