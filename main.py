import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import orders
import products
import users
from auth import make_password_context
from config import Settings
from context import ServiceContext, get_context
from database import connect, ensure_indexes
from uploads import LocalStorage, UploadError, build_storage

logger = logging.getLogger(__name__)


def _describe_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    described = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        described.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return described


def _validation_response(errors: List[Dict[str, Any]]) -> JSONResponse:
    described = _describe_errors(errors)
    message = "; ".join(f"{e['field']}: {e['message']}" if e["field"] else e["message"] for e in described)
    return JSONResponse(status_code=400, content={"success": 0, "message": message, "errors": described})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": 0, "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return _validation_response(exc.errors())

    @app.exception_handler(ValidationError)
    async def document_validation_error(request: Request, exc: ValidationError):
        return _validation_response(exc.errors())

    @app.exception_handler(UploadError)
    async def upload_error(request: Request, exc: UploadError):
        logger.error("Upload failed: %s", exc)
        return JSONResponse(status_code=502, content={"success": 0, "error": str(exc)})

    @app.exception_handler(PyMongoError)
    async def store_error(request: Request, exc: PyMongoError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"success": 0, "error": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": 0, "error": str(exc)})


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    if db is None:
        db = connect(settings)
    try:
        ensure_indexes(db)
    except PyMongoError as exc:
        logger.warning("Unable to ensure indexes: %s", exc)

    storage = build_storage(settings)

    app = FastAPI(title="Clothing Store API")
    app.state.ctx = ServiceContext(
        settings=settings,
        db=db,
        pwd_context=make_password_context(settings.bcrypt_rounds),
        storage=storage,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    if isinstance(storage, LocalStorage):
        app.mount("/uploads", StaticFiles(directory=storage.directory), name="uploads")

    app.add_api_route("/", read_root, methods=["GET"], response_class=PlainTextResponse)
    app.add_api_route("/test", database_status, methods=["GET"])
    app.add_api_route("/upload", upload_image, methods=["POST"])
    app.include_router(products.router)
    app.include_router(users.router)
    app.include_router(orders.router)
    return app


def read_root():
    return "Clothing Store API is running"


def database_status(ctx: ServiceContext = Depends(get_context)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if ctx.settings.database_url else "❌ Not Set",
        "database_name": ctx.db.name,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        ctx.db.command("ping")
    except PyMongoError as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
        return response
    response["connection_status"] = "Connected"
    try:
        response["collections"] = ctx.db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️  Connected but Error: {str(e)[:80]}"
    return response


def upload_image(product: Optional[UploadFile] = File(None), ctx: ServiceContext = Depends(get_context)):
    if product is None or not product.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    image_url = ctx.storage.save("product", product.filename, product.file, product.content_type)
    return {"success": 1, "image_url": image_url}


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
