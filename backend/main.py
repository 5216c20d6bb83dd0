# backend/main.py
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

load_dotenv()

from config import settings
from database import SessionLocal, get_db, init_db
from dependencies import Services, build_services
from utils.table_store import StorageRequestError

# Router imports
from routes.customers import router as customers_router
from routes.products import router as products_router
from routes.orders import router as orders_router
from routes.uploads import router as uploads_router
from routes.logs import router as logs_router

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None) -> FastAPI:
    if services is None:
        init_db()
        services = build_services(SessionLocal, settings)

    app = FastAPI(title="Retail Manager API", version="1.0.0")
    app.state.services = services

    # Audit log writes go to the same database as the collections
    if services.session_factory is not SessionLocal:
        def _get_db():
            db = services.session_factory()
            try:
                yield db
            finally:
                db.close()
        app.dependency_overrides[get_db] = _get_db

    # Uploaded files (product images, proofs of payment)
    upload_dir = Path(services.files.root)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(services.files.public_prefix, StaticFiles(directory=str(upload_dir)), name="uploads")

    origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
    if services.settings.FRONTEND_URL:
        origins.append(services.settings.FRONTEND_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Storage failures not handled by a route
    @app.exception_handler(StorageRequestError)
    async def storage_error_handler(request: Request, exc: StorageRequestError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc.message}")
        status_code = 503 if exc.is_transient else exc.status
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    # Router registration
    app.include_router(customers_router)
    app.include_router(products_router)
    app.include_router(orders_router)
    app.include_router(uploads_router)
    app.include_router(logs_router)

    @app.get("/")
    def read_root():
        return {"message": "Retail Manager API is running"}

    return app


app = create_app()
