import logging
import os
import platform
from contextlib import asynccontextmanager
from typing import Optional

import fastapi
from fastapi import FastAPI, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.templating import Jinja2Templates
from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from tenacity import Retrying, stop_after_attempt, wait_fixed

from config import Settings
from database import create_db_engine, create_session_factory, get_db
from models import Base, Visit
from visits import DatabaseConnectionError, QueryError, record_visit

logger = logging.getLogger("visit_counter")

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

# Configurer Jinja2 et le dossier des templates
templates = Jinja2Templates(directory=TEMPLATES_DIR)


def create_tables(engine: Engine):
    inspector = inspect(engine)
    if not inspector.has_table(Visit.__tablename__):
        logger.info("Creating tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Tables created.")
    else:
        logger.info("Tables already exist.")


# Création des tables avec retry et délai entre les tentatives
def create_tables_with_retry(engine: Engine, settings: Settings):
    retrying = Retrying(
        stop=stop_after_attempt(max(settings.SCHEMA_RETRY_ATTEMPTS, 1)),
        wait=wait_fixed(settings.SCHEMA_RETRY_WAIT_SECONDS),
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            create_tables(engine)


def get_db_info(db: Session) -> str:
    dialect = db.get_bind().dialect
    version = dialect.server_version_info
    if not version:
        return dialect.name
    return f"{dialect.name} {'.'.join(str(part) for part in version)}"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Les requêtes recréent la table si besoin, un échec ici n'est pas bloquant
        try:
            await run_in_threadpool(create_tables_with_retry, app.state.engine, settings)
        except Exception as e:
            logger.warning("Failed to create tables: %s", e)
        yield
        app.state.engine.dispose()

    app = FastAPI(title="Visit Counter", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = create_db_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/")
    def read_root(request: Request, db: Session = Depends(get_db)):
        database = settings.database_name()
        try:
            result = record_visit(db)
        except DatabaseConnectionError as e:
            return templates.TemplateResponse(request, "error.html", {
                "title": settings.PAGE_TITLE,
                "message": f"Connection failed: {e.message}",
            }, status_code=503)
        except QueryError as e:
            return templates.TemplateResponse(request, "error.html", {
                "title": settings.PAGE_TITLE,
                "message": f"Query failed: {e.message}",
            }, status_code=500)

        # Renvoyer le template Jinja2 avec le compteur et les informations
        return templates.TemplateResponse(request, "index.html", {
            "title": settings.PAGE_TITLE,
            "database": database,
            "count": result.count,
            "db_info": get_db_info(db),
            "framework_info": f"FastAPI {fastapi.__version__}",
            "server_info": settings.SERVER_SOFTWARE,
            "os_info": platform.system(),
            "port_info": settings.PORT,
            "container_info": settings.CONTAINER_NAME,
        })

    return app


app = create_app()
