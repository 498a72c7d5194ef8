import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from accounts import build_pwd_context
from config import Settings, get_settings
from database import Database, RecordStore
from notifications import Mailer
from tables import create_tables, metadata

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    # Composition root: the database handle lives exactly as long as the app
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up...")
        database = Database(settings.database_url, echo=settings.database_echo).open()
        try:
            database.ping()
            logger.info("Database connection successful")
            if settings.create_tables:
                create_tables(database)
            app.state.settings = settings
            app.state.database = database
            app.state.store = RecordStore(database, metadata)
            app.state.mailer = Mailer(settings)
            app.state.pwd_context = build_pwd_context(settings.password_schemes)
            yield
        finally:
            logger.info("Shutting down...")
            database.close()

    app = FastAPI(title="Shop API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def read_root():
        return {"message": "Shop API running"}

    @app.get("/test")
    def test_database(request: Request):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": None,
            "database_name": None,
            "connection_status": "Not Connected",
            "tables": [],
            "records": {},
            "email": None,
            "password_hashing": None,
        }
        state = request.app.state
        database: Optional[Database] = getattr(state, "database", None)
        try:
            if database is not None and database.is_open:
                response["database"] = "✅ Available"
                response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
                response["database_name"] = database.engine.url.database
                try:
                    database.ping()
                    response["connection_status"] = "Connected"
                    response["tables"] = database.table_names()[:10]
                    response["records"] = {
                        name: state.store.count(name) for name in response["tables"] if name in metadata.tables
                    }
                    response["database"] = "✅ Connected & Working"
                    response["email"] = "✅ Enabled" if state.mailer.enabled else "⚠️  Logged only"
                    if state.mailer.admin_address:
                        response["email"] += f" (admin: {state.mailer.admin_address})"
                    response["password_hashing"] = state.pwd_context.default_scheme()
                except Exception as e:
                    response["database"] = f"⚠️  Connected but Error: {str(e)[:80]}"
            else:
                response["database"] = "⚠️  Available but not initialized"
        except Exception as e:
            response["database"] = f"❌ Error: {str(e)[:80]}"
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = get_settings().port
    uvicorn.run(app, host="0.0.0.0", port=port)
