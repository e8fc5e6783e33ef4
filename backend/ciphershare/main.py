import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .core.database import create_db_and_tables
from .core.errors import CipherShareError, NoChangeError
from .core.init_db import init_db
from .core.log_config import configure_logging
from .core.settings import settings
# Import models to register them with SQLModel
from .models.User import User
from .models.Department import Department
from .models.File import StoredFile
from .models.Sharing import Permission, SharedFile, ShareRequest
from .models.Audit import AuditLog

from .files.router import router as files_router
from .sharing.router import router as sharing_router
from .audit.router import router as audit_router

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    init_db()
    yield


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(files_router)
app.include_router(sharing_router)
app.include_router(audit_router)

@app.exception_handler(CipherShareError)
async def ciphershare_error_handler(request: Request, exc: CipherShareError):
    if isinstance(exc, NoChangeError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "code": "no_change"})

    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        # Key, decryption and content failures share one outward message
        detail = exc.message if exc.status_code == 503 else "The file could not be retrieved."
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": detail, "code": type(exc).__name__},
        )

    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "code": exc.code})

@app.get("/health")
def health_check():
    return {"status": "healthy"}

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}
