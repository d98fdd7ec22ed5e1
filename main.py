# main.py
import time
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

import auth_route
import billing_route
import dashboard_route
import settings_route
from config import APP_NAME, APP_VERSION, CORS_ORIGINS, LOG_LEVEL, PORT
from db import engine, get_session, init_db
from errors import BillingError
from models import utcnow

logging.basicConfig(
  level=LOG_LEVEL,
  format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
  datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
  logger.info(f"Starting {APP_NAME} v{APP_VERSION}")
  init_db()
  with Session(engine) as session:
    auth_route.ensure_admin_user(session)
  yield
  logger.info("Shutting down, closing database pool")
  engine.dispose()

app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)
app.add_middleware(
  CORSMiddleware,
  allow_origins=CORS_ORIGINS,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
  started = time.perf_counter()
  response = await call_next(request)
  elapsed_ms = (time.perf_counter() - started) * 1000
  logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
  return response

@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
  headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
  return JSONResponse(
    status_code=exc.status_code,
    content={"error": exc.error, "message": exc.message},
    headers=headers,
  )

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
  return JSONResponse(
    status_code=400,
    content={
      "error": "ValidationError",
      "message": "Validation failed",
      "details": jsonable_encoder(exc.errors()),
    },
  )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
  logger.error(f"Unhandled {type(exc).__name__} in {request.method} {request.url.path}: {exc}", exc_info=exc)
  return JSONResponse(status_code=500, content={"error": "InternalError", "message": "Internal server error"})

app.include_router(auth_route.router)
app.include_router(billing_route.router)
app.include_router(dashboard_route.router)
app.include_router(settings_route.router)

@app.get("/health")
def health():
  return {"status": "OK", "timestamp": utcnow(), "service": APP_NAME, "version": APP_VERSION}

@app.get("/health/db")
def health_db(session: Session = Depends(get_session)):
  try:
    session.exec(text("SELECT 1"))
  except SQLAlchemyError as e:
    logger.error(f"Database health check failed: {e}")
    return JSONResponse(status_code=503, content={"status": "ERROR", "database": "Disconnected"})
  return {"status": "OK", "timestamp": utcnow(), "database": "Connected"}

if __name__ == "__main__":
  import uvicorn
  logger.info(f"Database: {engine.url.render_as_string(hide_password=True)}")
  uvicorn.run(app, host="0.0.0.0", port=PORT)
