from fastapi import FastAPI, APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone

from unit_converter import UnitConverter, ConversionStatus, RESPONSE_FIELDS, error_message

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

SERVICE_NAME = os.environ.get('SERVICE_NAME', 'Unit Converter API')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

app = FastAPI(title="Metric/Imperial Unit Converter")

# ==================== CORS CONFIGURATION (MUST BE FIRST) ====================
# Default allowed origins for local development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3001",
]

cors_origins_env = os.environ.get('CORS_ORIGINS', '')
if cors_origins_env:
    cors_origins = [origin.strip() for origin in cors_origins_env.split(',') if origin.strip()]
else:
    cors_origins = DEFAULT_CORS_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=cors_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "Access-Control-Request-Method",
        "Access-Control-Request-Headers",
    ],
    max_age=600,  # Cache preflight for 10 minutes
)

# ==================== HEALTH ENDPOINT (ROOT LEVEL) ====================
@app.get("/api/health")
async def health_check():
    """Health check endpoint for monitoring and CORS verification"""
    return {
        "ok": True,
        "time": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": converter.version
    }

@app.options("/api/health")
async def health_options():
    """Preflight handler for health endpoint"""
    return {}

api_router = APIRouter(prefix="/api")

# Stateless, shared by every request
converter = UnitConverter()

# ==================== CONVERSION ROUTES ====================

@api_router.get("/convert")
async def convert(input: Optional[str] = Query(default="")):
    """
    Convert a combined number+unit query, e.g. /api/convert?input=3/2km

    Success returns JSON (initNum, initUnit, returnNum, returnUnit, string).
    Invalid input returns plain text: "invalid number", "invalid unit" or
    "invalid number and unit".
    """
    result = converter.convert_input(input)

    if result.status == ConversionStatus.ERROR:
        if any(e.error_code == "UNEXPECTED_ERROR" for e in result.errors):
            raise HTTPException(status_code=500, detail="Conversion failed")

        message = error_message(result.errors)
        logger.info(f"Rejected conversion input {input!r}: {message}")
        return PlainTextResponse(message)

    logger.info(f"Converted {input!r}: {result.string}")
    return result.model_dump(by_alias=True, include=RESPONSE_FIELDS, mode="json")


app.include_router(api_router)
# API routes registered

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@app.on_event("startup")
async def startup_event():
    logger.info(f"{SERVICE_NAME} started, CORS origins: {', '.join(cors_origins)}")
