"""FastAPI application entry point"""

import os
import random

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Load environment variables
load_dotenv()

from battle_core import BattleError, ErrorCode, Settings, classify_error
from llm_client import LLMError
from api_server.dependencies import create_llm_client
from api_server.middleware import setup_cors, setup_rate_limit, setup_logging, LoggingMiddleware
from api_server.routes import health_router, battle_router

# Setup logging
logger = setup_logging()

# Create FastAPI app
app = FastAPI(
    title="Debate Battle API",
    description="Turn-based LLM debate battle with streamed rounds",
    version="1.0.0",
)

# Configuration is read once; the client (or None) is shared by every request
app.state.settings = Settings.from_env()
app.state.llm_client = create_llm_client(app.state.settings)
app.state.rng = random.Random()

# Setup middleware
setup_cors(app)
setup_rate_limit(app)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(BattleError)
async def battle_error_handler(request: Request, exc: BattleError):
    return JSONResponse(status_code=400, content={"error": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid {location}: {first.get('msg', 'bad value')}" if location else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": message, "code": ErrorCode.BAD_REQUEST})


@app.exception_handler(LLMError)
async def llm_error_handler(request: Request, exc: LLMError):
    code, message = classify_error(exc)
    logger.error(str({"event": "llm_error", "path": request.url.path, "code": code, "error": str(exc)}))
    return JSONResponse(status_code=500, content={"error": message, "code": code})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    code, message = classify_error(exc)
    logger.exception(str({"event": "unhandled_error", "path": request.url.path, "code": code}))
    return JSONResponse(status_code=500, content={"error": message, "code": code})


# Include routers
app.include_router(health_router)
app.include_router(battle_router)


@app.get("/")
async def root():
    """Service banner"""
    return {
        "message": "Debate Battle API",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    uvicorn.run(
        "api_server.main:app",
        host=host,
        port=port,
        reload=os.getenv("RELOAD", "false").lower() == "true",
    )
