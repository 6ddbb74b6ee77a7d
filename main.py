from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import asyncio
from concurrent.futures import ThreadPoolExecutor
import logging
import uvicorn

from ytaudio import __version__
from ytaudio.config import load_settings
from ytaudio.convert import convert
from ytaudio.errors import ConvertError, InternalError, MethodNotAllowedError
from ytaudio.response import ConvertRequest, error_body, success_body

settings = load_settings()

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="YouTube Audio API",
    description="Resolves YouTube videos to direct audio stream URLs for music players",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# yt-dlp and the HTTP providers are blocking, keep them off the event loop
executor = ThreadPoolExecutor(max_workers=4)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Max-Age": "86400",
}


@app.middleware("http")
async def allow_any_origin(request: Request, call_next):
    """Answer preflights here and give every response the allow-all origin"""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "YouTube Audio API",
        "version": __version__,
        "endpoints": {
            "/api/convert": "Resolve a YouTube URL or video ID to an audio stream (GET ?url= or POST {\"url\": ...})",
            "/health": "Health check endpoint"
        },
        "providers": settings.provider_chain
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}


async def _read_url(request: Request):
    if request.method == "GET":
        return request.query_params.get("url")

    try:
        body = await request.json()
        return ConvertRequest.model_validate(body).url
    except (ValueError, PydanticValidationError):
        return None


@app.api_route("/api/convert", methods=["GET", "POST"])
async def convert_video(request: Request):
    """Resolve a YouTube video to its best audio stream"""
    logger.info(f"{request.method} /api/convert")

    try:
        url = await _read_url(request)
        loop = asyncio.get_event_loop()
        result = await loop.run_in_executor(executor, convert, url, settings)
        return JSONResponse(status_code=200, content=success_body(result))

    except ConvertError:
        raise
    except Exception as e:
        logger.exception(f"Conversion error: {str(e)}")
        raise InternalError(details=str(e))


@app.exception_handler(ConvertError)
async def convert_error_handler(request: Request, exc: ConvertError):
    """Render conversion errors as the error envelope"""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details, debug=settings.debug)
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Routing errors (unknown path, unsupported method) use the same envelope"""
    message = MethodNotAllowedError.default_message if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler"""
    logger.error(f"Unexpected error: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content=error_body(InternalError.default_message, str(exc), debug=settings.debug),
        headers={"Access-Control-Allow-Origin": "*"}
    )


if __name__ == "__main__":
    logger.info(f"Local backend server running at http://localhost:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
