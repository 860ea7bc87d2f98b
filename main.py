from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import logging
import os
from dotenv import load_dotenv

from search_routes import ENDPOINTS, router
from search_service import SearchError
from search_utils.search_models import HealthResponse

# Load environment variables
load_dotenv()

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

app = FastAPI(
    title="Search Proxy API",
    description="Scrape DuckDuckGo, Google and Bing and return normalized JSON results",
    version=API_VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def preflight(request: Request, call_next):
    """Answer every OPTIONS request with an empty 204"""
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)
    return await call_next(request)


@app.exception_handler(SearchError)
async def search_error_handler(request: Request, exc: SearchError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed with {exc.status_code}: {exc.error}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=CORS_HEADERS)


app.include_router(router)


@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """Health check endpoint"""
    return {
        "message": "Search Proxy API",
        "version": API_VERSION,
        "status": "healthy"
    }


@app.api_route(
    "/{path:path}",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False
)
async def not_found(path: str):
    return JSONResponse(
        {"error": "Not found.", "endpoints": ENDPOINTS},
        status_code=404,
        headers=CORS_HEADERS
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
