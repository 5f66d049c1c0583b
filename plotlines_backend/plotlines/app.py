from contextlib import asynccontextmanager
import logging
import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

# Ensure .env is loaded before building API clients
from . import settings
from .illustrations import IllustrationResolver
from .llm import StoryLLM
from .models import GeneratedStory, StoryParameters
from .orchestrator import StoryPipeline

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    http_client = httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_S,
        follow_redirects=True,
        headers={"User-Agent": settings.USER_AGENT},
    )
    llm = StoryLLM(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        structured=settings.OPENAI_STRUCTURED_OUTPUT,
    )
    app.state.http_client = http_client
    app.state.pipeline = StoryPipeline(llm, IllustrationResolver(http_client))
    logger.info(f"Story pipeline ready (model={llm.model}, structured={llm.structured})")
    try:
        yield
    finally:
        await http_client.aclose()

app = FastAPI(title="Plotlines Social Story Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)

def get_pipeline(request: Request) -> StoryPipeline:
    return request.app.state.pipeline

def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client

def proxy_base_for(request: Request) -> str:
    if settings.PUBLIC_API_ORIGIN:
        return settings.PUBLIC_API_ORIGIN
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme or "http"
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"

def safe_error(e: Exception) -> dict:
    return {"message": str(e), "type": type(e).__name__}

@app.get("/health")
def health():
    keys_ok = settings.has_all_keys()
    logger.info(f"Health check: API keys present = {keys_ok}")
    return {"ok": True, "has_keys": keys_ok}

@app.post("/api/generate-story", response_model=GeneratedStory)
async def generate_story(req: StoryParameters, request: Request, pipeline: StoryPipeline = Depends(get_pipeline)):
    logger.info(f"Generating story for activity: {req.specific_activity[:50]}")
    try:
        return await pipeline.run(req, proxy_base=proxy_base_for(request))
    except Exception as e:
        logger.exception(f"Story generation failed: {str(e)}")
        body = {"error": "Failed to generate story with OpenAI"}
        if settings.is_dev():
            body["details"] = safe_error(e)
        return JSONResponse(status_code=500, content=body)

def _valid_src(src: str) -> bool:
    try:
        url = httpx.URL(src)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return url.scheme in ("http", "https") and bool(url.host)

@app.get("/api/image-proxy")
async def image_proxy(src: str = Query(""), client: httpx.AsyncClient = Depends(get_http_client)):
    if not src or not _valid_src(src):
        return PlainTextResponse("Invalid src", status_code=400)
    try:
        upstream = await client.send(client.build_request("GET", src), stream=True)
    except httpx.HTTPError as e:
        logger.error(f"Image proxy failed for {src}: {e}")
        return PlainTextResponse("Proxy error", status_code=500)

    if not upstream.is_success:
        await upstream.aclose()
        logger.warning(f"Image proxy upstream returned {upstream.status_code} for {src}")
        return PlainTextResponse("Upstream error", status_code=upstream.status_code)

    headers = {}
    cache = upstream.headers.get("cache-control")
    if cache:
        headers["Cache-Control"] = cache
    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type=upstream.headers.get("content-type") or "image/jpeg",
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
