from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from chainport.config import get_settings
from chainport.chains.cache import ChainCache
from chainport.chains.store import ChainStore
from chainport.chains.repository import ChainRepository
from chainport.chains.executor import ChainExecutor
from chainport.chains.routes import router as chains_router, error_response
from chainport.errors import StoreUnavailableError
from chainport.llm import get_llm
from contextlib import asynccontextmanager
import logging

settings = get_settings()

logging.basicConfig(level=settings.log_level,
                    format="%(asctime)s %(levelname)-8s %(name)s %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    store = ChainStore(settings.db_path)
    try:
        await store.open()
    except StoreUnavailableError as e:
        # chains compiled from here on are kept in memory only
        logger.warning("Running without durable storage: %s", e)

    app.state.cache = ChainCache()
    app.state.store = store
    app.state.repository = ChainRepository(app.state.cache, store)
    app.state.executor = ChainExecutor(
        model=settings.model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        step_timeout=settings.step_timeout,
        fallback_credential=settings.openai_api_key,
        llm_factory=get_llm,
    )
    app.state.public_host = settings.public_host
    logger.info("Chain executor ready (model=%s, max_tokens=%d)", settings.model, settings.max_tokens)
    yield
    await store.close()


app = FastAPI(title="Chainport", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chains_router)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # missing, malformed or mistyped bodies answer 400 with an error field
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"Invalid request: {location}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return error_response(400, message)


@app.get("/")
async def root():
    return {"status": "ok", "service": "chainport"}


@app.get("/health")
async def health():
    store = getattr(app.state, "store", None)
    return {"status": "healthy", "durableStore": bool(store and store.is_open)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
