# chainport/chains/routes.py

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from chainport.chains.executor import ChainExecutor
from chainport.chains.repository import ChainRepository
from chainport.errors import ChainportError, StoreUnavailableError, UnknownError, ValidationError
from chainport.schema import (
    ChainDefinition,
    CreateEndpointRequest,
    CreateEndpointResponse,
    ProcessRequest,
    ProcessResponse,
    StepTestRequest,
    StepTestResponse,
    UserChainsRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chains"])

MIN_SLUG_LENGTH = 4


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    """Every error body carries at least ``error``."""
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def get_repository(request: Request) -> ChainRepository:
    return request.app.state.repository


def get_executor(request: Request) -> ChainExecutor:
    return request.app.state.executor


def request_host(request: Request) -> str:
    public_host = getattr(request.app.state, "public_host", None)
    return public_host or request.headers.get("host") or "localhost:8000"


def base_url(request: Request) -> str:
    host = request_host(request)
    protocol = "http" if "localhost" in host else "https"
    return f"{protocol}://{host}"


async def run_chain(
    request: Request,
    chain: ChainDefinition,
    user_input: str,
    verify: Optional[bool] = None,
    include_chain_id: bool = False,
):
    """Execute ``chain`` and shape the HTTP response."""
    result = await get_executor(request).run(chain, user_input, verify=verify)

    if not result.success:
        if result.errorKind == ValidationError.kind:
            return error_response(result.statusCode or 400, result.error)
        return error_response(
            500,
            f"Error processing step {result.failedStepId}: {result.error}",
            partialResults=[step.model_dump() for step in result.steps],
        )

    return ProcessResponse(
        success=True,
        finalResult=result.finalResult,
        steps=result.steps,
        stepResults=result.stepResults,
        chainId=chain.id if include_chain_id else None,
    ).model_dump(exclude_none=True)


@router.post("/chain-process", response_model=StepTestResponse)
async def try_step(request: Request, body: StepTestRequest):
    """
    Run a single step with its seed input, before the chain is compiled.

    Falls back to the server's API key when the request carries none.
    """
    logger.info("Step test requested (model=%s, has_key=%s)", body.model, bool(body.apiKey))
    try:
        result = await get_executor(request).run_step(
            body.inputStatement,
            body.instructions,
            body.requiredOutput,
            credential=body.apiKey,
            model=body.model,
        )
        return StepTestResponse(result=result)
    except ChainportError as e:
        logger.error("Step test failed: %s", e)
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception("Step test failed")
        return error_response(UnknownError.status_code, f"OpenAI API error: {e}")


@router.post("/create-endpoint", response_model=CreateEndpointResponse)
async def create_endpoint(request: Request, body: CreateEndpointRequest):
    """Compile a list of steps into a callable chain endpoint."""
    if body.userInfo is None or not body.userInfo.email:
        return error_response(401, "User information required")
    if body.chainData is None or not body.chainData.steps:
        return error_response(400, "Invalid chain data. Chain must have at least one step.")
    if not body.apiKey:
        return error_response(400, "OpenAI API key is required")

    try:
        created = await get_repository(request).create(
            body.chainData.steps,
            body.userInfo,
            body.apiKey,
            request_host(request),
        )
    except ValidationError as e:
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception("Error creating endpoint")
        return error_response(UnknownError.status_code, f"Failed to create endpoint: {e}")

    chain = created.chain
    logger.info("Created endpoint %s for chain %s", chain.endpointUrl, chain.id)
    if created.warning:
        message = "Chain endpoint created but only stored in memory (will be lost on server restart)"
    else:
        message = "Chain endpoint created successfully"

    return CreateEndpointResponse(
        id=chain.id,
        endpointUrl=chain.endpointUrl,
        portNumber=chain.portNumber,
        userName=chain.userName,
        message=message,
        warning=created.warning,
    )


@router.post("/process/{chain_id}")
async def process_chain(request: Request, chain_id: str, body: ProcessRequest):
    """Run a compiled chain by its full id, with the verifying prompt."""
    if not body.input:
        return error_response(400, "Input is required")

    logger.info("Processing chain with ID: %s", chain_id)
    chain = await get_repository(request).resolve(chain_id)
    if chain is None:
        return error_response(404, "Chain not found. Please check the chain ID.")

    return await run_chain(request, chain, body.input, verify=True)


@router.get("/chains/{user}/{port}/{chain_id}")
async def get_chain(request: Request, user: str, port: str, chain_id: str):
    chain = await get_repository(request).resolve(chain_id)
    if chain is None:
        return error_response(404, "Chain not found. It may have expired or been deleted.")

    return {
        "success": True,
        "chain": chain.public_view(),
        "message": "Chain data retrieved successfully",
        "usage": {
            "endpoint": 'POST to this URL with {"input": "your text"} to process through the chain'
        },
    }


@router.post("/chains/{user}/{port}/{chain_id}")
async def process_chain_endpoint(request: Request, user: str, port: str, chain_id: str, body: ProcessRequest):
    """Run a compiled chain through the URL handed out at compile time."""
    if not body.input:
        return error_response(400, "Input is required")

    chain = await get_repository(request).resolve(chain_id)
    if chain is None:
        return error_response(404, "Chain not found. It may have expired or been deleted.")

    return await run_chain(request, chain, body.input, verify=False)


@router.get("/chain-direct/{slug}")
async def find_chain_by_slug(request: Request, slug: str):
    """Find a chain from a short fragment of its id."""
    if len(slug) < MIN_SLUG_LENGTH:
        return error_response(400, f"Slug must be at least {MIN_SLUG_LENGTH} characters long")

    chain = await get_repository(request).resolve_by_prefix(slug)
    if chain is None:
        return error_response(404, "No chains found matching this slug")

    root = base_url(request)
    simple_endpoint = f"{root}/api/process/{chain.id}"
    return {
        "success": True,
        "chainId": chain.id,
        "fullEndpoint": f"{root}/api/chains/{chain.userName}/{chain.portNumber}/{chain.id}",
        "simpleEndpoint": simple_endpoint,
        "userPrompt": (
            f"Use the simplified endpoint for quick processing: POST to {simple_endpoint} "
            'with {"input": "your text"}'
        ),
    }


@router.post("/chain-direct/{slug}")
async def process_chain_by_slug(request: Request, slug: str, body: ProcessRequest):
    if len(slug) < MIN_SLUG_LENGTH:
        return error_response(400, f"Slug must be at least {MIN_SLUG_LENGTH} characters long")
    if not body.input:
        return error_response(400, "Input is required")

    chain = await get_repository(request).resolve_by_prefix(slug)
    if chain is None:
        return error_response(404, "No chains found matching this slug")

    return await run_chain(request, chain, body.input, verify=False, include_chain_id=True)


@router.post("/user-chains")
async def list_user_chains(request: Request, body: UserChainsRequest):
    if not body.userId:
        return error_response(400, "User ID is required")

    try:
        chains = await get_repository(request).list_for_owner(body.userId)
    except StoreUnavailableError as e:
        logger.error("Error retrieving chains for %s: %s", body.userId, e)
        return error_response(500, f"Failed to retrieve chains: {e}")

    return {"success": True, "chains": [chain.public_view() for chain in chains]}


@router.get("/debug-chain/{chain_id}")
async def debug_chain(request: Request, chain_id: str):
    return await get_repository(request).inspect(chain_id)
