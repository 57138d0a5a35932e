"""
FastAPI application for the election document API.

Serves the candidates, votes, voting-ids and used-voting-ids collections
and the operations that mutate them: candidate registration and vote
submission. All state lives in the configured document store.
"""
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from .collections import ElectionCollections
from .config import settings
from .errors import ElectionError
from .models import (
    CandidateRequest,
    HealthResponse,
    MessageResponse,
    VoteRequest,
    VotingIdRequest,
    VotingIdStatusResponse,
)
from .orchestrators import RegistrationOrchestrator, VoteOrchestrator, VoteOutcome
from .retry import CasRetryCoordinator
from .stores import DocumentStore, create_store

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
vote_outcomes = Counter(
    "vote_submissions_total",
    "Total number of vote submissions by outcome",
    ["outcome"]
)
registration_outcomes = Counter(
    "candidate_registrations_total",
    "Total number of candidate registrations by outcome",
    ["outcome"]
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

bearer_scheme = HTTPBearer(auto_error=False)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service with {settings.STORE_BACKEND} store...")

    app.state.store = None
    if settings.store_configured:
        app.state.store = create_store(settings)
        logger.info(f"{settings.SERVICE_NAME} started successfully")
    else:
        logger.error(
            f"SERVER ERROR: credentials for the {settings.STORE_BACKEND} store are not configured."
        )

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    if app.state.store is not None:
        await app.state.store.close()


# Create FastAPI app
app = FastAPI(
    title="Election Document API",
    description="Candidates, voting IDs and votes stored as versioned JSON documents",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
    max_age=settings.CORS_MAX_AGE,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    start_time = time.perf_counter()
    response = await call_next(request)
    request_duration.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).observe(time.perf_counter() - start_time)
    return response


@app.exception_handler(ElectionError)
async def election_error_handler(request: Request, exc: ElectionError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message}
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Malformed request body."}
    )


# Dependencies

def get_store(request: Request) -> DocumentStore:
    """The document store created at startup."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise ElectionError(
            f"Document store credentials are not configured for the "
            f"{settings.STORE_BACKEND} backend."
        )
    return store


def get_collections(store: DocumentStore = Depends(get_store)) -> ElectionCollections:
    return ElectionCollections(store)


def get_coordinator() -> CasRetryCoordinator:
    return CasRetryCoordinator(
        max_retries=settings.MAX_RETRIES,
        backoff_seconds=settings.RETRY_BACKOFF_SECONDS
    )


def get_vote_orchestrator(
    collections: ElectionCollections = Depends(get_collections),
    coordinator: CasRetryCoordinator = Depends(get_coordinator),
) -> VoteOrchestrator:
    return VoteOrchestrator(collections, coordinator)


def get_registration_orchestrator(
    collections: ElectionCollections = Depends(get_collections),
    coordinator: CasRetryCoordinator = Depends(get_coordinator),
) -> RegistrationOrchestrator:
    return RegistrationOrchestrator(collections, coordinator)


def verify_bearer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Require the static bearer token when one is configured."""
    expected = settings.API_BEARER_TOKEN
    if not expected:
        return
    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise ElectionError("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)


router = APIRouter(prefix=settings.API_PREFIX, dependencies=[Depends(verify_bearer)])


def internal_error(operation: str, error: Exception) -> ElectionError:
    logger.error(f"Error {operation}: {error}", exc_info=True)
    return ElectionError(f"Internal Server Error: {str(error) or 'Unknown error'}")


@router.get("/candidates", response_model=list[dict])
async def get_candidates(collections: ElectionCollections = Depends(get_collections)):
    """List registered candidates. Passwords are never returned."""
    try:
        candidates = await collections.candidates.get_all()
        return [candidate.to_public_dict() for candidate in candidates]
    except ElectionError:
        raise
    except Exception as e:
        raise internal_error("listing candidates", e)


@router.get("/votes", response_model=list[dict])
async def get_votes(collections: ElectionCollections = Depends(get_collections)):
    """List cast votes."""
    try:
        votes = await collections.votes.get_all()
        return [vote.to_dict() for vote in votes]
    except ElectionError:
        raise
    except Exception as e:
        raise internal_error("listing votes", e)


@router.get("/voting-ids", response_model=list[dict])
async def get_voting_ids(collections: ElectionCollections = Depends(get_collections)):
    """List provisioned voting IDs."""
    try:
        credentials = await collections.voting_ids.get_all()
        return [credential.to_dict() for credential in credentials]
    except ElectionError:
        raise
    except Exception as e:
        raise internal_error("listing voting IDs", e)


@router.get("/used-voting-ids", response_model=list[str])
async def get_used_voting_ids(collections: ElectionCollections = Depends(get_collections)):
    """List voting IDs that have already voted."""
    try:
        return await collections.used_voting_ids.get_all()
    except ElectionError:
        raise
    except Exception as e:
        raise internal_error("listing used voting IDs", e)


@router.post("/check-voting-id", response_model=VotingIdStatusResponse)
async def check_voting_id(
    payload: VotingIdRequest,
    orchestrator: VoteOrchestrator = Depends(get_vote_orchestrator),
) -> VotingIdStatusResponse:
    """
    Check a voting ID before showing the ballot.

    - **votingId**: Voting ID to check

    Returns whether the ID is valid and already used, with the player it
    was issued to.
    """
    try:
        result = await orchestrator.check(payload.votingId)
    except ElectionError:
        raise
    except Exception as e:
        raise internal_error("checking voting ID", e)

    return VotingIdStatusResponse(
        valid=True,
        used=result.used,
        message="Voting ID has already been used." if result.used else "Voting ID accepted.",
        playerName=result.credential.player_name,
        gameEdition=result.credential.game_edition,
    )


@router.get("/check-voting-id", response_model=VotingIdStatusResponse)
async def get_voting_id_status(
    votingId: Optional[str] = Query(default=None),
    orchestrator: VoteOrchestrator = Depends(get_vote_orchestrator),
) -> VotingIdStatusResponse:
    """Query-string variant of the voting ID check."""
    try:
        result = await orchestrator.check(votingId)
    except ElectionError:
        raise
    except Exception as e:
        raise internal_error("checking voting ID", e)

    return VotingIdStatusResponse(
        valid=True,
        used=result.used,
        message="Voting ID status retrieved.",
        playerName=result.credential.player_name,
        gameEdition=result.credential.game_edition,
    )


@router.post("/register-candidate", response_model=MessageResponse)
@limiter.limit(settings.RATE_LIMIT)
async def register_candidate(
    request: Request,
    payload: CandidateRequest,
    orchestrator: RegistrationOrchestrator = Depends(get_registration_orchestrator),
) -> MessageResponse:
    """
    Register a candidate.

    - **partyName**: Party name, unique ignoring case
    - **candidateName**: Candidate display name
    - **password**: Candidate password

    Any other fields are stored with the candidate.
    """
    try:
        await orchestrator.register(payload.model_dump())
    except ElectionError as e:
        registration_outcomes.labels(outcome=type(e).__name__).inc()
        raise
    except Exception as e:
        registration_outcomes.labels(outcome="internal_error").inc()
        raise internal_error("registering candidate", e)

    registration_outcomes.labels(outcome="registered").inc()
    return MessageResponse(success=True, message="Candidate registered successfully.")


@router.post("/submit-vote", response_model=MessageResponse)
@limiter.limit(settings.RATE_LIMIT)
async def submit_vote(
    request: Request,
    payload: VoteRequest,
    orchestrator: VoteOrchestrator = Depends(get_vote_orchestrator),
) -> MessageResponse:
    """
    Cast a vote.

    - **votingId**: Provisioned voting ID, consumed by this vote
    - **party**: Party voted for
    - **realName**: Optional real name
    - **discordInsta**: Optional Discord or Instagram handle

    Submitting again with a used voting ID succeeds without recording
    another vote.
    """
    try:
        outcome = await orchestrator.submit(
            payload.votingId,
            payload.party,
            real_name=payload.realName,
            discord_insta=payload.discordInsta,
        )
    except ElectionError as e:
        vote_outcomes.labels(outcome=type(e).__name__).inc()
        raise
    except Exception as e:
        vote_outcomes.labels(outcome="internal_error").inc()
        raise internal_error("submitting vote", e)

    vote_outcomes.labels(outcome=outcome.value).inc()
    if outcome is VoteOutcome.ALREADY_VOTED:
        return MessageResponse(success=True, message="This Voting ID has already been used to vote.")
    return MessageResponse(success=True, message="Vote submitted successfully.")


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Check health of the service and its document store.

    Returns overall health status and the store status.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        store_status = "unconfigured"
    else:
        try:
            store_status = "connected" if await store.check_health() else "disconnected"
        except Exception as e:
            logger.error(f"Document store health check error: {e}")
            store_status = "error"

    healthy = store_status == "connected"
    response = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        services={settings.STORE_BACKEND: store_status},
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


app.include_router(router)


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    prefix = settings.API_PREFIX
    return {
        "service": settings.SERVICE_NAME,
        "store": settings.STORE_BACKEND,
        "status": "running",
        "endpoints": {
            "candidates": f"{prefix}/candidates",
            "votes": f"{prefix}/votes",
            "voting_ids": f"{prefix}/voting-ids",
            "used_voting_ids": f"{prefix}/used-voting-ids",
            "check_voting_id": f"{prefix}/check-voting-id",
            "register_candidate": f"{prefix}/register-candidate",
            "submit_vote": f"{prefix}/submit-vote",
            "health": f"{prefix}/health",
            "metrics": "/metrics"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.election_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
