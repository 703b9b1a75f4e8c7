"""
Main application module for the Forsee AI gateway.

This module defines the FastAPI application, routes, and middleware.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from forsee_ai.auth import (
    AuthFacade, get_auth_facade, get_bearer_token, get_current_user, get_token_claims
)
from forsee_ai.config import get_cors_origins, get_port
from forsee_ai.schemas.assets import Device, DeviceCreateRequest, DeviceListResponse
from forsee_ai.schemas.auth import (
    AuthSession, CurrentUserResponse, GoogleLoginRequest, LoginRequest, RoleRequest,
    RoleRequestResponse, RoleUpdateRequest, SignupRequest, User
)
from forsee_ai.schemas.chat import ChatRequest, ChatResponse
from forsee_ai.schemas.prediction import PredictionErrorResponse, PredictionRequest, PredictionResult
from forsee_ai.schemas.responses import ErrorResponse, HealthResponse
from forsee_ai.services.assets import AssetDirectory
from forsee_ai.services.chat import chat as run_chat
from forsee_ai.services.error_handler import error_handler
from forsee_ai.services.identity import IdentityError
from forsee_ai.services.llm_provider import check_llm_api_keys
from forsee_ai.services.prediction import predict as run_prediction


def log_session_change(user: Optional[User]) -> None:
    if user is None:
        print("Session ended")
    else:
        print(f"Session started for {user.email or user.id}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to start without provider credentials
    check_llm_api_keys()
    yield


# Create FastAPI app
app = FastAPI(
    title="Forsee AI Gateway",
    description="Predictive-maintenance prediction and assistant chat backed by hosted LLMs",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Composition root for the auth facade
app.state.auth_facade = AuthFacade()
app.state.auth_facade.observer.subscribe(log_session_change)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed predict and chat bodies get the same 500 envelope as any other failure."""
    if request.url.path == "/api/predict":
        print(f"Prediction error: invalid request body: {str(exc)}")
        return JSONResponse(status_code=500, content=error_handler.prediction_error_envelope(exc))
    if request.url.path == "/api/chat":
        print(f"Chat API error: invalid request body: {str(exc)}")
        return JSONResponse(status_code=500, content=error_handler.error_envelope(exc, "chat"))
    return await request_validation_exception_handler(request, exc)


@app.get("/api/health", response_model=HealthResponse)
async def health():
    """Health check endpoint. Does not touch any upstream provider."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc)}


@app.post(
    "/api/predict",
    responses={200: {"model": PredictionResult}, 500: {"model": PredictionErrorResponse}}
)
async def predict(request: PredictionRequest):
    """
    Generate a predictive-maintenance report from system info and sensor readings.

    Args:
        request: Request body with 'systemInfo' and 'inputs'

    Returns:
        The model's report with default-filled optional sections, or a 500
        error envelope with an informational fallback
    """
    try:
        system_name = request.systemInfo.get("name") if isinstance(request.systemInfo, dict) else None
        print(f"Received prediction request for: {system_name}")

        prediction = await run_prediction(request.systemInfo, request.inputs)
        return JSONResponse(content=prediction)

    except Exception as e:
        print(f"Prediction error: {type(e).__name__}: {str(e)}")
        return JSONResponse(status_code=500, content=error_handler.prediction_error_envelope(e))


@app.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={500: {"model": ErrorResponse}}
)
async def chat(request: ChatRequest):
    """
    Relay a chat message, with the caller-held history, to the assistant model.

    Args:
        request: Request body with 'message' and optional 'history'

    Returns:
        ChatResponse with the model's reply text
    """
    try:
        print(f"Received chat message: {request.message}")
        print(f"History length: {len(request.history) if request.history is not None else None}")

        text = await run_chat(request.message, request.history)
        return ChatResponse(response=text)

    except Exception as e:
        print(f"Chat API error: {type(e).__name__}: {str(e)}")
        return JSONResponse(status_code=500, content=error_handler.error_envelope(e, "chat"))


# Auth routes

def _identity_failure(e: Exception) -> HTTPException:
    if isinstance(e, IdentityError):
        return HTTPException(status_code=400 if e.status_code < 500 else 502, detail=e.message)
    # RuntimeError: identity provider is not configured
    return HTTPException(status_code=500, detail=str(e))


@app.post("/api/auth/login", response_model=AuthSession)
async def login(request: LoginRequest, facade: AuthFacade = Depends(get_auth_facade)):
    try:
        return await facade.login(request.email, request.password)
    except (IdentityError, RuntimeError) as e:
        raise _identity_failure(e)


@app.post("/api/auth/signup", response_model=AuthSession)
async def signup(request: SignupRequest, facade: AuthFacade = Depends(get_auth_facade)):
    try:
        return await facade.signup(request.name, request.email, request.password)
    except (IdentityError, RuntimeError) as e:
        raise _identity_failure(e)


@app.post("/api/auth/google", response_model=AuthSession)
async def login_with_google(request: GoogleLoginRequest, facade: AuthFacade = Depends(get_auth_facade)):
    try:
        return await facade.login_with_google(request.idToken)
    except (IdentityError, RuntimeError) as e:
        raise _identity_failure(e)


@app.post("/api/auth/logout")
async def logout(
    user: User = Depends(get_current_user),
    facade: AuthFacade = Depends(get_auth_facade)
):
    facade.logout(user)
    return {"status": "signed_out"}


@app.get("/api/auth/me", response_model=CurrentUserResponse)
async def me(
    claims: Dict[str, Any] = Depends(get_token_claims),
    user: User = Depends(get_current_user),
    facade: AuthFacade = Depends(get_auth_facade)
):
    return CurrentUserResponse(user=user, role=facade.get_role(user, claims))


@app.put("/api/auth/roles/{user_id}")
async def set_role(
    user_id: str,
    request: RoleUpdateRequest,
    claims: Dict[str, Any] = Depends(get_token_claims),
    user: User = Depends(get_current_user),
    facade: AuthFacade = Depends(get_auth_facade)
):
    try:
        role = facade.set_role(user, claims, user_id, request.role)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"userId": user_id, "role": role}


@app.post("/api/auth/role-requests", response_model=RoleRequestResponse)
async def request_role(
    request: RoleRequest,
    user: User = Depends(get_current_user),
    facade: AuthFacade = Depends(get_auth_facade)
):
    role = facade.request_role(user, request.role)
    return RoleRequestResponse(userId=user.id, pendingRole=role)


# Device routes backed by the assets resource. Each request uses its own
# AssetDirectory with the caller's token; no device list is kept between requests.

@app.get("/api/devices", response_model=DeviceListResponse)
async def list_devices(token: Optional[str] = Depends(get_bearer_token)):
    """List dashboard devices. Falls back to the default devices, never errors."""
    directory = AssetDirectory(lambda: token)
    return DeviceListResponse(devices=await directory.fetch_devices())


@app.post("/api/devices", response_model=Device, responses={502: {"model": ErrorResponse}})
async def add_device(request: DeviceCreateRequest, token: Optional[str] = Depends(get_bearer_token)):
    directory = AssetDirectory(lambda: token)
    device = await directory.add_device(request.name, request.icon)
    if device is None:
        return JSONResponse(
            status_code=502,
            content={"error": "Failed to add device", "details": "Assets API request failed"}
        )
    return device


@app.delete("/api/devices/{device_id}", responses={502: {"model": ErrorResponse}})
async def remove_device(device_id: str, token: Optional[str] = Depends(get_bearer_token)):
    directory = AssetDirectory(lambda: token)
    if not await directory.remove_device(device_id):
        return JSONResponse(
            status_code=502,
            content={"error": "Failed to remove device", "details": "Assets API request failed"}
        )
    return {"removed": device_id}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("forsee_ai.main:app", host="0.0.0.0", port=get_port())
