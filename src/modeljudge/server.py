"""
Model Judge Server - FastAPI application
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import __version__
from .auth import AuthService
from .database import Database
from .errors import (
    AuthError, ConflictError, ModelJudgeError, NotFoundError, UnverifiedAccountError, ValidationError,
)
from .mailer import Mailer
from .orchestrator import ConversationOrchestrator
from .schemas import (
    ChatIn, ChatOut, DeleteOut, ForgotPasswordIn, LoginIn, LoginOut, MessageOut,
    ResetPasswordIn, SignupIn, ThreadItem, ThreadList,
)
from .settings import Settings, settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

GENERIC_ERROR = "Internal server error"


def _http_error(e: Exception) -> HTTPException:
    """Map a Model Judge error onto an HTTP status"""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, UnverifiedAccountError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, AuthError):
        return HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"})
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    logger.exception("Unhandled error: %s", e)
    return HTTPException(status_code=500, detail=GENERIC_ERROR)


def current_user_id(request: Request,
                    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> int:
    """Resolve the bearer token to a user id, or reject with 401"""
    token = credentials.credentials if credentials else None
    try:
        return request.app.state.auth.tokens.verify(token)
    except AuthError as e:
        raise _http_error(e)


def create_app(config: Optional[Settings] = None,
               orchestrator: Optional[ConversationOrchestrator] = None,
               auth: Optional[AuthService] = None,
               mailer: Optional[Mailer] = None) -> FastAPI:
    """Build the application; components not injected are created on startup"""
    config = config or settings

    app = FastAPI(
        title="Model Judge",
        description="Asks two language models and keeps the best answer",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.database = None
    app.state.orchestrator = orchestrator
    app.state.auth = auth
    app.state.mailer = mailer or Mailer.from_settings(config)

    @app.on_event("startup")
    async def startup_event():
        """Initialize services on startup"""
        logger.info("Starting Model Judge server...")
        logger.info(f"API Keys Status: {config.api_key_summary()}")
        logger.info(f"Judge strategy: {config.judge_strategy}")

        if app.state.orchestrator is None or app.state.auth is None:
            database = Database(config.database_url)
            database.create_all()
            app.state.database = database

            if app.state.orchestrator is None:
                app.state.orchestrator = ConversationOrchestrator.from_settings(config, database)
                repaired = app.state.orchestrator.store.repair_orphans()
                if repaired:
                    logger.info(f"Repaired {repaired} orphaned conversation records")
            if app.state.auth is None:
                app.state.auth = AuthService.from_settings(config, database)

        logger.info("Model Judge server started successfully")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        if app.state.database is not None:
            app.state.database.dispose()
        logger.info("Model Judge server shutdown complete")

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok", "message": "Backend is running!"}

    @app.post("/auth/signup", response_model=MessageOut, status_code=201)
    def signup(body: SignupIn, background_tasks: BackgroundTasks):
        """Create an unverified account and email the verification link"""
        try:
            result = app.state.auth.signup(body.name, body.email, body.password)
        except ModelJudgeError as e:
            raise _http_error(e)

        background_tasks.add_task(
            app.state.mailer.send_verification_email, result.email, result.name, result.verify_url
        )
        return MessageOut(message="Account created. Please check your email to verify your account.")

    @app.get("/auth/verify", response_model=MessageOut)
    def verify(token: str = Query("")):
        """Consume a verification token"""
        try:
            app.state.auth.verify_email(token)
        except ModelJudgeError as e:
            raise _http_error(e)
        return MessageOut(message="Email verified. You can now log in.")

    @app.post("/auth/login", response_model=LoginOut)
    def login(body: LoginIn):
        """Exchange credentials for a bearer token"""
        try:
            result = app.state.auth.login(body.email, body.password)
        except ModelJudgeError as e:
            raise _http_error(e)
        return LoginOut(token=result.token, name=result.name, email=result.email)

    @app.post("/auth/forgot-password", response_model=MessageOut)
    def forgot_password(body: ForgotPasswordIn, background_tasks: BackgroundTasks):
        """Email a reset link; the reply never reveals whether the account exists"""
        try:
            request = app.state.auth.forgot_password(body.email)
        except ModelJudgeError as e:
            raise _http_error(e)

        if request is not None:
            background_tasks.add_task(
                app.state.mailer.send_password_reset_email, request.email, request.name, request.reset_url
            )
        return MessageOut(message="If this email exists, a reset link has been sent.")

    @app.post("/auth/reset-password", response_model=MessageOut)
    def reset_password(body: ResetPasswordIn):
        """Set a new password with a reset token"""
        try:
            app.state.auth.reset_password(body.token, body.password)
        except ModelJudgeError as e:
            raise _http_error(e)
        return MessageOut(message="Password updated. You can now log in.")

    @app.post("/api/chat", response_model=ChatOut)
    async def chat(body: ChatIn, user_id: int = Depends(current_user_id)):
        """Ask both models, judge, and append the exchange to a thread"""
        logger.info(f"Processing question for user {user_id}: {body.question[:100]}")
        try:
            result = await app.state.orchestrator.submit_question(user_id, body.question, body.root_id)
        except Exception as e:
            raise _http_error(e)
        return ChatOut.from_result(result)

    @app.get("/api/history", response_model=ThreadList)
    async def history(limit: Optional[int] = Query(None, ge=1, le=500),
                      user_id: int = Depends(current_user_id)):
        """Thread heads for the current user, newest first"""
        try:
            records = await app.state.orchestrator.list_threads(user_id, limit)
        except Exception as e:
            raise _http_error(e)
        return ThreadList(items=[ThreadItem.from_record(r) for r in records])

    @app.get("/api/thread/{root_id}", response_model=ThreadList)
    async def get_thread(root_id: int, user_id: int = Depends(current_user_id)):
        """Every exchange in one thread, oldest first"""
        try:
            records = await app.state.orchestrator.get_thread(user_id, root_id)
        except Exception as e:
            raise _http_error(e)
        return ThreadList(items=[ThreadItem.from_record(r) for r in records])

    @app.delete("/api/thread/{root_id}", response_model=DeleteOut)
    async def delete_thread(root_id: int, user_id: int = Depends(current_user_id)):
        """Delete a whole thread owned by the current user"""
        try:
            deleted = await app.state.orchestrator.delete_thread(user_id, root_id)
        except Exception as e:
            raise _http_error(e)
        if not deleted:
            raise _http_error(NotFoundError("Thread not found"))
        return DeleteOut(success=True)

    return app


app = create_app()


def main():
    """Main entry point for running the server"""
    import uvicorn

    uvicorn.run(
        "modeljudge.server:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
