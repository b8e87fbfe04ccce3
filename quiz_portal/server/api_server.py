"""FastAPI server exposing the portal to a browser front end."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from quiz_portal.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from quiz_portal.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_portal.constants.quiz_constants import LEADERBOARD_ALL_QUIZZES
from quiz_portal.core.errors import (
    DuplicateAttemptError,
    DuplicateAttemptWarning,
    NetworkError,
    NotFoundError,
    QuizValidationError,
    SessionStateError,
)
from quiz_portal.core.quiz_exporter import default_export_filename
from quiz_portal.core.quiz_manager import QuizManager
from quiz_portal.core.services.quiz_catalog import CompletionStatus, DashboardEntry
from quiz_portal.core.services.quiz_session import QuizSessionEngine, SessionPhase, SubmissionOutcome
from quiz_portal.core.services.scoreboard import ResultsView


class StartQuizPayload(BaseModel):
    """Start a quiz either by id or by its date and subject."""

    user_name: str
    email: str
    quiz_id: str | None = None
    date: str | None = None
    subject: str | None = None
    confirm_retake: bool = False


class AnswerPayload(BaseModel):
    option_index: int = Field(ge=0, le=3)


class NavigatePayload(BaseModel):
    index: int


class SubmitPayload(BaseModel):
    """Optionally carries the option selected on screen but not yet recorded."""

    selected_option: int | None = Field(default=None, ge=0, le=3)


class QuestionsPayload(BaseModel):
    questions_json: str


class CreateQuizPayload(QuestionsPayload):
    date: str
    subject: str


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _dashboard_entry(entry: DashboardEntry) -> dict[str, Any]:
    return {
        "quiz_id": entry.quiz_id,
        "date": entry.date,
        "display_date": entry.display_date,
        "subject": entry.subject,
        "total_questions": entry.total_questions,
        "duration_minutes": entry.duration_minutes,
        "status": entry.status.value,
        "score_label": entry.score_label,
        "action_label": entry.action_label,
        "attempt": entry.attempt.to_dict() if entry.attempt else None,
    }


def _outcome_payload(outcome: SubmissionOutcome) -> dict[str, Any]:
    return {
        "attempt": outcome.attempt.to_dict(),
        "results": outcome.results.to_dict(),
        "remote_synced": outcome.remote_synced,
        "remote_message": outcome.remote_message,
        "auto_submitted": outcome.auto_submitted,
    }


def _attempt_payload(engine: QuizSessionEngine) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "phase": engine.phase.value,
        "quiz": {
            "quiz_id": engine.quiz.quiz_id,
            "subject": engine.quiz.subject,
            "total_questions": engine.quiz.total_questions,
        },
        "user_name": engine.user.user_name,
        "outcome": _outcome_payload(engine.outcome) if engine.outcome else None,
    }
    if engine.phase is SessionPhase.ACTIVE:
        payload.update(
            question=asdict(engine.current_question()),
            palette=[asdict(slot) for slot in engine.palette()],
            progress_percent=engine.progress_percent(),
            timer=asdict(engine.timer()),
            summary=asdict(engine.submit_summary()),
            time_warning_issued=engine.warning_issued,
            resumed=engine.resumed,
        )
    return payload


def _results_payload(view: ResultsView) -> dict[str, Any]:
    return {
        "subject": view.subject,
        "results": view.results.to_dict(),
        "reviews": [
            {**asdict(review), "selected_letter": review.selected_letter, "correct_letter": review.correct_letter}
            for review in view.reviews
        ],
    }


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DuplicateAttemptWarning)
    async def duplicate_attempt(_: Request, exc: DuplicateAttemptWarning) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={
                "detail": str(exc),
                "requires_confirmation": not isinstance(exc, DuplicateAttemptError),
                "existing_attempt": exc.existing.to_dict(),
            },
        )

    @app.exception_handler(NotFoundError)
    async def not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc), "redirect_to": exc.redirect_to})

    @app.exception_handler(QuizValidationError)
    async def invalid_payload(_: Request, exc: QuizValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(NetworkError)
    async def remote_unavailable(_: Request, exc: NetworkError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(SessionStateError)
    async def wrong_phase(_: Request, exc: SessionStateError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def bad_value(_: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await quiz_manager.aclose()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    manager_dep = _get_quiz_manager_dependency(quiz_manager)
    _register_error_handlers(app)

    # --- Status and catalog ---

    @app.get("/api/status")
    async def get_status(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return {"remote_connected": await manager.remote_status()}

    @app.get("/api/quizzes")
    def list_quizzes(
        email: str | None = None,
        subject: str | None = None,
        status: CompletionStatus | None = None,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        entries = manager.catalog.dashboard(email=email, subject=subject, status=status)
        return {"quizzes": [_dashboard_entry(entry) for entry in entries]}

    @app.get("/api/quizzes/dates")
    def list_dates(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return {"dates": manager.catalog.available_dates(), "subjects": manager.catalog.subjects()}

    # --- User session ---

    @app.post("/api/session/start", status_code=201)
    async def start_session(payload: StartQuizPayload, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        if payload.quiz_id:
            session = manager.start_quiz(
                payload.quiz_id, payload.user_name, payload.email, confirm_retake=payload.confirm_retake
            )
        elif payload.date and payload.subject:
            session = manager.start_scheduled_quiz(
                payload.date,
                payload.subject,
                payload.user_name,
                payload.email,
                confirm_retake=payload.confirm_retake,
            )
        else:
            raise QuizValidationError("Provide a quiz id, or a date and a subject")
        return session.to_dict()

    @app.get("/api/session")
    def get_session(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        session = manager.catalog.current_session()
        if session is None:
            raise NotFoundError("No active session")
        return session.to_dict()

    @app.post("/api/session/logout")
    async def logout(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        manager.logout()
        return {"logged_out": True}

    # --- Quiz attempt ---

    @app.post("/api/attempt/load")
    async def load_attempt(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return _attempt_payload(manager.open_attempt())

    @app.get("/api/attempt")
    async def get_attempt(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return _attempt_payload(manager.active_attempt())

    @app.post("/api/attempt/answer")
    async def select_answer(payload: AnswerPayload, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        engine = manager.active_attempt()
        engine.select_option(payload.option_index)
        return _attempt_payload(engine)

    @app.post("/api/attempt/clear")
    async def clear_answer(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        engine = manager.active_attempt()
        engine.clear_response()
        return _attempt_payload(engine)

    @app.post("/api/attempt/navigate")
    async def navigate(payload: NavigatePayload, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        engine = manager.active_attempt()
        engine.go_to(payload.index)
        return _attempt_payload(engine)

    @app.post("/api/attempt/next")
    async def next_question(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        engine = manager.active_attempt()
        engine.next_question()
        return _attempt_payload(engine)

    @app.post("/api/attempt/previous")
    async def previous_question(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        engine = manager.active_attempt()
        engine.previous_question()
        return _attempt_payload(engine)

    @app.post("/api/attempt/save-next")
    async def save_and_next(payload: SubmitPayload, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        engine = manager.active_attempt()
        engine.save_and_next(payload.selected_option)
        return _attempt_payload(engine)

    @app.post("/api/attempt/mark")
    async def toggle_mark(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        engine = manager.active_attempt()
        engine.toggle_mark()
        return _attempt_payload(engine)

    @app.post("/api/attempt/submit")
    async def submit_attempt(payload: SubmitPayload, manager: QuizManager = Depends(manager_dep)) -> JSONResponse:
        outcome = await manager.submit_attempt(payload.selected_option)
        if outcome is None:
            return JSONResponse(status_code=202, content={"detail": "Submission already in progress"})
        return JSONResponse(status_code=200, content=_outcome_payload(outcome))

    @app.post("/api/attempt/exit")
    async def exit_attempt(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        manager.exit_attempt()
        return {"exited": True}

    @app.get("/api/attempt/exit-guard")
    async def exit_guard(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            engine = manager.active_attempt()
        except NotFoundError:
            return {"warn": False}
        return {"warn": engine.needs_exit_warning()}

    # --- Results and leaderboard ---

    @app.get("/api/results")
    def get_results(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return _results_payload(manager.current_results())

    @app.get("/api/leaderboard")
    async def get_leaderboard(
        quiz_id: str = LEADERBOARD_ALL_QUIZZES,
        limit: int | None = None,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        rows = await manager.leaderboard(quiz_id, limit=limit)
        return {"quiz_id": quiz_id, "leaderboard": [asdict(row) for row in rows]}

    @app.get("/api/leaderboard/overall")
    async def get_overall_standings(
        limit: int | None = None,
        manager: QuizManager = Depends(manager_dep),
    ) -> dict[str, object]:
        rows = await manager.overall_standings(limit=limit)
        return {"standings": [asdict(row) for row in rows]}

    # --- Admin ---

    @app.get("/api/admin/template")
    def get_template(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return {"template": manager.admin.question_template()}

    @app.post("/api/admin/validate")
    def validate_questions(payload: QuestionsPayload, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        summary = manager.admin.validate_questions_json(payload.questions_json)
        return {
            "question_count": summary.question_count,
            "time_limit_seconds": summary.time_limit_seconds,
            "total_minutes": summary.total_minutes,
        }

    @app.post("/api/admin/quizzes", status_code=201)
    async def create_quiz(payload: CreateQuizPayload, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        outcome = await manager.admin.create_quiz(payload.date, payload.subject, payload.questions_json)
        return {
            "quiz": outcome.quiz.to_dict(),
            "status": outcome.status.value,
            "message": outcome.message,
        }

    @app.get("/api/admin/quizzes")
    def admin_list_quizzes(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        rows = manager.admin.list_quizzes()
        return {"quizzes": [{**row.quiz.to_dict(), "attemptCount": row.attempt_count} for row in rows]}

    @app.get("/api/admin/quizzes/{quiz_id}")
    def admin_quiz_details(quiz_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return manager.admin.quiz_details(quiz_id).to_dict()

    @app.delete("/api/admin/quizzes/{quiz_id}")
    def admin_delete_quiz(quiz_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        manager.admin.delete_quiz(quiz_id)
        return {"deleted": quiz_id}

    @app.delete("/api/admin/quizzes")
    def admin_delete_all_quizzes(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        manager.admin.delete_all_quizzes()
        return {"deleted": "all"}

    @app.get("/api/admin/attempts")
    def admin_list_attempts(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        rows = manager.admin.list_attempts()
        return {"attempts": [{**row.attempt.to_dict(), "subject": row.subject} for row in rows]}

    @app.delete("/api/admin/attempts/{attempt_id}")
    def admin_delete_attempt(attempt_id: str, manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        manager.admin.delete_attempt(attempt_id)
        return {"deleted": attempt_id}

    @app.delete("/api/admin/attempts")
    def admin_delete_all_attempts(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        manager.admin.delete_all_attempts()
        return {"deleted": "all"}

    @app.get("/api/admin/stats")
    def admin_stats(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        return asdict(manager.admin.stats())

    @app.get("/api/admin/export")
    def admin_export(manager: QuizManager = Depends(manager_dep)) -> JSONResponse:
        return JSONResponse(
            content=manager.admin.export_all_data(),
            headers={"Content-Disposition": f'attachment; filename="{default_export_filename()}"'},
        )

    @app.post("/api/admin/backup")
    def admin_backup(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        key = manager.admin.backup_data()
        return {"backup_key": key, "backups": manager.repository.backup_keys()}

    @app.post("/api/admin/sync")
    async def admin_sync(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        report = await manager.admin.sync_with_remote()
        return asdict(report)

    @app.post("/api/admin/clear")
    async def admin_clear(manager: QuizManager = Depends(manager_dep)) -> dict[str, object]:
        manager.exit_attempt()
        manager.admin.clear_all_data()
        return {"cleared": True}

    return app


def serve(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Run the API server in the foreground until interrupted."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    server.run()
