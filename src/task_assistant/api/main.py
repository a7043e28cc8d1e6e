"""FastAPI application for the chat task assistant."""

from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
import uvicorn
from fastapi import FastAPI

from task_assistant.clients.openai_client import OpenAIClient
from task_assistant.clients.postgres_client import (
    PostgresClient,
    PostgresMentionStore,
    PostgresReminderStore,
    PostgresWorkItemStore,
)
from task_assistant.clients.slack_client import SlackNotificationSink
from task_assistant.config import config
from task_assistant.logging import configure_logging
from task_assistant.pipeline.pipeline import AssistantPipeline
from task_assistant.scheduler.jobs import JobRunner, default_jobs
from task_assistant.scheduler.reminders import ReminderScheduler
from task_assistant.scheduler.throttle import NotificationThrottle

from .config import get_settings
from .routes.events import router as events_router
from .routes.health import router as health_router
from .routes.mentions import router as mentions_router
from .routes.sweeps import router as sweeps_router
from .routes.work_items import router as work_items_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build clients, pipeline and scheduler at startup; tear down at shutdown."""
    settings = get_settings()
    configure_logging(json_output=settings.JSON_LOGS)

    logger.info("lifespan.startup", scheduler_enabled=settings.SCHEDULER_ENABLED)

    postgres = PostgresClient(settings.DATABASE_URL, require_ssl=settings.DATABASE_REQUIRE_SSL)
    await postgres.connect()
    await postgres.setup_schema()

    inference: OpenAIClient | None = None
    if settings.OPENAI_API_KEY:
        inference = OpenAIClient(
            api_key=settings.OPENAI_API_KEY, chat_model=settings.OPENAI_CHAT_MODEL
        )
    else:
        logger.warning("lifespan.inference_disabled")

    sink = SlackNotificationSink(token=settings.SLACK_BOT_TOKEN)
    work_items = PostgresWorkItemStore(postgres)
    mentions = PostgresMentionStore(postgres)
    reminders = PostgresReminderStore(postgres)

    pipeline = AssistantPipeline(
        work_items=work_items,
        mentions=mentions,
        sink=sink,
        inference=inference,
        assistant_user_id=settings.ASSISTANT_USER_ID,
        timezone=settings.TIMEZONE,
        reminders=reminders,
        thread_reader=sink,
    )
    scheduler = ReminderScheduler(
        work_items=work_items,
        sink=sink,
        mention_tracker=pipeline.mention_tracker,
        throttle=NotificationThrottle(timedelta(minutes=config.REMINDER_COOLDOWN_MINUTES)),
        timezone=settings.TIMEZONE,
        reminders=reminders,
    )
    runner = JobRunner(default_jobs(scheduler), timezone=settings.TIMEZONE)
    if settings.SCHEDULER_ENABLED:
        runner.start()

    app.state.postgres = postgres
    app.state.pipeline = pipeline
    app.state.scheduler = scheduler
    app.state.job_runner = runner

    logger.info("lifespan.ready")
    yield

    logger.info("lifespan.shutdown")
    await runner.stop()
    await sink.close()
    if inference is not None:
        await inference.close()
    await postgres.close()


app = FastAPI(
    title="chat-task-assistant",
    description="Turns chat requests into tracked tasks and follows up on unanswered mentions",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(events_router)
app.include_router(work_items_router)
app.include_router(mentions_router)
app.include_router(sweeps_router)


def run_server() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "task_assistant.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
    )
