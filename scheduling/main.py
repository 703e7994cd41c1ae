import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from scheduling.core import config
from scheduling.database import (
    SessionLocal,
    check_database_connection,
    ensure_schema,
)
from scheduling.engine.reminders import PeriodicTask, ReminderScheduler
from scheduling.routes import appointment_routes, provider_routes

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='Appointment Scheduling')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

reminder_task = PeriodicTask(
    ReminderScheduler(SessionLocal).run_once,
    interval_seconds=config.REMINDER_INTERVAL_MINUTES * 60,
    name='reminder-scheduler',
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        ensure_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('startup')
def start_reminders() -> None:
    if config.REMINDERS_ENABLED:
        reminder_task.start()


@app.on_event('shutdown')
def stop_reminders() -> None:
    reminder_task.stop()


@app.get('/')
def root():
    return {
        'status': 'Appointment Scheduling API Running',
        'database': 'connected' if check_database_connection() else 'disconnected',
        'reminders': 'running' if reminder_task.is_running else 'stopped',
    }


app.include_router(provider_routes.router)
app.include_router(appointment_routes.router)
