import os
import logging
from celery import Celery

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def make_celery() -> Celery:
    """
    Crea una instancia base de Celery con configuración por defecto.
    Incluye verificación de conexión y logs de diagnóstico.
    """
    celery_app = Celery("nft_mint_api")

    broker_url = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
    result_backend = os.getenv("CELERY_RESULT_BACKEND", broker_url)

    celery_app.conf.update(
        broker_url=broker_url,
        result_backend=result_backend,
        task_ignore_result=False,
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone=os.getenv("TZ", "UTC"),
        enable_utc=True,
    )

    try:
        conn = celery_app.connection()
        conn.ensure_connection(max_retries=1)
        logger.info(f"Celery conectado a broker: {broker_url}")
    except Exception as e:
        logger.error(f"Error conectando a Celery broker ({broker_url}): {e}")

    return celery_app


celery = make_celery()


def _init_celery_with_flask():
    """Inicializa Celery dentro del contexto Flask."""
    from mint_api import create_app
    config_name = os.getenv("FLASK_ENV", "development")
    # el worker no sirve estadísticas: sin init en background
    flask_app = create_app(config_name, start_background=False)

    broker = flask_app.config.get("CELERY_BROKER_URL")
    backend = flask_app.config.get("CELERY_RESULT_BACKEND") or broker
    if broker:
        celery.conf.broker_url = broker
    if backend:
        celery.conf.result_backend = backend

    TaskBase = celery.Task

    class ContextTask(TaskBase):
        def __call__(self, *args, **kwargs):
            with flask_app.app_context():
                return TaskBase.__call__(self, *args, **kwargs)

    celery.Task = ContextTask
    celery.set_default()

    with flask_app.app_context():
        from mint_api.tasks import faucet_tasks  # noqa: F401

    return flask_app


_flask_app = _init_celery_with_flask()
