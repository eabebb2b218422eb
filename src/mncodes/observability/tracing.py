"""MLflow tracing setup shared by the API lifespan and the CLI."""

import logging

import mlflow

from mncodes.config import settings

logger = logging.getLogger(__name__)


def init_tracing() -> None:
    """Point MLflow at the configured tracking store and experiment."""
    mlflow.set_tracking_uri(settings.mlflow_tracking_uri)
    mlflow.set_experiment(settings.mlflow_experiment_name)
    mlflow.config.enable_async_logging()
    logger.info("MLflow tracing enabled: %s", settings.mlflow_tracking_uri)


def check_tracking_store() -> str:
    """Return "ok" or an error string for the health endpoint."""
    try:
        mlflow.search_experiments(max_results=1)
        return "ok"
    except Exception as e:
        return f"error: {e}"
