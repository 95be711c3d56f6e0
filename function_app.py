import os
import logging
import azure.functions as func
import azure.durable_functions as df

from src.function_blueprints import auto_sync, durable_sync, http_integration_test, http_plan_limitation, http_sync

# Use DFApp as the root app so Durable triggers/activities are correctly registered
app = df.DFApp(http_auth_level=func.AuthLevel.FUNCTION)


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.cosmos").setLevel(level)
    logging.getLogger("smartportfolio").setLevel(logging.INFO)


_configure_logging()

for _module in (http_sync, http_integration_test, http_plan_limitation, durable_sync, auto_sync):
    app.register_functions(_module.bp)
