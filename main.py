# main.py

import logging
from fastapi import FastAPI

from config import DEBUG_MODE, SERVER_HOST, SERVER_PORT
from logging_config import setup_logging

# Routers
from routers.health import router as health_router
from routers.webhook import router as webhook_router
from routers.deploy import router as deploy_router

# Initialize logging once
setup_logging(DEBUG_MODE)

logger = logging.getLogger(__name__)
logger.info("Starting the PullHook application...")

app = FastAPI(
    title="PullHook",
    description="Webhook-triggered git pull into configured deploy directories",
    version="1.0.0"
)

app.include_router(health_router)
app.include_router(webhook_router)
app.include_router(deploy_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT, log_config=None)
