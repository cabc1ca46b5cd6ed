import asyncio
import logging

from fastapi import APIRouter, Request, Header, HTTPException, status
from fastapi.responses import PlainTextResponse

import config
from deployer import deploy_repository
from exceptions import MalformedPayloadError, UnknownRepositoryError
from notifications import Notifications
from payload import parse_deploy_request
from utils import verify_signature

router = APIRouter()
logger = logging.getLogger(__name__)
notifier = Notifications.from_config()

PULL_EXIT_CODE_HEADER = "X-Pull-Exit-Code"


@router.post("/webhook", summary="Webhook Deploy Endpoint", response_class=PlainTextResponse)
async def handle_webhook(
        request: Request,
        x_hub_signature_256: str = Header(None),
        x_github_event: str = Header(None)
):
    logger.info("Webhook endpoint was called.")
    body_bytes = await request.body()

    # 1. Verify signature when a secret is configured.
    if config.WEBHOOK_SECRET:
        if not x_hub_signature_256:
            logger.error("Missing X-Hub-Signature-256 header.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing signature header"
            )
        if not verify_signature(body_bytes, x_hub_signature_256, config.WEBHOOK_SECRET):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid signature"
            )

    # 2. Ping deliveries only confirm the hook is wired up.
    if x_github_event == "ping":
        logger.info("Received ping event.")
        return PlainTextResponse("pong")

    # 3. Parse payload.
    try:
        deploy_request = parse_deploy_request(body_bytes, request.headers.get("Content-Type", ""))
    except MalformedPayloadError as e:
        logger.error(f"Malformed webhook payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    repository_name = deploy_request.repository_name
    logger.info(f"Received webhook for repo: {repository_name}")

    # 4. Log, resolve and pull. The pull blocks, so keep it off the event loop.
    loop = asyncio.get_running_loop()
    try:
        result = await loop.run_in_executor(None, deploy_repository, repository_name, notifier)
    except UnknownRepositoryError as e:
        return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)

    return PlainTextResponse(
        result.output,
        headers={PULL_EXIT_CODE_HEADER: str(result.exit_code)}
    )
